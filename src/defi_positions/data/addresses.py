"""Centralized contract address constants."""

# Multicall3 is deployed at the same address on every supported network
MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Chainlink USD price feeds keyed by network, then by token address (lower case)
CHAINLINK_PRICE_FEEDS: dict[str, dict[str, str]] = {
    "ethereum": {
        # ETH / USD
        "0x0000000000000000000000000000000000000000": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
        "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
        # USDC / USD
        "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": "0x8fFfFfd4AfB6115b954Bd326cbe7B4BA576818f6",
        # USDT / USD
        "0xdac17f958d2ee523a2206206994597c13d831ec7": "0x3E7d1eAB13ad0104d2750B8863b489D65364e32D",
        # DAI / USD
        "0x6b175474e89094c44da98b954eedeac495271d0f": "0xAed0c38402a5d19df6E4c03F4E2DceD6e29c1ee9",
        # BTC / USD
        "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599": "0xF4030086522a5bEEa4988F8cA5B36dbC97BeE88c",
        # stETH / USD
        "0xae7ab96520de3a18e5e111b5eaab095312d7fe84": "0xCfE54B5cD566aB89272946F602D76Ea879CAb4a8",
    },
    "optimism": {
        # ETH / USD
        "0x0000000000000000000000000000000000000000": "0x13e3Ee699D1909E989722E753853AE30b17e08c5",
        "0x4200000000000000000000000000000000000006": "0x13e3Ee699D1909E989722E753853AE30b17e08c5",
    },
}

# Protocol contract addresses keyed by protocol, then network
PROTOCOL_ADDRESSES: dict[str, dict[str, dict[str, str]]] = {
    "synthetix": {
        "ethereum": {
            "address_resolver": "0x823bE81bbF96BEc0e25CA13170F5AaCb5B79ba83",
        },
        "optimism": {
            "address_resolver": "0x95A6a3f44a70172E7d50a9e28c85Dfd712756B8C",
        },
    },
    "lido": {
        "ethereum": {
            "steth": "0xae7ab96520DE3A18E5e111B5EaAb095312D7fE84",
            "wsteth": "0x7f39C581F595B53c5cb19bD0b3f8dA6c935E2Ca0",
        },
    },
    "morpho": {
        "ethereum": {
            "compound_lens": "0x930f1b46e1d081ec1524efd95752be3ece51ef67",
            "compound_comptroller": "0x3d9819210A31b4961b30EF54bE2aeD79B9c9Cd3B",
            "compound_ceth": "0x4Ddc2D193948926D02f9B1fE9e1daa0718270ED5",
        },
    },
}
