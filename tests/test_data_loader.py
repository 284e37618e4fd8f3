"""Tests for data loading and configuration."""

import pytest

from defi_positions.config import Settings
from defi_positions.core.errors import UnsupportedNetworkError
from defi_positions.core.models import Network
from defi_positions.data import (
    MULTICALL3_ADDRESS,
    get_all_supported_networks,
    get_base_tokens,
    get_chain_id,
    get_llama_chain,
    get_multicall_address,
    get_network_config,
    get_protocol_addresses,
    get_rpc_endpoints,
    rpc_env_var,
)


def test_every_network_is_configured():
    """Each Network member has an entry in networks.yaml."""
    assert set(get_all_supported_networks()) == {str(network) for network in Network}


def test_get_network_config():
    config = get_network_config("ethereum")

    assert config["chain_id"] == 1
    assert "rpc_endpoints" in config
    assert "base_tokens" in config

    with pytest.raises(UnsupportedNetworkError):
        get_network_config("solana")


def test_get_chain_id():
    assert get_chain_id("ethereum") == 1
    assert get_chain_id(Network.OPTIMISM_MAINNET) == 10
    assert get_chain_id("base") == 8453


def test_get_rpc_endpoints(monkeypatch):
    monkeypatch.delenv(rpc_env_var("ethereum"), raising=False)

    endpoints = get_rpc_endpoints("ethereum")

    assert len(endpoints) > 0
    assert all(endpoint.startswith("https://") for endpoint in endpoints)
    assert get_rpc_endpoints("solana") == []


def test_rpc_env_var():
    assert rpc_env_var("ethereum") == "DEFI_POSITIONS_RPC_ETHEREUM"
    assert rpc_env_var(Network.BINANCE_SMART_CHAIN_MAINNET) == "DEFI_POSITIONS_RPC_BINANCE_SMART_CHAIN"


def test_multicall_address():
    assert get_multicall_address("ethereum") == MULTICALL3_ADDRESS
    assert get_multicall_address("solana") is None


def test_base_tokens():
    tokens = get_base_tokens("ethereum")
    symbols = {token["symbol"] for token in tokens}

    assert {"ETH", "WETH", "USDC", "stETH"} <= symbols
    assert all(token["address"].startswith("0x") for token in tokens)
    assert get_base_tokens("solana") == []


def test_get_protocol_addresses():
    synthetix = get_protocol_addresses("ethereum", "synthetix")
    assert synthetix["address_resolver"].startswith("0x")

    morpho = get_protocol_addresses(Network.ETHEREUM_MAINNET, "morpho")
    assert {"compound_lens", "compound_comptroller", "compound_ceth"} <= set(morpho)

    assert get_protocol_addresses("base", "morpho") == {}
    assert get_protocol_addresses("ethereum", "nonexistent") == {}


def test_llama_chain():
    assert get_llama_chain("ethereum") == "ethereum"
    assert get_llama_chain("binance-smart-chain") == "bsc"


def test_settings_load_with_overrides():
    settings = Settings.load(max_batch_size=50, timeout=None)

    assert settings.max_batch_size == 50
    assert settings.timeout == 30.0
    assert settings.retry.max_retries == 2
    assert "{network}" in settings.token_image_url
