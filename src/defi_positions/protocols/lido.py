"""Lido wrapped staked ether (wstETH) app token."""

import asyncio

from defi_positions.contracts.abis import ERC20_ABI, view_function
from defi_positions.contracts.interface import ContractInterface
from defi_positions.core.models import Network
from defi_positions.core.registry import ProtocolRegistry
from defi_positions.positions.numbers import from_raw
from defi_positions.positions.template import AppTokenState, AppTokenTemplatePositionFetcher, FetchContext

LIDO_WSTETH = ContractInterface(
    "lido-wsteth",
    [*ERC20_ABI, view_function("stEthPerToken", outputs=["uint256"])],
)


@ProtocolRegistry.register
class EthereumLidoWstethTokenFetcher(AppTokenTemplatePositionFetcher[str]):
    """
    wstETH, a non-rebasing wrapper around stETH.

    One wstETH redeems for ``stEthPerToken() / 1e18`` stETH, so its price is
    that ratio times the stETH base-token price.

    """

    app_id = "lido"
    group_id = "wsteth"
    network = Network.ETHEREUM_MAINNET

    async def get_definitions(self, ctx: FetchContext) -> list[str]:
        return [self.get_contract_addresses()["wsteth"]]

    async def get_token_state(self, ctx: FetchContext, definition: str) -> AppTokenState:
        steth = ctx.base_token(self.get_contract_addresses()["steth"])
        wsteth = ctx.multicall.wrap(self.contract_factory.build(self.network, definition, LIDO_WSTETH))
        symbol, decimals, supply_raw, steth_per_token = await asyncio.gather(
            wsteth.symbol(),
            wsteth.decimals(),
            wsteth.totalSupply(),
            wsteth.stEthPerToken(),
        )
        return AppTokenState(
            address=definition.lower(),
            symbol=symbol,
            decimals=decimals,
            supply=from_raw(supply_raw, decimals),
            tokens=[steth],
            price_per_share=[from_raw(steth_per_token, steth.decimals)],
        )
