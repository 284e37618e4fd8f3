"""Morpho-Compound markets, account balances and the Morpho balance presenter."""

import asyncio
import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import TYPE_CHECKING

from defi_positions.contracts.abis import view_function
from defi_positions.contracts.factory import normalize_address
from defi_positions.contracts.interface import ContractInterface
from defi_positions.core.models import (
    ContractPosition,
    ContractPositionBalance,
    DisplayItemType,
    DisplayProps,
    MetadataItem,
    MetaType,
    Network,
    PositionToken,
    StatsItem,
    TokenBalanceResponse,
)
from defi_positions.core.registry import ProtocolRegistry
from defi_positions.data import ZERO_ADDRESS, get_protocol_addresses
from defi_positions.positions.display import (
    build_dollar_display_item,
    build_metadata_item,
    build_percentage_display_item,
    get_token_img,
)
from defi_positions.positions.numbers import from_raw, multiply
from defi_positions.positions.template import RECOVERABLE_ERRORS, ContractPositionTemplatePositionFetcher, FetchContext
from defi_positions.presentation.balances import build_contract_position_balance, has_balance
from defi_positions.presentation.presenter import PositionPresenter, balance_totals, product_meta, utilization

if TYPE_CHECKING:
    from defi_positions.toolkit import IAppToolkit

logger = logging.getLogger(__name__)

MORPHO_COMPOUND_LENS = ContractInterface(
    "morpho-compound-lens",
    [
        view_function("getAllMarkets", outputs=["address[]"]),
        view_function("getTotalMarketSupply", ["address"], ["uint256", "uint256"]),
        view_function("getTotalMarketBorrow", ["address"], ["uint256", "uint256"]),
        view_function("getCurrentSupplyBalanceInOf", ["address", "address"], ["uint256", "uint256", "uint256"]),
        view_function("getCurrentBorrowBalanceInOf", ["address", "address"], ["uint256", "uint256", "uint256"]),
    ],
)

COMPOUND_CTOKEN = ContractInterface(
    "compound-ctoken",
    [view_function("underlying", outputs=["address"])],
)

COMPOUND_COMPTROLLER = ContractInterface(
    "compound-comptroller",
    [view_function("markets", ["address"], ["bool", "uint256", "bool"])],
)

APP_ID = "morpho"
COMPOUND_GROUP_ID = "compound"
COMPOUND_PRODUCT_LABEL = "Morpho Compound"


class MorphoCompoundContractPositionFetcher(ContractPositionTemplatePositionFetcher[str]):
    """
    Compound markets supplied to and borrowed from through Morpho.

    Each market yields one contract position holding the underlying token
    twice, as supplied and as borrowed. Data props carry the market address,
    totals in underlying units and the comptroller collateral factor.

    """

    app_id = APP_ID
    group_id = COMPOUND_GROUP_ID

    def _lens(self):
        return self.contract_factory.build(
            self.network, self.get_contract_addresses()["compound_lens"], MORPHO_COMPOUND_LENS
        )

    async def get_definitions(self, ctx: FetchContext) -> list[str]:
        markets = await self._lens().getAllMarkets()
        return [market.lower() for market in markets]

    async def build_position(self, ctx: FetchContext, definition: str) -> ContractPosition:
        addresses = self.get_contract_addresses()
        lens = ctx.multicall.wrap(self._lens())
        comptroller = ctx.multicall.wrap(
            self.contract_factory.build(self.network, addresses["compound_comptroller"], COMPOUND_COMPTROLLER)
        )
        reads = [
            lens.getTotalMarketSupply(definition),
            lens.getTotalMarketBorrow(definition),
            comptroller.markets(definition),
        ]
        # cETH wraps native ether and has no underlying()
        is_ceth = definition == addresses["compound_ceth"].lower()
        if not is_ceth:
            ctoken = self.contract_factory.build(self.network, definition, COMPOUND_CTOKEN)
            reads.append(ctx.multicall.wrap(ctoken).underlying())
        supply, borrow, market_info, *underlying = await asyncio.gather(*reads)
        underlying = ZERO_ADDRESS if is_ceth else underlying[0]

        token = ctx.base_token(underlying)
        total_supply = from_raw(sum(supply), token.decimals)
        total_borrow = from_raw(sum(borrow), token.decimals)
        collateral_factor = from_raw(market_info[1], 18)
        liquidity = multiply(total_supply, token.price)

        return ContractPosition(
            app_id=self.app_id,
            group_id=self.group_id,
            network=self.network,
            address=definition,
            tokens=[
                PositionToken(meta_type=MetaType.SUPPLIED, token=token),
                PositionToken(meta_type=MetaType.BORROWED, token=token),
            ],
            data_props={
                "market_address": definition,
                "total_supply": total_supply,
                "total_borrow": total_borrow,
                "collateral_factor": collateral_factor,
                "liquidity": liquidity,
            },
            display_props=DisplayProps(
                label=token.symbol,
                secondary_label="Morpho Compound",
                images=[get_token_img(token.address, self.network)],
                stats_items=[
                    StatsItem(label="Liquidity", value=build_dollar_display_item(liquidity)),
                    StatsItem(label="Borrowed", value=build_dollar_display_item(multiply(total_borrow, token.price))),
                    StatsItem(label="Collateral Factor", value=build_percentage_display_item(collateral_factor)),
                ],
            ),
        )


@ProtocolRegistry.register
class EthereumMorphoCompoundContractPositionFetcher(MorphoCompoundContractPositionFetcher):
    network = Network.ETHEREUM_MAINNET


@ProtocolRegistry.register_presenter
class EthereumMorphoPositionPresenter(PositionPresenter):
    """Groups Morpho-Compound balances and reports collateral, debt and utilization."""

    app_id = APP_ID
    network = Network.ETHEREUM_MAINNET
    product_labels = {COMPOUND_GROUP_ID: COMPOUND_PRODUCT_LABEL}

    @product_meta(COMPOUND_PRODUCT_LABEL)
    def get_morpho_compound_meta(self, address: str, balances: Sequence[ContractPositionBalance]) -> list[MetadataItem]:
        """
        Borrowing capacity metrics of the account.

        ``Collateral`` is the maximum debt allowed by the supplied assets
        (supplied USD times each market's collateral factor).

        """
        collateral_value, total_debt = balance_totals(balances)
        max_debt = Decimal(0)
        for balance in balances:
            factor = balance.position.data_props.get("collateral_factor", Decimal(0))
            for token in balance.tokens:
                if token.meta_type == MetaType.SUPPLIED:
                    max_debt += multiply(token.balance_usd, factor)

        return [
            build_metadata_item("Collateral", max_debt, DisplayItemType.DOLLAR),
            build_metadata_item("Total Supply", collateral_value, DisplayItemType.DOLLAR),
            build_metadata_item("Debt", total_debt, DisplayItemType.DOLLAR),
            build_metadata_item("Utilization Rate", utilization(total_debt, max_debt), DisplayItemType.PERCENTAGE),
        ]


@ProtocolRegistry.register_balance_fetcher
class EthereumMorphoBalanceFetcher:
    """
    Reads an account's supply and borrow balances in every Morpho-Compound market.

    Markets come from the position service; balances of all markets are read
    in one batch. Markets whose valuation or balance read failed are left
    out and mentioned in the response's error note.

    Parameters
    ----------
    toolkit : IAppToolkit
        Toolkit providing positions, contracts and batching

    """

    app_id = APP_ID
    network = Network.ETHEREUM_MAINNET

    def __init__(self, toolkit: "IAppToolkit") -> None:
        self.toolkit = toolkit
        self.presenter = EthereumMorphoPositionPresenter()

    async def _read_balances(self, lens, position: ContractPosition, address: str) -> ContractPositionBalance:
        supply, borrow = await asyncio.gather(
            lens.getCurrentSupplyBalanceInOf(position.address, address),
            lens.getCurrentBorrowBalanceInOf(position.address, address),
        )
        return build_contract_position_balance(position, [supply[2], borrow[2]])

    async def get_balances(self, address: str) -> TokenBalanceResponse:
        """
        Fetch the Morpho-Compound balances of an account.

        Parameters
        ----------
        address : str
            Account address

        Returns
        -------
        TokenBalanceResponse
            One 'Morpho Compound' product with its metrics and account totals

        Raises
        ------
        InvalidAddressError
            If the account address is malformed

        """
        account = normalize_address(address)
        results = await self.toolkit.position_service.compute_positions(self.network, self.app_id, [COMPOUND_GROUP_ID])
        notes = [results.error_note] if results.error_note else []

        lens_address = get_protocol_addresses(self.network, self.app_id)["compound_lens"]
        lens = self.toolkit.get_multicall(self.network).wrap(
            self.toolkit.contract_factory.build(self.network, lens_address, MORPHO_COMPOUND_LENS)
        )
        positions = [p for p in results.positions if isinstance(p, ContractPosition)]
        outcomes = await asyncio.gather(
            *(self._read_balances(lens, position, account) for position in positions),
            return_exceptions=True,
        )

        balances = []
        for position, outcome in zip(positions, outcomes, strict=True):
            if isinstance(outcome, RECOVERABLE_ERRORS):
                logger.warning("Omitting Morpho market %s for %s: %s", position.address, account, outcome)
                notes.append(f"{position.address}: {outcome}")
            elif isinstance(outcome, BaseException):
                raise outcome
            elif has_balance(outcome):
                balances.append(outcome)

        return self.presenter.present(account.lower(), balances, error="; ".join(notes) or None)
