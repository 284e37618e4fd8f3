"""Template position fetchers: batched reads in, priced position records out."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

import httpx

from defi_positions.core.errors import BatchExecutionError, DecodeError, PriceUnavailableError, RPCError
from defi_positions.core.models import (
    AppTokenPosition,
    BaseToken,
    ContractType,
    DisplayProps,
    Network,
    PositionError,
    PositionResults,
    StatsItem,
)
from defi_positions.data import get_protocol_addresses
from defi_positions.positions.display import build_dollar_display_item, build_number_display_item, get_token_img
from defi_positions.positions.numbers import multiply
from defi_positions.rpc.multicall import MulticallBatcher

if TYPE_CHECKING:
    from defi_positions.toolkit import IAppToolkit

logger = logging.getLogger(__name__)

D = TypeVar("D")

# Failures that omit a single instance instead of aborting the run
RECOVERABLE_ERRORS: tuple[type[Exception], ...] = (
    BatchExecutionError,
    DecodeError,
    PriceUnavailableError,
    RPCError,
    httpx.HTTPError,
)

# Failures worth re-running the whole group for
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (BatchExecutionError, httpx.HTTPError)


@dataclass
class FetchContext:
    """
    State shared by every instance of one valuation run.

    Attributes
    ----------
    network : Network
        Network being valued
    multicall : MulticallBatcher
        Batch collector owned by this run
    base_tokens : dict[str, BaseToken]
        Priced base tokens keyed by lower-cased address

    """

    network: Network
    multicall: MulticallBatcher
    base_tokens: dict[str, BaseToken] = field(default_factory=dict)

    def base_token(self, address: str) -> BaseToken:
        """
        Priced base token by address.

        Raises
        ------
        PriceUnavailableError
            If the token has no known price on this network

        """
        token = self.base_tokens.get(address.lower())
        if token is None:
            raise PriceUnavailableError(str(self.network), address.lower())
        return token


class PositionFetcher(ABC, Generic[D]):
    """
    Base class for per-group position fetchers.

    A run lists the group's instance definitions, then values every
    instance concurrently; all reads issued in the same tick share one
    multicall request. Instances failing with a recoverable error are
    omitted and reported in ``PositionResults.errors``.

    Attributes
    ----------
    app_id : str
        Protocol identifier (must be set in subclass)
    group_id : str
        Group identifier (must be set in subclass)
    network : Network
        Network the fetcher values (must be set in subclass)
    contract_type : ContractType
        Kind of positions produced

    """

    app_id: ClassVar[str] = ""
    group_id: ClassVar[str] = ""
    network: ClassVar[Network]
    contract_type: ClassVar[ContractType]

    def __init__(self, toolkit: "IAppToolkit") -> None:
        if not self.app_id or not self.group_id:
            msg = f"{self.__class__.__name__} must define 'app_id' and 'group_id' attributes"
            raise ValueError(msg)
        if not hasattr(self, "network"):
            msg = f"{self.__class__.__name__} must define 'network' attribute"
            raise ValueError(msg)
        self.toolkit = toolkit

    @property
    def contract_factory(self):
        return self.toolkit.contract_factory

    def get_contract_addresses(self) -> dict[str, str]:
        """
        Get all contract addresses of this protocol on the fetcher's network.

        Returns
        -------
        dict[str, str]
            Mapping of contract names to addresses

        """
        return get_protocol_addresses(self.network, self.app_id)

    @abstractmethod
    async def get_definitions(self, ctx: FetchContext) -> Sequence[D]:
        """
        List the instances to value (markets, synths, vaults...).

        Parameters
        ----------
        ctx : FetchContext
            Run context

        Returns
        -------
        Sequence[D]
            One definition per instance

        """
        ...

    @abstractmethod
    async def build_position(self, ctx: FetchContext, definition: D) -> Any:
        """Value one instance; returning None drops it silently."""
        ...

    def describe(self, definition: D) -> str:
        """Short identifier of a definition for error reports."""
        return str(definition)

    def _describe(self, definition: D) -> str:
        try:
            return self.describe(definition)
        except Exception as e:
            logger.debug("Cannot describe %r: %s", definition, e)
            return repr(definition)

    def _error(self, definition: str, error: Exception) -> PositionError:
        return PositionError(
            app_id=self.app_id,
            group_id=self.group_id,
            network=self.network,
            definition=definition,
            error_type=type(error).__name__,
            message=str(error),
            retryable=isinstance(error, RETRYABLE_ERRORS),
        )

    async def compute_positions(self) -> PositionResults:
        """
        Value every instance of the group.

        Returns
        -------
        PositionResults
            Valued positions and the errors of omitted instances

        """
        base_tokens = await self.toolkit.get_base_tokens(self.network)
        ctx = FetchContext(
            network=self.network,
            multicall=self.toolkit.get_multicall(self.network),
            base_tokens={token.address: token for token in base_tokens},
        )

        try:
            definitions = list(await self.get_definitions(ctx))
        except RECOVERABLE_ERRORS as e:
            logger.warning("Listing %s/%s on %s failed: %s", self.app_id, self.group_id, self.network, e)
            return PositionResults(errors=[self._error("*", e)])

        outcomes = await asyncio.gather(
            *(self.build_position(ctx, definition) for definition in definitions),
            return_exceptions=True,
        )

        results = PositionResults()
        for definition, outcome in zip(definitions, outcomes, strict=True):
            if isinstance(outcome, RECOVERABLE_ERRORS):
                label = self._describe(definition)
                logger.warning(
                    "Omitting %s/%s %s on %s: %s",
                    self.app_id,
                    self.group_id,
                    label,
                    self.network,
                    outcome,
                )
                results.errors.append(self._error(label, outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome is not None:
                results.positions.append(outcome)

        logger.debug(
            "Valued %d/%d %s/%s positions on %s",
            len(results.positions),
            len(definitions),
            self.app_id,
            self.group_id,
            self.network,
        )
        return results


@dataclass
class AppTokenState:
    """
    Raw figures gathered for one app token before pricing.

    Attributes
    ----------
    address : str
        Token address
    symbol : str
        Token symbol
    decimals : int
        Token decimals
    supply : Decimal
        Total supply in token units
    tokens : list[BaseToken | AppTokenPosition]
        Underlying tokens
    price_per_share : list[Decimal]
        Underlying amount per share, aligned with ``tokens``
    extra : dict[str, Any]
        Protocol-specific raw facts

    """

    address: str
    symbol: str
    decimals: int
    supply: Decimal
    tokens: list[Any] = field(default_factory=list)
    price_per_share: list[Decimal] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


class AppTokenTemplatePositionFetcher(PositionFetcher[D]):
    """
    Fetcher for tokenized positions.

    Subclasses gather raw figures in :meth:`get_token_state`; pricing,
    data props and display props have overridable defaults:
    ``price = sum(price_per_share[i] * tokens[i].price)`` and
    ``liquidity = supply * price``.

    """

    contract_type = ContractType.APP_TOKEN

    @abstractmethod
    async def get_token_state(self, ctx: FetchContext, definition: D) -> AppTokenState:
        ...

    def get_price(self, state: AppTokenState) -> Decimal:
        return sum(
            (multiply(pps, token.price) for pps, token in zip(state.price_per_share, state.tokens, strict=True)),
            Decimal(0),
        )

    def get_data_props(self, state: AppTokenState, price: Decimal) -> dict[str, Any]:
        return {"liquidity": multiply(state.supply, price)}

    def get_display_props(self, state: AppTokenState, price: Decimal, data_props: dict[str, Any]) -> DisplayProps:
        images = [get_token_img(token.address, self.network) for token in state.tokens] or [
            get_token_img(state.address, self.network)
        ]
        stats_items = []
        if "liquidity" in data_props:
            stats_items.append(StatsItem(label="Liquidity", value=build_dollar_display_item(data_props["liquidity"])))
        stats_items.append(StatsItem(label="Supply", value=build_number_display_item(state.supply)))
        return DisplayProps(
            label=state.symbol,
            secondary_label=build_dollar_display_item(price),
            images=images,
            stats_items=stats_items,
        )

    async def build_position(self, ctx: FetchContext, definition: D) -> AppTokenPosition:
        state = await self.get_token_state(ctx, definition)
        price = self.get_price(state)
        data_props = self.get_data_props(state, price)
        price_per_share: Decimal | list[Decimal]
        if len(state.price_per_share) == 1:
            price_per_share = state.price_per_share[0]
        else:
            price_per_share = list(state.price_per_share)

        return AppTokenPosition(
            app_id=self.app_id,
            group_id=self.group_id,
            network=self.network,
            address=state.address,
            symbol=state.symbol,
            decimals=state.decimals,
            supply=state.supply,
            price=price,
            price_per_share=price_per_share,
            tokens=state.tokens,
            data_props=data_props,
            display_props=self.get_display_props(state, price, data_props),
        )


class ContractPositionTemplatePositionFetcher(PositionFetcher[D]):
    """Fetcher for non-tokenized positions; subclasses implement :meth:`build_position`."""

    contract_type = ContractType.CONTRACT_POSITION
