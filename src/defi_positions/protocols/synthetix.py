"""Synthetix synth tokens valued from the protocol's exchange rates."""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar

from defi_positions.contracts.abis import view_function
from defi_positions.contracts.interface import ContractInterface
from defi_positions.core.errors import DecodeError
from defi_positions.core.models import Network
from defi_positions.core.registry import ProtocolRegistry
from defi_positions.positions.numbers import from_raw, multiply
from defi_positions.positions.template import AppTokenState, AppTokenTemplatePositionFetcher, FetchContext

logger = logging.getLogger(__name__)

SYNTHETIX_ADDRESS_RESOLVER = ContractInterface(
    "synthetix-address-resolver",
    [
        view_function("getAddress", ["bytes32"], ["address"]),
        view_function("getSynth", ["bytes32"], ["address"]),
    ],
)

SYNTHETIX_SUMMARY_UTIL = ContractInterface(
    "synthetix-summary-util",
    [view_function("synthsRates", outputs=["bytes32[]", "uint256[]"])],
)

SYNTHETIX_NETWORK_TOKEN = ContractInterface(
    "synthetix-network-token",
    [
        view_function("proxy", outputs=["address"]),
        view_function("totalSupply", outputs=["uint256"]),
    ],
)

# Synths and exchange rates use 18 decimals
SYNTH_DECIMALS = 18


def to_bytes32(name: str) -> bytes:
    """Right-pad an ASCII name to a bytes32 key."""
    return name.encode("ascii").ljust(32, b"\x00")


def parse_bytes32(value: bytes) -> str:
    """
    Decode a zero-padded bytes32 string.

    Raises
    ------
    DecodeError
        If the key is not valid UTF-8

    """
    try:
        return value.rstrip(b"\x00").decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError("bytes32", f"invalid string 0x{value.hex()}") from e


@dataclass(frozen=True)
class SynthDefinition:
    """One synth as listed by ``SynthUtil.synthsRates``."""

    currency_key: bytes
    rate: int

    @property
    def symbol(self) -> str:
        return parse_bytes32(self.currency_key)


class SynthetixSynthTokenFetcher(AppTokenTemplatePositionFetcher[SynthDefinition]):
    """
    Synth tokens of Synthetix.

    The address resolver locates ``SynthUtil``, whose ``synthsRates`` lists
    every synth with its USD rate. Each synth's implementation, proxy and
    total supply are then read through the run's batch collector.

    Attributes
    ----------
    exchangeable : bool
        Whether synths on this network can be exchanged through the protocol

    """

    app_id = "synthetix"
    group_id = "synth"
    exchangeable: ClassVar[bool] = False

    def _resolver(self):
        address = self.get_contract_addresses()["address_resolver"]
        return self.contract_factory.build(self.network, address, SYNTHETIX_ADDRESS_RESOLVER)

    async def get_definitions(self, ctx: FetchContext) -> list[SynthDefinition]:
        synth_util_address = await self._resolver().getAddress(to_bytes32("SynthUtil"))
        synth_util = self.contract_factory.build(self.network, synth_util_address, SYNTHETIX_SUMMARY_UTIL)
        currency_keys, rates = await synth_util.synthsRates()
        logger.debug("Synthetix lists %d synths on %s", len(currency_keys), self.network)
        return [SynthDefinition(key, rate) for key, rate in zip(currency_keys, rates, strict=True)]

    def describe(self, definition: SynthDefinition) -> str:
        return definition.symbol

    async def get_token_state(self, ctx: FetchContext, definition: SynthDefinition) -> AppTokenState:
        implementation = await ctx.multicall.wrap(self._resolver()).getSynth(definition.currency_key)
        synth = ctx.multicall.wrap(
            self.contract_factory.build(self.network, implementation, SYNTHETIX_NETWORK_TOKEN),
        )
        proxy, supply_raw = await asyncio.gather(synth.proxy(), synth.totalSupply())

        return AppTokenState(
            address=proxy.lower(),
            symbol=definition.symbol,
            decimals=SYNTH_DECIMALS,
            supply=from_raw(supply_raw, SYNTH_DECIMALS),
            price_per_share=[Decimal(1)],
            extra={"rate": definition.rate},
        )

    def get_price(self, state: AppTokenState) -> Decimal:
        return from_raw(state.extra["rate"], 18)

    def get_data_props(self, state: AppTokenState, price: Decimal) -> dict[str, Any]:
        return {
            "exchangeable": self.exchangeable,
            "liquidity": multiply(state.supply, price),
        }


@ProtocolRegistry.register
class EthereumSynthetixSynthTokenFetcher(SynthetixSynthTokenFetcher):
    network = Network.ETHEREUM_MAINNET


@ProtocolRegistry.register
class OptimismSynthetixSynthTokenFetcher(SynthetixSynthTokenFetcher):
    network = Network.OPTIMISM_MAINNET
    exchangeable = True
