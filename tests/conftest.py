"""Pytest configuration and fakes for defi-positions tests."""

from decimal import Decimal
from typing import Any

import pytest
from eth_abi import decode, encode

from defi_positions.contracts import MULTICALL3, ContractFactory, FunctionSpec
from defi_positions.core.errors import RPCError
from defi_positions.data import MULTICALL3_ADDRESS
from defi_positions.positions.service import PositionService
from defi_positions.pricing.token_service import TokenService
from defi_positions.rpc.provider import NetworkProviderResolver
from defi_positions.rpc.retry import RetryConfig
from defi_positions.toolkit import AppToolkit

REVERT = object()

WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
STETH = "0xae7ab96520de3a18e5e111b5eaab095312d7fe84"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
ETH = "0x0000000000000000000000000000000000000000"


class FakeChain:
    """
    In-memory chain answering ``eth_call`` for registered functions.

    Direct calls and Multicall3 ``aggregate3`` calls are both supported;
    every ``eth_call`` counts as one request.

    """

    def __init__(self, network: str = "ethereum") -> None:
        self.network = network
        self.handlers: dict[tuple[str, bytes], tuple[FunctionSpec, Any]] = {}
        self.requests: list[tuple[str, bytes]] = []
        self.aggregated: list[list[tuple[str, bytes]]] = []
        self.fail_with: Exception | None = None
        self.fail_times = 0

    def on(self, address: str, spec: FunctionSpec, result: Any) -> None:
        """Answer calls of ``spec`` on ``address`` with a value, a callable of the args, or REVERT."""
        self.handlers[(address.lower(), spec.selector)] = (spec, result)

    def _answer(self, target: str, call_data: bytes) -> tuple[bool, bytes]:
        entry = self.handlers.get((target.lower(), call_data[:4]))
        if entry is None:
            return False, b""
        spec, result = entry
        if callable(result):
            args = decode(list(spec.input_types), call_data[4:]) if spec.input_types else ()
            result = result(*args)
        if result is REVERT:
            return False, b""
        values = list(result) if len(spec.output_types) > 1 else [result]
        return True, encode(list(spec.output_types), values)

    async def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        self.requests.append((to.lower(), data))
        if self.fail_with is not None and self.fail_times != 0:
            self.fail_times -= 1
            raise self.fail_with

        aggregate3 = MULTICALL3.get_function("aggregate3")
        if to.lower() == MULTICALL3_ADDRESS.lower() and data[:4] == aggregate3.selector:
            (calls,) = decode(["(address,bool,bytes)[]"], data[4:])
            self.aggregated.append([(target.lower(), call_data) for target, _, call_data in calls])
            results = [self._answer(target, call_data) for target, _, call_data in calls]
            return encode(["(bool,bytes)[]"], [results])

        success, output = self._answer(to, data)
        if not success:
            raise RPCError("execution reverted", 3)
        return output

    def fail(self, error: Exception, times: int = -1) -> None:
        """Make the next ``times`` requests raise ``error`` (every request when negative)."""
        self.fail_with = error
        self.fail_times = times


class StaticPricing:
    """Pricing source answering from a fixed table."""

    def __init__(self, prices: dict[tuple[str, str], Decimal]) -> None:
        self.prices = {(network, address.lower()): price for (network, address), price in prices.items()}
        self.lookups: list[list[tuple[str, str]]] = []

    async def get_prices(self, tokens: list[tuple[str, str]]) -> dict[tuple[str, str], Decimal]:
        self.lookups.append(list(tokens))
        return {
            (network, address.lower()): self.prices[(network, address.lower())]
            for network, address in tokens
            if (network, address.lower()) in self.prices
        }


BASE_TOKENS = {
    "ethereum": [
        {"address": ETH, "symbol": "ETH", "decimals": 18},
        {"address": WETH, "symbol": "WETH", "decimals": 18},
        {"address": USDC, "symbol": "USDC", "decimals": 6},
        {"address": STETH, "symbol": "stETH", "decimals": 18},
    ],
    "optimism": [
        {"address": ETH, "symbol": "ETH", "decimals": 18},
    ],
}

PRICES = {
    ("ethereum", ETH): Decimal("2000"),
    ("ethereum", WETH): Decimal("2000"),
    ("ethereum", USDC): Decimal("1"),
    ("ethereum", STETH): Decimal("1990"),
    ("optimism", ETH): Decimal("2000"),
}


def make_resolver(chains: dict[str, FakeChain]) -> NetworkProviderResolver:
    resolver = NetworkProviderResolver(endpoints={})
    for network, chain in chains.items():
        resolver.register(network, chain)
    return resolver


def make_factory(chains: dict[str, FakeChain], resolver: NetworkProviderResolver | None = None) -> ContractFactory:
    resolver = resolver or make_resolver(chains)
    return ContractFactory(resolver.get_provider, {network: MULTICALL3_ADDRESS for network in chains})


def make_toolkit(chains: dict[str, FakeChain], prices: dict | None = None) -> AppToolkit:
    resolver = make_resolver(chains)
    factory = make_factory(chains, resolver)
    token_service = TokenService(StaticPricing(PRICES if prices is None else prices), factory, base_tokens=BASE_TOKENS)
    position_service = PositionService(RetryConfig(max_retries=2, base_delay=0))
    return AppToolkit(resolver, factory, token_service, position_service)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain("ethereum")


@pytest.fixture
def factory(chain: FakeChain) -> ContractFactory:
    return make_factory({"ethereum": chain})
