"""Tests for the application toolkit and decimal helpers."""

from decimal import Decimal

import httpx
import pytest
from conftest import USDC, FakeChain, make_toolkit

from defi_positions.config import Settings
from defi_positions.core.errors import UnsupportedNetworkError
from defi_positions.positions.numbers import from_raw, multiply, safe_divide
from defi_positions.toolkit import build_toolkit


def test_from_raw_keeps_full_precision():
    raw = 2**256 - 1
    digits = str(raw)

    assert from_raw(raw, 18) == Decimal(f"{digits[:-18]}.{digits[-18:]}")
    assert from_raw(1_500_000, 6) == Decimal("1.5")


def test_multiply_and_safe_divide():
    assert multiply(Decimal("1.5"), Decimal(2), Decimal(3)) == Decimal(9)
    assert safe_divide(Decimal(1), Decimal(4)) == Decimal("0.25")
    assert safe_divide(Decimal(1), Decimal(0)) == Decimal(0)


def test_get_multicall_returns_fresh_batcher():
    toolkit = make_toolkit({"ethereum": FakeChain("ethereum")}, prices={})

    first = toolkit.get_multicall("ethereum")
    second = toolkit.get_multicall("ethereum")

    assert first is not second
    assert first.max_batch_size == 500
    with pytest.raises(UnsupportedNetworkError):
        toolkit.get_multicall("optimism")


@pytest.mark.asyncio
async def test_base_token_price():
    toolkit = make_toolkit({"ethereum": FakeChain("ethereum")})

    assert await toolkit.get_base_token_price("ethereum", USDC) == Decimal(1)
    prices = await toolkit.get_base_token_prices("ethereum")
    assert prices[USDC] == Decimal(1)
    assert [t.symbol for t in await toolkit.get_base_tokens("optimism")] == ["ETH"]


@pytest.mark.asyncio
async def test_build_toolkit_closes_clients():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"coins": {}}))

    async with build_toolkit(Settings(max_batch_size=25), transport=transport) as toolkit:
        assert toolkit.get_multicall("ethereum").max_batch_size == 25
        assert toolkit.position_service.toolkit is toolkit

    assert toolkit._closeables == []
