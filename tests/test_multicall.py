"""Tests for the multicall batch read engine."""

import asyncio

import httpx
import pytest
from conftest import REVERT, FakeChain, make_factory
from eth_abi import encode

from defi_positions.contracts import ERC20, ContractInterface, view_function
from defi_positions.core.errors import BatchExecutionError, DecodeError, UnsupportedNetworkError
from defi_positions.positions.numbers import from_raw
from defi_positions.rpc.multicall import MulticallBatcher

C1 = "0x1111111111111111111111111111111111111111"
C2 = "0x2222222222222222222222222222222222222222"
PROXY = "0xabcabcabcabcabcabcabcabcabcabcabcabcabca"

SYNTH = ContractInterface(
    "synth",
    [view_function("proxy", outputs=["address"]), view_function("totalSupply", outputs=["uint256"])],
)


@pytest.mark.asyncio
async def test_calls_in_same_tick_share_one_request(chain, factory):
    """Two wrapped calls awaited together go out as one aggregate3 request."""
    chain.on(C1, SYNTH.get_function("totalSupply"), 1000 * 10**18)
    chain.on(C2, SYNTH.get_function("proxy"), PROXY)
    multicall = MulticallBatcher(factory)

    supply, proxy = await asyncio.gather(
        multicall.wrap(factory.build("ethereum", C1, SYNTH)).totalSupply(),
        multicall.wrap(factory.build("ethereum", C2, SYNTH)).proxy(),
    )

    assert len(chain.requests) == 1
    assert multicall.request_count == 1
    assert chain.aggregated == [
        [
            (C1, SYNTH.get_function("totalSupply").selector),
            (C2, SYNTH.get_function("proxy").selector),
        ]
    ]
    assert from_raw(supply, 18) == 1000
    assert proxy.lower() == PROXY


@pytest.mark.asyncio
async def test_results_matched_by_position(chain, factory):
    """Each call resolves with the result at its own index."""
    addresses = [f"0x{str(i) * 40}" for i in range(1, 4)]
    for i, address in enumerate(addresses):
        chain.on(address, ERC20.get_function("totalSupply"), i + 100)
    multicall = MulticallBatcher(factory)

    futures = [multicall.wrap(factory.erc20("ethereum", address)).totalSupply() for address in addresses]
    results = await asyncio.gather(*futures)

    assert results == [100, 101, 102]
    assert len(chain.requests) == 1


@pytest.mark.asyncio
async def test_sequential_awaits_make_separate_batches(chain, factory):
    chain.on(C1, ERC20.get_function("decimals"), 18)
    multicall = MulticallBatcher(factory)
    token = multicall.wrap(factory.erc20("ethereum", C1))

    assert await token.decimals() == 18
    assert await token.decimals() == 18
    assert multicall.request_count == 2
    assert multicall.call_count == 2


@pytest.mark.asyncio
async def test_reverted_call_is_isolated(chain, factory):
    """One failing call out of five leaves the other four resolved."""
    addresses = [f"0x{str(i) * 40}" for i in range(1, 6)]
    for i, address in enumerate(addresses):
        chain.on(address, ERC20.get_function("totalSupply"), REVERT if i == 2 else i)
    multicall = MulticallBatcher(factory)

    results = await asyncio.gather(
        *(multicall.wrap(factory.erc20("ethereum", address)).totalSupply() for address in addresses),
        return_exceptions=True,
    )

    assert len(chain.requests) == 1
    assert isinstance(results[2], DecodeError)
    assert "call reverted" in str(results[2])
    assert [r for i, r in enumerate(results) if i != 2] == [0, 1, 3, 4]


@pytest.mark.asyncio
async def test_undecodable_result_is_isolated(chain, factory):
    """Return data that does not match the ABI fails only its own call."""
    as_string = ContractInterface("weird", [view_function("symbol", outputs=["uint8"])])
    chain.on(C1, as_string.get_function("symbol"), 7)
    chain.on(C2, ERC20.get_function("decimals"), 6)
    # symbol() expects a dynamic string; a bare uint8 word cannot be decoded as one
    multicall = MulticallBatcher(factory)

    symbol, decimals = await asyncio.gather(
        multicall.wrap(factory.erc20("ethereum", C1)).symbol(),
        multicall.wrap(factory.erc20("ethereum", C2)).decimals(),
        return_exceptions=True,
    )

    assert isinstance(symbol, DecodeError)
    assert symbol.function == "symbol()"
    assert decimals == 6


@pytest.mark.asyncio
async def test_network_failure_fails_whole_batch(chain, factory):
    chain.fail(httpx.ConnectError("connection refused"))
    multicall = MulticallBatcher(factory)

    results = await asyncio.gather(
        *(multicall.wrap(factory.erc20("ethereum", a)).totalSupply() for a in (C1, C2)),
        return_exceptions=True,
    )

    assert len(chain.requests) == 1
    assert all(isinstance(r, BatchExecutionError) for r in results)
    assert results[0] is results[1]
    assert isinstance(results[0].cause, httpx.ConnectError)
    assert results[0].__cause__ is results[0].cause


class ShortAnswerChain(FakeChain):
    """Aggregator that drops the last result."""

    async def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        self.requests.append((to.lower(), data))
        return encode(["(bool,bytes)[]"], [[(True, encode(["uint256"], [1]))]])


@pytest.mark.asyncio
async def test_length_mismatch_fails_whole_batch():
    chain = ShortAnswerChain()
    factory = make_factory({"ethereum": chain})
    multicall = MulticallBatcher(factory)

    results = await asyncio.gather(
        *(multicall.wrap(factory.erc20("ethereum", a)).totalSupply() for a in (C1, C2)),
        return_exceptions=True,
    )

    assert all(isinstance(r, BatchExecutionError) for r in results)
    assert isinstance(results[0].cause, DecodeError)


@pytest.mark.asyncio
async def test_networks_are_batched_independently():
    mainnet, optimism = FakeChain("ethereum"), FakeChain("optimism")
    mainnet.on(C1, ERC20.get_function("decimals"), 18)
    optimism.on(C1, ERC20.get_function("decimals"), 6)
    factory = make_factory({"ethereum": mainnet, "optimism": optimism})
    multicall = MulticallBatcher(factory)

    results = await asyncio.gather(
        multicall.wrap(factory.erc20("ethereum", C1)).decimals(),
        multicall.wrap(factory.erc20("optimism", C1)).decimals(),
    )

    assert results == [18, 6]
    assert len(mainnet.requests) == 1
    assert len(optimism.requests) == 1


@pytest.mark.asyncio
async def test_max_batch_size_splits_batches(chain, factory):
    chain.on(C1, ERC20.get_function("decimals"), 18)
    multicall = MulticallBatcher(factory, max_batch_size=2)
    token = multicall.wrap(factory.erc20("ethereum", C1))

    results = await asyncio.gather(*(token.decimals() for _ in range(5)))

    assert results == [18] * 5
    assert [len(batch) for batch in chain.aggregated] == [2, 2, 1]


@pytest.mark.asyncio
async def test_flush_sends_pending_batches(chain, factory):
    chain.on(C1, ERC20.get_function("decimals"), 18)
    multicall = MulticallBatcher(factory)
    future = multicall.wrap(factory.erc20("ethereum", C1)).decimals()

    assert multicall.pending_count == 1
    await multicall.flush()

    assert multicall.pending_count == 0
    assert future.done()
    assert future.result() == 18


def test_wrap_rejects_network_without_aggregator(chain):
    factory = make_factory({"ethereum": chain})
    handle = factory.erc20("polygon", C1)

    with pytest.raises(UnsupportedNetworkError):
        MulticallBatcher(factory).wrap(handle)


def test_max_batch_size_must_be_positive(factory):
    with pytest.raises(ValueError, match="positive"):
        MulticallBatcher(factory, max_batch_size=0)
