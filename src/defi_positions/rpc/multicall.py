"""Multicall support for batching contract reads into single Multicall3 requests."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from defi_positions.core.errors import BatchExecutionError, DecodeError

if TYPE_CHECKING:
    from defi_positions.contracts.factory import ContractFactory, ContractHandle

logger = logging.getLogger(__name__)


@dataclass
class BatchedCall:
    """
    One contract read waiting in a batch.

    Attributes
    ----------
    target : str
        Contract address
    call_data : bytes
        ABI encoded call
    decode : Callable[[bytes], Any]
        Turns the raw return data into the caller's value
    signature : str
        Function signature, used in error messages
    future : asyncio.Future
        Resolved when the batch executes

    """

    target: str
    call_data: bytes
    decode: Callable[[bytes], Any]
    signature: str
    future: asyncio.Future


@dataclass
class _Batch:
    network: str
    calls: list[BatchedCall] = field(default_factory=list)
    dispatched: bool = False


class BatchedContract:
    """
    Proxy of a contract handle whose method calls are recorded instead of sent.

    ``batched.totalSupply()`` returns an ``asyncio.Future`` resolved once the
    batch it joined has executed.

    """

    def __init__(self, batcher: "MulticallBatcher", handle: "ContractHandle") -> None:
        self._batcher = batcher
        self._handle = handle

    @property
    def address(self) -> str:
        return self._handle.address

    @property
    def network(self) -> str:
        return self._handle.network

    def __getattr__(self, name: str) -> Callable[..., asyncio.Future]:
        if name.startswith("_"):
            raise AttributeError(name)
        spec = self._handle.interface.get_function(name)
        handle = self._handle
        batcher = self._batcher

        def record(*args: Any) -> asyncio.Future:
            return batcher.add_call(handle.network, handle.address, spec.encode(*args), spec.decode, spec.signature)

        record.__name__ = name
        return record

    def __repr__(self) -> str:
        return f"BatchedContract({self._handle!r})"


class MulticallBatcher:
    """
    Coalesces contract reads into one Multicall3 ``aggregate3`` request per network and tick.

    Calls recorded through :meth:`wrap` join the open batch of their network.
    The first call of a batch schedules its execution with ``loop.call_soon``,
    so the batch is sent as soon as the recording code yields to the event
    loop; every call made before that point shares one request. A batch that
    reaches ``max_batch_size`` is closed immediately and sent on its own.

    One batcher is meant to be owned by a single pipeline invocation and
    discarded afterwards. It never retries.

    Parameters
    ----------
    contract_factory : ContractFactory
        Resolves aggregator addresses and network providers
    max_batch_size : int
        Maximum calls per aggregated request
    allow_failure : bool
        Let individual calls revert without failing the whole request

    """

    def __init__(
        self,
        contract_factory: "ContractFactory",
        max_batch_size: int = 500,
        *,
        allow_failure: bool = True,
    ) -> None:
        if max_batch_size < 1:
            msg = "max_batch_size must be positive"
            raise ValueError(msg)
        self.contract_factory = contract_factory
        self.max_batch_size = max_batch_size
        self.allow_failure = allow_failure
        self._open: dict[str, _Batch] = {}
        self._inflight: set[asyncio.Task] = set()
        self.request_count = 0
        self.call_count = 0

    def wrap(self, handle: "ContractHandle") -> BatchedContract:
        """
        Wrap a contract handle so its reads are batched.

        Parameters
        ----------
        handle : ContractHandle
            Contract to wrap

        Returns
        -------
        BatchedContract
            Proxy exposing the same read functions

        Raises
        ------
        UnsupportedNetworkError
            If the network has no aggregator contract or no provider

        """
        self.contract_factory.aggregator_address(handle.network)
        self.contract_factory.get_provider(handle.network)
        return BatchedContract(self, handle)

    def add_call(
        self,
        network: str,
        target: str,
        call_data: bytes,
        decode: Callable[[bytes], Any],
        signature: str = "call",
    ) -> asyncio.Future:
        """
        Record a call into the open batch of a network.

        Must be called from a coroutine running on the event loop.

        Parameters
        ----------
        network : str
            Network name
        target : str
            Contract address
        call_data : bytes
            ABI encoded call
        decode : Callable[[bytes], Any]
            Decoder for the return data
        signature : str
            Function signature for error messages

        Returns
        -------
        asyncio.Future
            Resolved with the decoded value, or failed with ``DecodeError``
            or ``BatchExecutionError``

        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        batch = self._open.get(network)
        if batch is None:
            batch = _Batch(network)
            self._open[network] = batch
            loop.call_soon(self._dispatch, batch)

        batch.calls.append(BatchedCall(target, call_data, decode, signature, future))
        self.call_count += 1

        if len(batch.calls) >= self.max_batch_size:
            self._dispatch(batch)
        return future

    def _dispatch(self, batch: _Batch) -> None:
        if self._open.get(batch.network) is batch:
            del self._open[batch.network]
        if batch.dispatched:
            return
        batch.dispatched = True

        task = asyncio.get_running_loop().create_task(self._execute(batch.network, batch.calls))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _execute(self, network: str, calls: list[BatchedCall]) -> None:
        """Send one aggregated request and settle every call of the batch."""
        logger.debug("Executing multicall batch of %d calls on %s", len(calls), network)
        try:
            aggregator = self.contract_factory.multicall(network)
            aggregate3 = aggregator.interface.get_function("aggregate3")
            payload = aggregate3.encode([(call.target, self.allow_failure, call.call_data) for call in calls])
            self.request_count += 1
            raw = await aggregator.provider.eth_call(aggregator.address, payload)
            results = aggregate3.decode(raw)
            if len(results) != len(calls):
                msg = f"aggregator returned {len(results)} results for {len(calls)} calls"
                raise DecodeError(aggregate3.signature, msg, target=aggregator.address)
        except asyncio.CancelledError:
            for call in calls:
                call.future.cancel()
            raise
        except Exception as e:
            logger.debug("Multicall batch on %s failed: %s", network, e)
            error = BatchExecutionError(network, len(calls), e)
            error.__cause__ = e
            for call in calls:
                if not call.future.done():
                    call.future.set_exception(error)
            return

        for call, (success, return_data) in zip(calls, results, strict=True):
            if call.future.done():
                continue
            if not success:
                call.future.set_exception(DecodeError(call.signature, "call reverted", target=call.target))
                continue
            try:
                value = call.decode(return_data)
            except DecodeError as e:
                call.future.set_exception(DecodeError(call.signature, e.reason, target=call.target))
            except Exception as e:
                call.future.set_exception(DecodeError(call.signature, repr(e), target=call.target))
            else:
                call.future.set_result(value)

    async def flush(self) -> None:
        """Send all open batches now and wait for every in-flight batch to settle."""
        for batch in list(self._open.values()):
            self._dispatch(batch)
        while self._inflight:
            await asyncio.gather(*list(self._inflight))

    @property
    def pending_count(self) -> int:
        """
        Get number of calls recorded but not yet sent.

        Returns
        -------
        int
            Number of pending calls

        """
        return sum(len(batch.calls) for batch in self._open.values())
