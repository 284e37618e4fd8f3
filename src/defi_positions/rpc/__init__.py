"""RPC layer with provider resolution, multicall batching, retry policy and caching."""

from defi_positions.rpc.provider import JsonRpcProvider, NetworkProviderResolver, ProviderHandle
from defi_positions.rpc.cache import CacheEntry, TTLCache
from defi_positions.rpc.multicall import BatchedCall, BatchedContract, MulticallBatcher
from defi_positions.rpc.retry import RetryConfig, retry_async

__all__ = [
    "BatchedCall",
    "BatchedContract",
    "CacheEntry",
    "JsonRpcProvider",
    "MulticallBatcher",
    "NetworkProviderResolver",
    "ProviderHandle",
    "RetryConfig",
    "TTLCache",
    "retry_async",
]
