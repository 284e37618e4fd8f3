"""Contract interfaces, ABI codec and the contract factory."""

from defi_positions.contracts.abis import CHAINLINK_AGGREGATOR, ERC20, MULTICALL3, view_function
from defi_positions.contracts.factory import (
    BoundFunction,
    ContractDescriptor,
    ContractFactory,
    ContractHandle,
    normalize_address,
)
from defi_positions.contracts.interface import ContractInterface, FunctionSpec, canonical_type

__all__ = [
    "CHAINLINK_AGGREGATOR",
    "ERC20",
    "MULTICALL3",
    "BoundFunction",
    "ContractDescriptor",
    "ContractFactory",
    "ContractHandle",
    "ContractInterface",
    "FunctionSpec",
    "canonical_type",
    "normalize_address",
    "view_function",
]
