"""Core data models, the error taxonomy and the adapter registry."""

from defi_positions.core.errors import (
    BatchExecutionError,
    DecodeError,
    DefiPositionsError,
    InvalidAddressError,
    PriceUnavailableError,
    RPCError,
    UnsupportedNetworkError,
)
from defi_positions.core.models import (
    AppTokenPosition,
    AppTokenPositionBalance,
    BaseToken,
    ContractPosition,
    ContractPositionBalance,
    ContractType,
    DisplayItem,
    DisplayItemType,
    DisplayProps,
    MetadataItem,
    MetaType,
    Network,
    PositionError,
    PositionResults,
    PositionToken,
    ProductItem,
    StatsItem,
    TokenBalance,
    TokenBalanceResponse,
)
from defi_positions.core.registry import ProtocolRegistry

__all__ = [
    "AppTokenPosition",
    "AppTokenPositionBalance",
    "BaseToken",
    "BatchExecutionError",
    "ContractPosition",
    "ContractPositionBalance",
    "ContractType",
    "DecodeError",
    "DefiPositionsError",
    "DisplayItem",
    "DisplayItemType",
    "DisplayProps",
    "InvalidAddressError",
    "MetaType",
    "MetadataItem",
    "Network",
    "PositionError",
    "PositionResults",
    "PositionToken",
    "PriceUnavailableError",
    "ProductItem",
    "ProtocolRegistry",
    "RPCError",
    "StatsItem",
    "TokenBalance",
    "TokenBalanceResponse",
    "UnsupportedNetworkError",
]
