"""Protocol adapters for various DeFi protocols."""

# Import all adapters to trigger auto-registration
from defi_positions.protocols.lido import EthereumLidoWstethTokenFetcher
from defi_positions.protocols.morpho import (
    EthereumMorphoBalanceFetcher,
    EthereumMorphoCompoundContractPositionFetcher,
    EthereumMorphoPositionPresenter,
)
from defi_positions.protocols.synthetix import (
    EthereumSynthetixSynthTokenFetcher,
    OptimismSynthetixSynthTokenFetcher,
)

__all__ = [
    "EthereumLidoWstethTokenFetcher",
    "EthereumMorphoBalanceFetcher",
    "EthereumMorphoCompoundContractPositionFetcher",
    "EthereumMorphoPositionPresenter",
    "EthereumSynthetixSynthTokenFetcher",
    "OptimismSynthetixSynthTokenFetcher",
]
