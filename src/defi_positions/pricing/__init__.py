"""Pricing services for token USD values."""

from defi_positions.pricing.chainlink import ChainlinkPricing
from defi_positions.pricing.defillama import DeFiLlamaPricing
from defi_positions.pricing.token_service import PricingSource, TokenMetadata, TokenService

__all__ = [
    "ChainlinkPricing",
    "DeFiLlamaPricing",
    "PricingSource",
    "TokenMetadata",
    "TokenService",
]
