"""Multi-network DeFi position valuation with batched on-chain reads."""

__version__ = "0.1.0"
