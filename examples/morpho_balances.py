"""
Example script reading Morpho-Compound balances with real RPC calls.

Market valuation, price lookups and per-account reads all go through the
toolkit, so the whole run costs a handful of batched ``eth_call`` requests.

Requirements:
1. Optionally point DEFI_POSITIONS_RPC_ETHEREUM at your own endpoint(s)
   - export DEFI_POSITIONS_RPC_ETHEREUM="https://mainnet.infura.io/v3/<key>"

Usage:
    python examples/morpho_balances.py 0xYourAddress
"""

import asyncio
import sys

from defi_positions.protocols.morpho import EthereumMorphoBalanceFetcher
from defi_positions.toolkit import build_toolkit


async def main(address: str) -> None:
    """Print the Morpho-Compound product of an account."""
    print("Reading Morpho-Compound balances")
    print("=" * 50)
    print(f"Address: {address}")
    print()

    async with build_toolkit() as toolkit:
        response = await EthereumMorphoBalanceFetcher(toolkit).get_balances(address)

    if not response.products:
        print("No balances found for this address")

    for product in response.products:
        print(f"{product.label}:")
        for asset in product.assets:
            for token in asset.tokens:
                amount = f"{token.balance:>18.6f} {token.token.symbol:<6}"
                print(f"  {token.meta_type.value:<9} {amount} ${token.balance_usd:,.2f}")
        for item in product.meta:
            value = f"{item.value:.2%}" if item.type == "pct" else f"${item.value:,.2f}"
            print(f"  {item.label}: {value}")
        print()

    for item in response.meta:
        print(f"{item.label}: ${item.value:,.2f}")
    if response.error:
        print(f"Omitted: {response.error}")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python examples/morpho_balances.py <address>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1]))
