"""Diagnostic script: value every registered position group across its networks."""

import asyncio
import sys
import time

from defi_positions import protocols  # noqa: F401
from defi_positions.core.registry import ProtocolRegistry
from defi_positions.toolkit import AppToolkit, build_toolkit


async def scan_app(toolkit: AppToolkit, app_id: str) -> None:
    """Value one protocol on each network it supports and print a summary."""
    for network in ProtocolRegistry.get_networks(app_id):
        if not ProtocolRegistry.get_fetchers(app_id, network):
            continue
        print(f"\n{'='*60}")
        print(f"  {app_id} on {network}")
        print(f"{'='*60}")

        started = time.perf_counter()
        results = await toolkit.position_service.compute_positions(network, app_id)
        elapsed = time.perf_counter() - started

        for position in results.positions:
            liquidity = position.data_props.get("liquidity")
            liquidity_text = f"${liquidity:,.2f}" if liquidity is not None else "-"
            print(f"  {position.group_id:<10} {position.display_props.label:<12} {liquidity_text:>20}")
        for error in results.errors:
            print(f"  omitted {error.definition}: {error.error_type}: {error.message}")

        print(f"\n  {len(results.positions)} positions, {len(results.errors)} omitted in {elapsed:.2f}s")


async def main() -> None:
    """Scan the protocols given on the command line, or all of them."""
    app_ids = sys.argv[1:] or ProtocolRegistry.list_protocols()
    print(f"Scanning: {', '.join(app_ids)}")

    async with build_toolkit() as toolkit:
        for app_id in app_ids:
            await scan_app(toolkit, app_id)

    print(f"\n{'='*60}")
    print("  Scan complete.")
    print(f"{'='*60}")


if __name__ == "__main__":
    asyncio.run(main())
