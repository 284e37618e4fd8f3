"""CLI for DeFi position valuation."""

import asyncio
import json
import logging
from enum import StrEnum

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

# Import all protocol adapters to trigger auto-registration
from defi_positions import protocols  # noqa: F401
from defi_positions.core.errors import DefiPositionsError
from defi_positions.core.models import (
    AppTokenPosition,
    AppTokenPositionBalance,
    ContractPosition,
    Network,
    PositionResults,
    TokenBalanceResponse,
)
from defi_positions.core.registry import ProtocolRegistry
from defi_positions.data import get_all_supported_networks, get_chain_id, get_multicall_address, get_rpc_endpoints
from defi_positions.toolkit import AppToolkit, build_toolkit

# Install rich traceback handler
install(show_locals=False)

app = typer.Typer(
    name="defi-positions",
    help="Value DeFi positions across EVM networks with batched on-chain reads",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _configure_logging(debug: bool) -> None:
    """Route library logs through rich; DEBUG level when ``debug`` is set."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=debug)],
        force=True,
    )
    # httpx logs every request at INFO/DEBUG
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def _compute_positions(network: Network, app_id: str) -> PositionResults:
    toolkit = build_toolkit()
    async with toolkit:
        return await toolkit.position_service.compute_positions(network, app_id)


async def _get_balances(network: Network, app_id: str, address: str) -> TokenBalanceResponse:
    fetcher_class = ProtocolRegistry.get_balance_fetcher(app_id, network)
    if fetcher_class is None:
        msg = f"No balance fetcher for {app_id} on {network}"
        raise typer.BadParameter(msg)
    toolkit: AppToolkit = build_toolkit()
    async with toolkit:
        return await fetcher_class(toolkit).get_balances(address)


def _run(coro, description: str, debug: bool):
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        try:
            return asyncio.run(coro)
        except DefiPositionsError as e:
            progress.stop()
            console.print(f"[bold red]Error:[/bold red] {e}")
            if debug:
                raise
            raise typer.Exit(1) from e


@app.command()
def positions(
    app_id: str = typer.Argument(..., help="Protocol to value (e.g. synthetix, lido, morpho)"),
    network: Network = typer.Option(Network.ETHEREUM_MAINNET, "--network", "-n", help="Network to query"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Value every position of a protocol on a network.

    Examples:

        # Synthetix synths on Optimism
        defi-positions positions synthetix --network optimism

        # Output as JSON
        defi-positions positions lido --format json
    """
    _configure_logging(debug)
    if not ProtocolRegistry.get_fetchers(app_id, network):
        console.print(f"[yellow]No position fetchers for {app_id} on {network}[/yellow]")
        raise typer.Exit(1)

    results = _run(_compute_positions(network, app_id), f"Valuing {app_id} positions on {network}...", debug)

    if format == OutputFormat.JSON:
        console.print_json(json.dumps(results.model_dump(mode="json")))
    else:
        _output_positions_table(app_id, network, results)


@app.command()
def balances(
    address: str = typer.Argument(..., help="Wallet address to query"),
    app_id: str = typer.Option(..., "--app", "-a", help="Protocol to query"),
    network: Network = typer.Option(Network.ETHEREUM_MAINNET, "--network", "-n", help="Network to query"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Get an account's balances in a protocol, grouped into products.

    Examples:

        defi-positions balances 0xABC... --app morpho
    """
    _configure_logging(debug)
    console.print(f"\n[bold cyan]Fetching {app_id} balances for:[/bold cyan] {address}")
    response = _run(_get_balances(network, app_id, address), f"Reading balances on {network}...", debug)

    if format == OutputFormat.JSON:
        console.print_json(json.dumps(response.model_dump(mode="json")))
    else:
        _output_balances_table(address, response)


@app.command()
def list_apps() -> None:
    """List all supported protocols."""
    table = Table(title="Supported Protocols", show_header=True, header_style="bold magenta")
    table.add_column("Protocol", style="cyan")
    table.add_column("Networks", style="green")
    table.add_column("Groups", style="yellow")

    for app_id in ProtocolRegistry.list_protocols():
        groups = sorted({fetcher.group_id for fetcher in ProtocolRegistry.get_fetchers(app_id)})
        table.add_row(app_id, ", ".join(ProtocolRegistry.get_networks(app_id)), ", ".join(groups))

    console.print(table)


@app.command()
def list_networks() -> None:
    """List all configured networks."""
    table = Table(title="Supported Networks", show_header=True, header_style="bold magenta")
    table.add_column("Network", style="cyan")
    table.add_column("Chain ID", style="blue", justify="right")
    table.add_column("Endpoints", style="green", justify="right")
    table.add_column("Multicall", style="yellow")

    for network in get_all_supported_networks():
        multicall = get_multicall_address(network)
        table.add_row(
            network,
            str(get_chain_id(network)),
            str(len(get_rpc_endpoints(network))),
            multicall or "[red]none[/red]",
        )

    console.print(table)


def _output_positions_table(app_id: str, network: str, results: PositionResults) -> None:
    """Output valued positions as rich table."""
    if not results.positions:
        console.print("\n[yellow]No positions found[/yellow]")
    else:
        table = Table(title=f"{app_id} on {network}", show_header=True, header_style="bold magenta")
        table.add_column("Group", style="cyan")
        table.add_column("Label", style="green")
        table.add_column("Address", style="dim")
        table.add_column("Price", style="white", justify="right")
        table.add_column("Liquidity", style="bold green", justify="right")

        for position in results.positions:
            liquidity = position.data_props.get("liquidity")
            price = f"${position.price:,.4f}" if isinstance(position, AppTokenPosition) else "-"
            table.add_row(
                position.group_id,
                position.display_props.label,
                position.address,
                price,
                f"${liquidity:,.2f}" if liquidity is not None else "-",
            )

        console.print("\n")
        console.print(table)

    for error in results.errors:
        console.print(f"[yellow]Omitted {error.definition}:[/yellow] [dim]{error.error_type}: {error.message}[/dim]")


def _output_balances_table(address: str, response: TokenBalanceResponse) -> None:
    """Output balance products as rich tables."""
    if not response.products:
        console.print("\n[yellow]No balances found[/yellow]")

    for product in response.products:
        table = Table(title=product.label, show_header=True, header_style="bold magenta")
        table.add_column("Position", style="cyan")
        table.add_column("Token", style="green")
        table.add_column("Role", style="yellow")
        table.add_column("Balance", style="white", justify="right")
        table.add_column("USD Value", style="bold green", justify="right")

        for asset in product.assets:
            if isinstance(asset, AppTokenPositionBalance):
                table.add_row(
                    asset.position.display_props.label,
                    asset.position.symbol,
                    "wallet",
                    f"{asset.balance:,.4f}",
                    f"${asset.balance_usd:,.2f}",
                )
                continue
            position: ContractPosition = asset.position
            for token in asset.tokens:
                table.add_row(
                    position.display_props.label,
                    token.token.symbol,
                    token.meta_type.value,
                    f"{token.balance:,.4f}",
                    f"${token.balance_usd:,.2f}",
                )

        console.print("\n")
        console.print(table)
        for item in product.meta:
            value = f"{item.value:.2%}" if item.type == "pct" else f"${item.value:,.2f}"
            console.print(f"  [bold]{item.label}:[/bold] {value}")

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Label", style="bold")
    summary_table.add_column("Value", style="bold green")
    for item in response.meta:
        summary_table.add_row(f"{item.label}:", f"${item.value:,.2f}")

    console.print("\n")
    console.print(summary_table)
    if response.error:
        console.print(f"[yellow]Some positions were omitted:[/yellow] [dim]{response.error}[/dim]")
    console.print("\n")


if __name__ == "__main__":
    app()
