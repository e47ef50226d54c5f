"""CLI for ctoken reconciler."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.traceback import install

from ctoken_reconciler.config import Settings
from ctoken_reconciler.core import Account, AccountMerger, DerivativeToken, TokenRegistry, format_rate
from ctoken_reconciler.rates import CompoundRateOracle, RateStore

# Install rich traceback handler
install(show_locals=False)

app = typer.Typer(
    name="ctoken-reconciler",
    help="Merge Compound cToken accounts into their underlying token accounts",
    add_completion=False,
)

console = Console(stderr=True)


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _write_json(data: Any, output: Path | None) -> None:
    text = json.dumps(data, indent=2)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    console.print(f"[green]✓ Wrote {output}[/green]")


def _load_accounts(registry: TokenRegistry, raw_accounts: list[dict[str, Any]]) -> list[Account]:
    """
    Validate accounts read from JSON.

    The ``token`` field may be a full token object or just a token id, which
    is then resolved through the registry.

    Parameters
    ----------
    registry : TokenRegistry
        Token registry
    raw_accounts : list[dict[str, Any]]
        Decoded JSON accounts

    Returns
    -------
    list[Account]
        Validated accounts

    """
    accounts = []
    for raw in raw_accounts:
        data = dict(raw)
        if isinstance(data.get("token"), str):
            data["token"] = registry.get_token_by_id(data["token"])
        accounts.append(Account.model_validate(data))
    return accounts


async def _preload(settings: Settings, registry: TokenRegistry) -> tuple[RateStore, dict[str, dict[str, str]]]:
    async with CompoundRateOracle.from_settings(settings) as oracle:
        store = RateStore(registry, oracle=oracle, settings=settings)
        snapshot = await store.preload()
    return store, snapshot


async def _digest(
    settings: Settings,
    registry: TokenRegistry,
    accounts: list[Account],
    currency: str,
    snapshot: dict[str, Any] | None,
) -> list[Account]:
    async with CompoundRateOracle.from_settings(settings) as oracle:
        store = RateStore(registry, oracle=oracle, settings=settings)
        if snapshot is None:
            await store.preload()
        else:
            store.hydrate(snapshot)
        merger = AccountMerger(registry, store, settings)
        return await merger.digest_accounts(currency, accounts)


@app.command()
def preload(
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the snapshot to this file"),
    tokens: Path | None = typer.Option(None, "--tokens", "-t", help="Token list YAML file"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Fetch current rates of every cToken and print the snapshot as JSON.

    Examples:

        ctoken-reconciler preload --output rates.json
    """
    _setup_logging(debug)
    settings = Settings.from_env()
    registry = TokenRegistry.from_yaml(tokens)

    _, snapshot = asyncio.run(_preload(settings, registry))
    _write_json(snapshot, output)


@app.command()
def rates(
    snapshot: Path | None = typer.Option(None, "--snapshot", "-s", help="Snapshot file from 'preload'"),
    tokens: Path | None = typer.Option(None, "--tokens", "-t", help="Token list YAML file"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Show current cToken rates as a table."""
    _setup_logging(debug)
    settings = Settings.from_env()
    registry = TokenRegistry.from_yaml(tokens)

    if snapshot is None:
        store, _ = asyncio.run(_preload(settings, registry))
    else:
        store = RateStore(registry, settings=settings)
        store.hydrate(_read_json(snapshot))

    table = Table(title="cToken rates")
    table.add_column("Token", style="cyan")
    table.add_column("Underlying", style="magenta")
    table.add_column("Rate", justify="right", style="green")
    table.add_column("Supply APY", justify="right", style="yellow")

    for token in registry.list_tokens(include_delisted=True):
        if not isinstance(token, DerivativeToken):
            continue
        underlying = registry.get_underlying(token)
        table.add_row(
            token.ticker,
            underlying.ticker,
            format_rate(store.current_rate(token)),
            store.current_supply_apy(token) or "-",
        )

    Console().print(table)


@app.command()
def digest(
    accounts_file: Path = typer.Argument(..., help="JSON file with the token accounts of one wallet"),
    currency: str = typer.Option("ethereum", "--currency", "-c", help="Base currency of the accounts"),
    snapshot: Path | None = typer.Option(None, "--snapshot", "-s", help="Snapshot file from 'preload'"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write digested accounts to this file"),
    tokens: Path | None = typer.Option(None, "--tokens", "-t", help="Token list YAML file"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Merge cToken accounts into their underlying accounts and print the result as JSON.

    Examples:

        ctoken-reconciler digest accounts.json --snapshot rates.json
    """
    _setup_logging(debug)
    settings = Settings.from_env()
    registry = TokenRegistry.from_yaml(tokens)

    accounts = _load_accounts(registry, _read_json(accounts_file))
    snapshot_data = _read_json(snapshot) if snapshot else None

    digested = asyncio.run(_digest(settings, registry, accounts, currency, snapshot_data))
    _write_json([account.model_dump(mode="json") for account in digested], output)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
