"""
Cardano wallet CLI - query addresses, submit transactions and run the API server.
"""

from __future__ import annotations

import asyncio
import secrets
import signal
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from adacore.exceptions import WalletError
from adacore.models import ada_to_lovelace, format_lovelace
from loguru import logger
from pydantic import ValidationError

from adawallet.backends.base import ChainBackend
from adawallet.config import Settings, get_settings

app = typer.Typer(
    name="ada-wallet",
    help="Cardano payments signed by an external wallet",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _invalid_settings(e: ValidationError) -> typer.Exit:
    for error in e.errors():
        field = ".".join(str(part) for part in error["loc"])
        logger.error(f"Invalid {field}: {error['msg']}")
    return typer.Exit(1)


def override_settings(settings: Settings, updates: dict[str, Any]) -> Settings:
    """Apply command line overrides, validated like any other setting."""
    if not updates:
        return settings
    try:
        return Settings(**{**settings.model_dump(), **updates})
    except ValidationError as e:
        raise _invalid_settings(e) from e


def load_settings(network: str | None = None, log_level: str | None = None) -> Settings:
    try:
        settings = get_settings()
    except ValidationError as e:
        raise _invalid_settings(e) from e

    updates: dict[str, Any] = {}
    if network:
        updates["blockfrost_network"] = network
    if log_level:
        updates["log_level"] = log_level
    settings = override_settings(settings, updates)
    setup_logging(settings.log_level)
    return settings


def create_backend(settings: Settings) -> ChainBackend:
    return settings.create_backend()


def _run(coro) -> None:
    """Run a command coroutine, reporting wallet errors as a failed exit."""
    try:
        asyncio.run(coro)
    except WalletError as e:
        logger.error(f"{e.user_message}: {e.detail}")
        raise typer.Exit(1)
    except ValueError as e:
        logger.error(str(e))
        raise typer.Exit(1)


NetworkOption = Annotated[
    str | None, typer.Option("--network", "-n", help="mainnet | preprod | preview")
]
LogLevelOption = Annotated[str | None, typer.Option("--log-level", "-l")]


@app.command()
def serve(
    host: Annotated[str | None, typer.Option("--host", help="HTTP bind host")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="HTTP port")] = None,
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Run the wallet HTTP API."""
    settings = load_settings(network, log_level)
    updates: dict[str, Any] = {}
    if host:
        updates["http_host"] = host
    if port:
        updates["http_port"] = port
    settings = override_settings(settings, updates)

    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


async def _serve(settings: Settings) -> None:
    from adawallet.server import WalletApiServer

    logger.info("Starting Cardano wallet API")
    logger.info(f"Network: {settings.blockfrost_network}")
    logger.info(f"Blockfrost: {settings.get_blockfrost_url()}")

    server = WalletApiServer(settings, create_backend(settings))
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await server.start()
        await stop_event.wait()
        logger.info("Received shutdown signal")
    finally:
        await server.stop()


@app.command()
def summary(
    address: Annotated[str, typer.Argument(help="Address (bech32)")],
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show the balance of an address."""
    settings = load_settings(network, log_level)
    _run(_show_summary(settings, address))


async def _show_summary(settings: Settings, address: str) -> None:
    backend = create_backend(settings)
    try:
        result = await backend.get_address_summary(address)
    finally:
        await backend.close()

    lovelace = int(result.lovelace)
    print(f"\nAddress: {result.address}")
    print(f"Balance: {lovelace:,} lovelace ({format_lovelace(lovelace)})")
    print(f"UTxOs:   {len(result.utxos)}")


@app.command()
def utxos(
    address: Annotated[str, typer.Argument(help="Address (bech32)")],
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """List the UTxOs at an address."""
    settings = load_settings(network, log_level)
    _run(_list_utxos(settings, address))


async def _list_utxos(settings: Settings, address: str) -> None:
    backend = create_backend(settings)
    try:
        result = await backend.get_utxos(address)
    finally:
        await backend.close()

    if not result:
        print("\nNo UTxOs found.")
        return

    print(f"\nFound {len(result)} UTxO(s):\n")
    for utxo in result:
        assets = "  (+ native assets)" if utxo.has_assets else ""
        print(f"  {utxo.outpoint}  {utxo.lovelace:>15,} lovelace{assets}")


@app.command()
def params(
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show the current protocol parameters."""
    settings = load_settings(network, log_level)
    _run(_show_params(settings))


async def _show_params(settings: Settings) -> None:
    backend = create_backend(settings)
    try:
        result = await backend.get_protocol_parameters()
    finally:
        await backend.close()

    print()
    for name, value in result.model_dump().items():
        print(f"  {name:<20} {value}")


@app.command()
def submit(
    tx_hex: Annotated[str | None, typer.Argument(help="Signed transaction (hex)")] = None,
    tx_file: Annotated[
        Path | None, typer.Option("--file", "-f", help="File holding the transaction hex")
    ] = None,
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Submit a signed transaction."""
    settings = load_settings(network, log_level)

    if tx_file:
        if not tx_file.exists():
            logger.error(f"Transaction file not found: {tx_file}")
            raise typer.Exit(1)
        tx_hex = tx_file.read_text().strip()

    if not tx_hex:
        logger.error("Transaction required. Pass it as an argument or use --file")
        raise typer.Exit(1)

    _run(_submit(settings, tx_hex))


async def _submit(settings: Settings, tx_hex: str) -> None:
    from adawallet.wallet.submission import SubmissionClient

    backend = create_backend(settings)
    try:
        tx_hash = await SubmissionClient(backend).submit_hex(tx_hex)
    finally:
        await backend.close()
    print(f"\nSubmitted: {tx_hash}")


SeedOption = Annotated[
    str | None,
    typer.Option("--seed", envvar="ADA_WALLET_SEED", help="32-byte ed25519 seed (hex)"),
]


@app.command()
def address(
    seed: SeedOption = None,
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show the address of a development key, generating a key if none is given."""
    from adawallet.signers.local import LocalSigningAgent

    settings = load_settings(network, log_level)

    generated = seed is None
    if seed is None:
        seed = secrets.token_hex(32)

    try:
        agent = LocalSigningAgent.from_hex(seed, network=settings.blockfrost_network)
    except ValueError as e:
        logger.error(f"Invalid seed: {e}")
        raise typer.Exit(1)

    if generated:
        typer.echo("\nGenerated a new development key. Anyone with this seed can spend its funds:")
        typer.echo(f"\n  Seed:    {seed}")
    typer.echo(f"  Address: {agent.address}\n")


@app.command()
def send(
    destination: Annotated[str, typer.Argument(help="Destination address (bech32)")],
    amount: Annotated[str, typer.Argument(help="Amount in ADA, e.g. 1.5")],
    seed: SeedOption = None,
    message: Annotated[
        str | None, typer.Option("--message", "-m", help="CIP-20 message to attach")
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Sign without asking")] = False,
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Send ADA from a development key."""
    settings = load_settings(network, log_level)

    if not seed:
        logger.error("Seed required. Use --seed or ADA_WALLET_SEED env var")
        raise typer.Exit(1)

    try:
        lovelace = ada_to_lovelace(amount)
    except ValueError as e:
        logger.error(str(e))
        raise typer.Exit(1)

    _run(_send(settings, seed, destination, lovelace, message, yes))


async def _send(
    settings: Settings,
    seed: str,
    destination: str,
    lovelace: int,
    message: str | None,
    yes: bool,
) -> None:
    from adacore.transaction import TransactionBody

    from adawallet.signers.local import LocalSigningAgent
    from adawallet.wallet.payment import PaymentFlow
    from adawallet.wallet.session import WalletSession

    def approve(body: TransactionBody) -> bool:
        if yes:
            return True
        typer.echo(f"\nPaying {format_lovelace(lovelace)} to {destination}")
        typer.echo(f"Fee:    {format_lovelace(body.fee)}")
        return typer.confirm("Sign and submit?")

    agent = LocalSigningAgent.from_hex(
        seed, network=settings.blockfrost_network, approve=approve
    )
    backend = create_backend(settings)
    session = WalletSession()

    try:
        await session.connect(agent)
        result = await PaymentFlow(backend, session, settings).send(destination, lovelace, message)
    finally:
        await session.disconnect()
        await backend.close()

    print(f"\nSubmitted: {result.tx_hash}")
    print(f"Fee:       {format_lovelace(result.fee)}")
    print(f"Change:    {format_lovelace(result.change)}")
    print(f"Balance:   {format_lovelace(result.balance)} (expected)")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
