"""Secure-TX command line: run the API server and operator utilities."""
import os
import asyncio
import logging

import click
from aiohttp import web

from .conf import MASTER_KEY_ENV
from .service import TxService
from .storage import PostgresRecordStore, create_db_pool, create_store
from .vault.config import VaultConfig, generate_master_key
from .vault.exceptions import ConfigurationError
from .web import create_app

logger = logging.getLogger("secure_tx")

# All-zero key for local demos only; never reachable without --demo.
DEMO_MASTER_KEY_HEX = "00" * 32


def _load_config(demo: bool) -> VaultConfig:
    if demo and not os.environ.get(MASTER_KEY_ENV):
        logger.warning(
            "DEMO MODE: %s is unset, using the all-zero master key. "
            "Records sealed now are readable by anyone. Never use in production.",
            MASTER_KEY_ENV,
        )
        return VaultConfig.from_env(master_key=bytes.fromhex(DEMO_MASTER_KEY_HEX))
    return VaultConfig.from_env()


@click.group()
@click.option("--log-level", default="INFO", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]))
def cli(log_level: str):
    """Secure-TX envelope encryption service."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides TX_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (overrides TX_PORT)")
@click.option("--demo", is_flag=True, help="Fall back to an all-zero master key (local demo only)")
def serve(host: str, port: int, demo: bool):
    """Run the HTTP API."""
    try:
        config = _load_config(demo)
    except ConfigurationError as err:
        raise click.ClickException(str(err)) from err

    async def init_app() -> web.Application:
        store = await create_store(config)
        app = create_app(
            TxService(config.master_key, store), cors_origin=config.cors_origin,
        )
        if isinstance(store, PostgresRecordStore):
            async def close_store(_app: web.Application) -> None:
                await store.close()
            app.on_cleanup.append(close_store)
        return app

    web.run_app(
        init_app(),
        host=host or config.host,
        port=port or config.port,
    )


@cli.command()
def keygen():
    """Print a fresh MASTER_KEY_HEX value."""
    click.echo(generate_master_key())


@cli.command("init-db")
@click.option("--database-url", envvar="DATABASE_URL", required=True,
              help="PostgreSQL connection string")
def init_db(database_url: str):
    """Create the records table in PostgreSQL."""

    async def _run() -> None:
        store = PostgresRecordStore(await create_db_pool(database_url))
        try:
            await store.create_table()
        finally:
            await store.close()

    asyncio.run(_run())
    click.echo("Table tx_secure_records is ready")


def main():
    cli()


if __name__ == "__main__":
    main()
