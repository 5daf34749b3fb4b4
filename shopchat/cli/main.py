"""ShopChat CLI: server and tenant administration.

Usage:
    shopchat serve                Start the API server
    shopchat init-db              Create database tables
    shopchat store create ...     Register a store and print its API key
    shopchat store list           List registered stores
    shopchat config show          Display resolved configuration
"""

import json
import logging
import os
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from shopchat.config import get_config
from shopchat.utils.redaction import redact_for_logging

_log = logging.getLogger(__name__)

app = typer.Typer(
    name="shopchat",
    help="Catalog-grounded customer support chat backend",
    no_args_is_help=True,
)
store_app = typer.Typer(help="Manage stores (tenants)")
config_app = typer.Typer(help="Configuration management")

app.add_typer(store_app, name="store")
app.add_typer(config_app, name="config")

console = Console()


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to shopchat.yaml config file"
    ),
):
    """ShopChat CLI."""
    if config:
        # Database modules read configuration on import, so the path must
        # be in place before any command imports them.
        os.environ["SHOPCHAT_CONFIG_PATH"] = config
        get_config.cache_clear()


# --- Server ---


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Start the API server with uvicorn."""
    import uvicorn

    cfg = get_config()
    bind_host = host or cfg.app.host
    bind_port = port or cfg.app.port
    console.print(
        f"[green]Starting ShopChat API[/green] on http://{bind_host}:{bind_port} "
        f"({cfg.app.environment})"
    )
    uvicorn.run(
        "shopchat.api.main:app",
        host=bind_host,
        port=bind_port,
        log_level=cfg.app.log_level,
        reload=reload,
    )


@app.command("init-db")
def init_db_command():
    """Create database tables (idempotent)."""
    from shopchat.db.connection import DATABASE_URL, init_db

    init_db()
    console.print(f"[green]Database ready:[/green] {DATABASE_URL}")


# --- Store commands ---


@store_app.command("create")
def store_create(
    name: str = typer.Argument(..., help="Store display name"),
    domain: str = typer.Argument(..., help="Shop domain or site URL"),
    platform: str = typer.Option("woo", "--platform", help="shopify, woo or static"),
    shopify_token: Optional[str] = typer.Option(None, "--shopify-token"),
    woo_key: Optional[str] = typer.Option(None, "--woo-key"),
    woo_secret: Optional[str] = typer.Option(None, "--woo-secret"),
    shopify_webhook_secret: Optional[str] = typer.Option(None, "--shopify-webhook-secret"),
    woo_webhook_secret: Optional[str] = typer.Option(None, "--woo-webhook-secret"),
    bot_name: Optional[str] = typer.Option(None, "--bot-name"),
    welcome_message: Optional[str] = typer.Option(None, "--welcome-message"),
    shipping_policy: Optional[str] = typer.Option(None, "--shipping-policy"),
    returns_policy: Optional[str] = typer.Option(None, "--returns-policy"),
    max_messages: Optional[int] = typer.Option(None, "--max-messages"),
):
    """Register a store and print its generated API key."""
    from shopchat.db.connection import get_db_context, init_db
    from shopchat.errors import ValidationError
    from shopchat.services.store_service import StoreService

    init_db()
    try:
        with get_db_context() as db:
            store = StoreService(db).create_store(
                name,
                domain,
                platform_type=platform,
                shopify_token=shopify_token,
                woo_key=woo_key,
                woo_secret=woo_secret,
                shopify_webhook_secret=shopify_webhook_secret,
                woo_webhook_secret=woo_webhook_secret,
                bot_name=bot_name,
                welcome_message=welcome_message,
                shipping_policy=shipping_policy,
                returns_policy=returns_policy,
                max_messages=max_messages,
            )
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]Store created:[/green] {store.id}")
    console.print(f"  API key: [bold]{store.api_key}[/bold]")


@store_app.command("list")
def store_list(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List registered stores."""
    from shopchat.db.connection import get_db_context
    from shopchat.services.store_service import StoreService

    with get_db_context() as db:
        stores = StoreService(db).list_stores()

    if as_json:
        console.print_json(json.dumps([
            {"id": s.id, "name": s.name, "domain": s.domain, "platform_type": s.platform_type}
            for s in stores
        ]))
        return

    table = Table(title="Stores", show_lines=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Domain")
    table.add_column("Platform")
    table.add_column("Active")
    for s in stores:
        table.add_row(
            s.id,
            s.name,
            s.domain,
            s.platform_type or "-",
            "[green]yes[/green]" if s.bot_active else "[red]no[/red]",
        )
    console.print(table)


@store_app.command("show")
def store_show(
    identifier: str = typer.Argument(..., help="Store id, domain or API key"),
):
    """Show one store with credentials masked."""
    from shopchat.db.connection import get_db_context
    from shopchat.errors import NotFoundError
    from shopchat.services.store_service import StoreService

    try:
        with get_db_context() as db:
            store = StoreService(db).get_store(identifier)
    except NotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(show_header=False, box=None)
    for key, value in redact_for_logging(store.model_dump()).items():
        table.add_row(f"[bold]{key}[/bold]", "" if value is None else str(value))
    console.print(table)


# --- Config commands ---


@config_app.command("show")
def config_show():
    """Display resolved configuration (secrets masked)."""
    cfg = redact_for_logging(get_config().model_dump())
    for section, values in cfg.items():
        console.print(f"[bold]{section}:[/bold]")
        for key, value in values.items():
            console.print(f"  {key}: {value}")


if __name__ == "__main__":
    app()
