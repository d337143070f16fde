"""multiship CLI: inspect and repair ship-to-multiple-recipients checkouts.

Usage:
    multiship status CHECKOUT_ID        Reconcile a checkout and show its items
    multiship cache list CHECKOUT_ID    Show cached consignments
    multiship cache clear CHECKOUT_ID   Drop cached consignments
    multiship config show               Show resolved configuration
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console

from multiship.cli.config import MultiShipConfig, load_config
from multiship.cli.factory import get_cache, get_gateway
from multiship.cli.output import format_entries, format_failures, format_records
from multiship.errors import format_error
from multiship.services.wizard import WizardController
from multiship.utils.log_config import configure_logging

app = typer.Typer(
    name="multiship",
    help="Ship-to-multiple-recipients checkout tooling",
    no_args_is_help=True,
)
cache_app = typer.Typer(help="Manage the local consignment cache")
config_app = typer.Typer(help="Configuration management")

app.add_typer(cache_app, name="cache")
app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None


def _load() -> MultiShipConfig:
    try:
        cfg = load_config(config_path=_config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return cfg or MultiShipConfig()


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to multiship.yaml config file"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override the configured log level"
    ),
):
    """multiship: per-item shipping for checkouts."""
    global _config_path
    _config_path = config
    try:
        cfg = load_config(config_path=config) or MultiShipConfig()
    except (FileNotFoundError, ValueError):
        # Reported by the command that needs the config
        cfg = MultiShipConfig()
    configure_logging(level=log_level or cfg.logging.level, fmt=cfg.logging.format)


# --- Version ---


@app.command()
def version():
    """Show multiship version."""
    from importlib.metadata import version as pkg_version
    try:
        v = pkg_version("multiship")
    except Exception:
        v = "unknown"
    console.print(f"[bold]multiship[/bold] v{v}")


# --- Status ---


@app.command()
def status(
    checkout_id: str = typer.Argument(help="Checkout ID"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Storefront origin"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Reconcile a checkout's consignments and show per-item configuration."""
    cfg = _load()
    gateway = get_gateway(base_url=base_url, config=cfg)
    cache = get_cache(checkout_id, config=cfg)

    async def _run() -> bool:
        async with gateway:
            wizard = WizardController(
                gateway,
                cache,
                checkout_id,
                features=cfg.to_feature_flags(),
                required_fields=cfg.address.required_fields,
                delivery_date_option_id=cfg.storefront.delivery_date_option_id,
            )
            ok = await wizard.start()
            if not ok:
                console.print(f"[red]{format_error(wizard.error)}[/red]")
                return False
            output = format_entries(
                wizard.entries(),
                states=wizard.states,
                all_configured=wizard.all_configured,
                as_json=json_output,
            )
            console.print(output)
            result = wizard.last_result
            if result is not None and result.failures and not json_output:
                console.print(format_failures(result.failures))
            return True

    if not asyncio.run(_run()):
        raise typer.Exit(1)


# --- Cache commands ---


@cache_app.command("list")
def cache_list(
    checkout_id: str = typer.Argument(help="Checkout ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show cached consignments for a checkout."""
    cfg = _load()
    cache = get_cache(checkout_id, config=cfg)
    console.print(format_records(cache.records(), as_json=json_output))


@cache_app.command("clear")
def cache_clear(
    checkout_id: str = typer.Argument(help="Checkout ID"),
):
    """Drop every cached consignment for a checkout."""
    cfg = _load()
    cache = get_cache(checkout_id, config=cfg)
    count = len(cache.records())
    cache.clear()
    console.print(f"Cleared {count} cached consignment(s) for {checkout_id}.")


# --- Config commands ---


@config_app.command("show")
def config_show():
    """Display resolved configuration."""
    cfg = load_config(config_path=_config_path)
    if cfg is None:
        console.print("[yellow]No config file found; showing defaults.[/yellow]")
        console.print("Searched: ./multiship.yaml, ~/.multiship/config.yaml")
        cfg = MultiShipConfig()

    console.print("[bold]Storefront:[/bold]")
    console.print(f"  base_url: {cfg.storefront.base_url}")
    console.print(f"  timeout: {cfg.storefront.timeout}")
    console.print(f"  gift_message_url: {cfg.storefront.gift_message_url or '-'}")
    console.print(f"  delivery_date_option_id: {cfg.storefront.delivery_date_option_id or '-'}")

    console.print("\n[bold]Features:[/bold]")
    console.print(f"  delivery_dates_enabled: {cfg.features.delivery_dates_enabled}")
    console.print(f"  gift_messages_enabled: {cfg.features.gift_messages_enabled}")
    console.print(f"  auto_recommend_option: {cfg.features.auto_recommend_option}")

    console.print("\n[bold]Cache:[/bold]")
    console.print(f"  enabled: {cfg.cache.enabled}")
    console.print(f"  path: {cfg.cache.path}")

    console.print("\n[bold]Logging:[/bold]")
    console.print(f"  level: {cfg.logging.level}")
    console.print(f"  format: {cfg.logging.format}")

    console.print("\n[bold]Address:[/bold]")
    console.print(f"  required_fields: {', '.join(cfg.address.required_fields)}")


@config_app.command("validate")
def config_validate(
    config: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Validate a config file."""
    path = config or _config_path
    try:
        cfg = load_config(config_path=path)
        if cfg is None:
            console.print("[red]No config file found.[/red]")
            raise typer.Exit(1)
        if cfg.features.delivery_dates_enabled and not cfg.storefront.delivery_date_option_id:
            console.print(
                "[red]Config validation failed:[/red] delivery dates are enabled "
                "but storefront.delivery_date_option_id is not set"
            )
            raise typer.Exit(1)
        if cfg.features.gift_messages_enabled and not cfg.storefront.gift_message_url:
            console.print(
                "[red]Config validation failed:[/red] gift messages are enabled "
                "but storefront.gift_message_url is not set"
            )
            raise typer.Exit(1)
        console.print("[green]Config is valid.[/green]")
        console.print(f"  Storefront: {cfg.storefront.base_url}")
        console.print(f"  Cache: {'enabled' if cfg.cache.enabled else 'disabled'}")
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e}")
        raise typer.Exit(1)
    except (ValueError, TypeError) as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
