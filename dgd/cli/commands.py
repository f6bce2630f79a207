"""CLI commands for dgd."""

import asyncio

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from dgd import __logo__, __version__

app = typer.Typer(
    name="dgd",
    help=f"{__logo__} dgd - Dojo Genesis Desktop backend",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} dgd v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """dgd - Dojo Genesis Desktop backend."""
    pass


@app.command()
def version():
    """Show the running version."""
    console.print(f"{__logo__} dgd v{__version__}")


# ============================================================================
# Serve (FastAPI HTTP)
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind host (default: DGD_HOST)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (default: DGD_PORT)"),
):
    """Start the dgd HTTP API server (FastAPI + Uvicorn)."""
    import uvicorn

    from dgd.settings import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    console.print(f"{__logo__} Starting dgd API on {host}:{port} ...")
    uvicorn.run(
        "dgd.api.app:create_app",
        host=host,
        port=port,
        factory=True,
    )


# ============================================================================
# Update
# ============================================================================


update_app = typer.Typer(help="Check for and install new releases")
app.add_typer(update_app, name="update")


def _build_service(url: str | None):
    from dgd.api.app import build_update_service
    from dgd.settings import get_settings

    settings = get_settings()
    if url:
        settings = settings.model_copy(update={"update_url": url})
    return build_update_service(settings)


def _set_logging(logs: bool | None) -> None:
    from dgd.settings import get_settings

    if logs is None:
        logs = get_settings().debug
    if logs:
        logger.enable("dgd")
    else:
        logger.disable("dgd")


@update_app.command("check")
def update_check(
    url: str = typer.Option(None, "--url", help="Update source URL (default: DGD_UPDATE_URL)"),
    logs: bool = typer.Option(None, "--logs/--no-logs", help="Show updater logs (default: DGD_DEBUG)"),
):
    """Check whether a newer release is available."""
    from dgd.updater import UpdateError

    _set_logging(logs)
    svc = _build_service(url)
    try:
        record = asyncio.run(svc.check())
    except UpdateError as exc:
        console.print(f"[red]Update check failed: {exc}[/red]")
        raise typer.Exit(1)

    if record is None:
        console.print(f"[green]✓[/green] Up to date (v{__version__})")
        return

    table = Table(title="Update available")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_row("Current", __version__)
    table.add_row("Latest", record.version)
    table.add_row("Download", record.download_url)
    table.add_row("Checksum", record.checksum or "[dim]not published[/dim]")
    console.print(table)


@update_app.command("apply")
def update_apply(
    url: str = typer.Option(None, "--url", help="Update source URL (default: DGD_UPDATE_URL)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Install without asking"),
    restart: bool = typer.Option(True, "--restart/--no-restart", help="Restart after installing"),
    logs: bool = typer.Option(None, "--logs/--no-logs", help="Show updater logs (default: DGD_DEBUG)"),
):
    """Download, verify and install the latest release."""
    from dgd.updater import UpdateError

    _set_logging(logs)
    svc = _build_service(url)

    async def _run() -> bool:
        record = await svc.check()
        if record is None:
            console.print(f"[green]✓[/green] Up to date (v{__version__})")
            return False
        if not record.checksum:
            console.print("[yellow]Warning: this release publishes no checksum; it cannot be verified.[/yellow]")
        if not yes and not typer.confirm(f"Install v{record.version}?"):
            return False
        console.print(f"Installing v{record.version} ...")
        await svc.install(record)
        console.print(f"[green]✓[/green] Installed v{record.version}")
        if restart:
            await svc.orchestrator.restart_application()
        return True

    try:
        asyncio.run(_run())
    except UpdateError as exc:
        console.print(f"[red]Update failed: {exc}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
