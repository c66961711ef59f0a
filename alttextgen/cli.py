"""CLI entry point — all commands defined here."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from alttextgen import __version__
from alttextgen.config import GatewayConfig
from alttextgen.container import ServiceContainer
from alttextgen.models import Caller
from alttextgen.security import ACTION_GENERATE

app = typer.Typer(
    name="alttextgen",
    help="Generate image alt text with AI vision providers.",
    no_args_is_help=True,
)
settings_app = typer.Typer(help="Show or change stored settings.", no_args_is_help=True)
app.add_typer(settings_app, name="settings")
console = Console()

_state: dict[str, Optional[Path]] = {"config": None}


def version_callback(value: bool) -> None:
    if value:
        console.print(f"alttextgen {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(  # noqa: UP007
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version and exit.",
    ),
    config: Optional[Path] = typer.Option(  # noqa: UP007
        None, "--config", "-c", help="Path to alttextgen.yaml.",
    ),
) -> None:
    """alttextgen — AI alt text for images."""
    _state["config"] = config


def _load() -> tuple[GatewayConfig, ServiceContainer]:
    from alttextgen.services import build_container

    try:
        cfg = GatewayConfig.load(_state["config"])
        container = build_container(cfg)
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=1)

    logging.basicConfig(
        level=cfg.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    return cfg, container


@app.command()
def generate(
    attachment_id: str = typer.Argument(..., help="Attachment id of the image."),
    user: str = typer.Option("admin", "--user", "-u", help="User to act as."),
) -> None:
    """Generate alt text for one image and store it."""
    cfg, container = _load()

    caller = Caller(user_id=user, origin="cli", capabilities=cfg.capabilities_for(user))
    nonce = container.get("tokens").issue(ACTION_GENERATE, user)
    handler = container.get("request_handler")

    response = asyncio.run(handler.handle_single(
        caller, {"nonce": nonce, "attachment_id": attachment_id},
    ))

    if response.payload["success"]:
        console.print(f"[green]OK[/green] {response.payload['data']['alt']}")
    else:
        console.print(f"[red]Error ({response.status_code}):[/red] {response.payload['data']}")
        raise typer.Exit(code=1)


@app.command()
def status(
    attachment_id: int = typer.Argument(..., help="Attachment id of the image."),
) -> None:
    """Show an image's stored alt text."""
    _, container = _load()
    info = container.get("media").status(attachment_id)
    if info is None:
        console.print(f"[red]Attachment not found:[/red] {attachment_id}")
        raise typer.Exit(code=1)

    table = Table(title=f"Attachment {attachment_id}")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Alt text", info["alt"] or "[dim](none)[/dim]")
    table.add_row("AI generated", "Yes" if info["ai_generated"] else "No")
    table.add_row("Action", info["action"])
    console.print(table)


@app.command(name="add-image")
def add_image(
    path: Path = typer.Argument(..., help="Image file to register."),
) -> None:
    """Register an image in the media library."""
    if not path.is_file():
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(code=1)

    _, container = _load()
    media = container.get("media")
    attachment = media.add(path.resolve())
    media.save()
    console.print(f"[green]OK[/green] Added {path.name} as attachment {attachment.id}")


@app.command()
def providers() -> None:
    """Show AI providers and their status."""
    from alttextgen.providers import list_available
    from alttextgen.providers.catalog import PROVIDERS

    _, container = _load()
    resolver = container.get("resolver")
    active = resolver.provider()
    results = list_available({pid: resolver.api_key(pid) for pid in PROVIDERS})

    table = Table(title="AI Providers")
    table.add_column("Provider", style="bold")
    table.add_column("Available")
    table.add_column("Default model")
    table.add_column("Notes")

    for name, available in results:
        info = PROVIDERS[name]
        status_text = "[green]Yes[/green]" if available else "[red]No[/red]"
        notes = f"API key option or {info.env_var}"
        if name == active:
            notes = "[bold]active[/bold] - " + notes
        table.add_row(info.display_name, status_text, info.default_model, notes)

    console.print(table)


@settings_app.command("show")
def settings_show() -> None:
    """Show the settings form with current values."""
    _, container = _load()
    resolved = container.get("resolver").resolve()

    table = Table(title="Settings")
    table.add_column("Key", style="bold")
    table.add_column("Label")
    table.add_column("Value")
    for form_field in container.get("settings").fields():
        table.add_row(form_field.key, form_field.label, form_field.value or "[dim](default)[/dim]")
    console.print(table)
    console.print(
        f"[dim]In effect:[/dim] provider={resolved.provider} model={resolved.model} "
        f"language={resolved.language} api_key={'set' if resolved.api_key else 'missing'}"
    )


@settings_app.command("set")
def settings_set(
    key: str = typer.Argument(..., help="Option name, e.g. ai_alt_text_provider."),
    value: str = typer.Argument(..., help="New value; empty string clears it."),
) -> None:
    """Change one stored setting."""
    _, container = _load()
    try:
        changed = container.get("settings").save({key: value})
    except ValueError as exc:
        console.print(f"[red]Invalid setting:[/red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"[green]OK[/green] Saved {', '.join(changed) or 'nothing'}")


@app.command()
def serve(
    port: int = typer.Option(8080, "--port", "-p", help="Port to serve on."),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to."),
) -> None:
    """Start the HTTP endpoint."""
    import uvicorn

    from alttextgen.web.app import create_app

    cfg, container = _load()
    console.print(f"[dim]Serving at http://{host}:{port}[/dim]")
    uvicorn.run(create_app(cfg, container), host=host, port=port, log_level="warning")
