#!/usr/bin/env python3
"""Command-line entry point for chatshot using Typer."""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .. import __version__
from ..capture import BrowserSession, GenericCaptureEngine
from ..config import ConfigLoadError, CaptureConfig, load_config, save_default_config
from ..errors import ScreenshotError


app = typer.Typer(
    name="chatshot",
    help="chatshot - screenshots of web pages and live chat messages",
    add_completion=False,
    rich_markup_mode="rich"
)

logger = logging.getLogger("chatshot")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def _load(config_path: Optional[Path], env: Optional[str]) -> CaptureConfig:
    try:
        return load_config(config_path, environment=env)
    except ConfigLoadError as e:
        if config_path is not None:
            typer.echo(f"Configuration error: {e}", err=True)
            raise typer.Exit(code=2)
        logger.warning(f"{e}, using default configuration")
        return CaptureConfig()


@app.command(name="version")
def show_version():
    """Show version information."""
    typer.echo(f"chatshot v{__version__}")


@app.command(name="init-config")
def init_config(
    path: Annotated[Path, typer.Argument(help="Where to write the YAML configuration")] = Path("config/config.yaml"),
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
):
    """Write a default configuration file."""
    if path.exists() and not force:
        typer.echo(f"{path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=1)

    path.parent.mkdir(parents=True, exist_ok=True)
    save_default_config(path)
    typer.echo(f"Wrote default configuration to {path}")


@app.command()
def serve(
    config_path: Annotated[Optional[Path], typer.Option("--config", "-c", help="YAML configuration file")] = None,
    env: Annotated[Optional[str], typer.Option("--env", "-e", help="Configuration environment")] = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Listen address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Listen port")] = None,
):
    """Start the HTTP capture service."""
    import uvicorn

    from ..api.main import create_app

    config = _load(config_path, env)
    _setup_logging(config.server.log_level)

    if not config.chat_enabled:
        logger.info("No chat token configured, chat capture is disabled")

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=config.server.log_level,
    )


@app.command()
def capture(
    url: Annotated[str, typer.Argument(help="Page to capture")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Destination PNG")] = Path("screenshot.png"),
    scroll_to: Annotated[Optional[str], typer.Option("--scroll-to", help="Selector to scroll into view")] = None,
    element: Annotated[bool, typer.Option("--element", help="Capture only the --scroll-to element")] = False,
    config_path: Annotated[Optional[Path], typer.Option("--config", "-c", help="YAML configuration file")] = None,
    env: Annotated[Optional[str], typer.Option("--env", "-e", help="Configuration environment")] = None,
):
    """Capture a single web page without starting the server."""
    config = _load(config_path, env)
    # One-off captures never need the chat client
    config = config.model_copy(update={"chat_token": None})
    _setup_logging(config.server.log_level)

    async def _run() -> Path:
        session = BrowserSession(config)
        await session.init()
        try:
            engine = GenericCaptureEngine(session)
            return await engine.capture_screenshot(
                url,
                clip="element" if element else None,
                scroll_to=scroll_to
            )
        finally:
            await session.close()

    try:
        produced = asyncio.run(_run())
    except ScreenshotError as e:
        typer.echo(f"Capture failed: {e.message} {e.details or ''}", err=True)
        raise typer.Exit(code=1)

    output.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(produced), output)
    typer.echo(f"Saved {output}")


if __name__ == "__main__":
    app()
