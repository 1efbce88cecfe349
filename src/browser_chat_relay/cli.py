"""Command line interface for browser-chat-relay."""

from __future__ import annotations

import asyncio
import logging
import shutil
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import httpx
import typer

from .client import RelayClient
from .config import load_config
from .factory import build_chat_session
from .models import InitResult, StabilizationOutcome
from .service import create_app

app = typer.Typer(help="Browser Chat Relay entry point")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to YAML configuration."),
]
EnvFileOption = Annotated[
    Optional[Path],
    typer.Option("--env-file", help="Path to an .env file with default configuration values."),
]
HeadlessOption = Annotated[
    Optional[bool],
    typer.Option("--headless/--headed", help="Run the browser in headless mode (or headed)."),
]
ProfileOption = Annotated[
    Optional[Path],
    typer.Option("--profile-path", help="Browser user data directory to reuse between runs."),
]
ModelOption = Annotated[
    Optional[str],
    typer.Option("--model", help="Chat model to select after login."),
]
LoginTimeoutOption = Annotated[
    Optional[float],
    typer.Option("--login-timeout", help="Seconds to wait for a manual login."),
]
UrlOption = Annotated[
    str,
    typer.Option("--url", help="Base URL of a running relay server."),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("browser-chat-relay"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def serve(
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Binding address for the HTTP API."),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", help="HTTP port for the API."),
    ] = None,
    headless: HeadlessOption = None,
    profile_path: ProfileOption = None,
    model: ModelOption = None,
    login_timeout: LoginTimeoutOption = None,
) -> None:
    """Log in, then serve the chat session over HTTP."""

    overrides = _collect_overrides(
        headless=headless,
        profile_path=profile_path,
        model=model,
        login_timeout=login_timeout,
    )
    if host is not None or port is not None:
        overrides.setdefault("server", {})
        if host is not None:
            overrides["server"]["host"] = host
        if port is not None:
            overrides["server"]["port"] = port
    config = load_config(config_path, env_file=env_file, **overrides)

    session = build_chat_session(config)
    try:
        _require_ready(session.initialize())
        import uvicorn

        typer.echo(f"Serving on http://{config.server.host}:{config.server.port}")
        uvicorn.run(create_app(session), host=config.server.host, port=config.server.port)
    finally:
        session.shutdown()


@app.command()
def chat(
    message: Annotated[str, typer.Argument(help="Message to send.")],
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    headless: HeadlessOption = None,
    profile_path: ProfileOption = None,
    model: ModelOption = None,
    login_timeout: LoginTimeoutOption = None,
) -> None:
    """Log in, send a single message, print the reply and exit."""

    overrides = _collect_overrides(
        headless=headless,
        profile_path=profile_path,
        model=model,
        login_timeout=login_timeout,
    )
    config = load_config(config_path, env_file=env_file, **overrides)

    session = build_chat_session(config)
    try:
        _require_ready(session.initialize())
        result = session.send_message(message)
    finally:
        session.shutdown()
    if not result.success:
        detail = result.error.detail if result.error else "unknown error"
        typer.echo(f"Send failed: {detail}", err=True)
        raise typer.Exit(code=1)
    typer.echo(result.response)
    if result.outcome not in {None, StabilizationOutcome.CONVERGED}:
        typer.echo(f"(reply {result.outcome.value.replace('_', ' ')})", err=True)


@app.command("clear-session")
def clear_session(
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    keep_profile: Annotated[
        bool,
        typer.Option("--keep-profile", help="Keep the browser profile directory."),
    ] = False,
) -> None:
    """Delete the stored session and, unless told otherwise, the browser profile."""

    config = load_config(config_path, env_file=env_file)
    session = build_chat_session(config)
    try:
        session.reset_session()
    finally:
        session.shutdown()
    profile = config.browser.profile_path
    if not keep_profile and profile is not None and profile.exists():
        shutil.rmtree(profile)
    typer.echo("Session cleared")


@app.command()
def status(url: UrlOption = "http://127.0.0.1:3000") -> None:
    """Query the status of a running relay server."""

    client = RelayClient(url)
    try:
        report = asyncio.run(client.get_status())
    except httpx.HTTPError as exc:
        typer.echo(f"Relay unreachable: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(report.model_dump_json(indent=2))


@app.command()
def send(
    message: Annotated[str, typer.Argument(help="Message to send.")],
    url: UrlOption = "http://127.0.0.1:3000",
) -> None:
    """Send a message through a running relay server."""

    client = RelayClient(url)
    try:
        result = asyncio.run(client.send(message))
    except httpx.HTTPError as exc:
        typer.echo(f"Relay unreachable: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not result.success:
        detail = result.error.detail if result.error else "unknown error"
        typer.echo(f"Send failed: {detail}", err=True)
        raise typer.Exit(code=1)
    typer.echo(result.response)


def _collect_overrides(
    *,
    headless: Optional[bool],
    profile_path: Optional[Path],
    model: Optional[str],
    login_timeout: Optional[float],
) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if headless is not None or profile_path is not None:
        overrides.setdefault("browser", {})
        if headless is not None:
            overrides["browser"]["headless"] = headless
        if profile_path is not None:
            overrides["browser"]["profile_path"] = str(profile_path)
    if model:
        overrides["chat"] = {"model_name": model}
    if login_timeout is not None:
        overrides["login"] = {"timeout": login_timeout}
    return overrides


def _require_ready(result: InitResult) -> None:
    if result.success:
        return
    detail = result.error.detail if result.error else "unknown error"
    kind = result.error.kind.value if result.error else "internal"
    typer.echo(f"Initialization failed ({kind}): {detail}", err=True)
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
