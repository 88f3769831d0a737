#!/usr/bin/env python3
"""
Notekeeper CLI.

Primary entry point for all application operations.
Use --service to select what to run, --action to control the server lifecycle.

Usage:
    python cli.py --help
    python cli.py --service server --verbose
    python cli.py --service server --action stop
    python cli.py --service tui
    python cli.py --service notes
    python cli.py --service improve --text "so basically we need to ship it"
    python cli.py --service health --debug
    python cli.py --service config
    python cli.py --service test --test-type unit
"""

import asyncio
import os
import signal
import subprocess
import sys
from pathlib import Path

import click
import structlog

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from notekeeper.backend.core.logging import get_logger, setup_logging

LONG_RUNNING_SERVICES = {"server"}


def validate_project_root() -> Path:
    """Validate that we're running from the project root."""
    if not (PROJECT_ROOT / ".project_root").exists():
        click.echo(
            click.style("Error: .project_root not found. Run from project root.", fg="red"),
            err=True,
        )
        sys.exit(1)
    return PROJECT_ROOT


def _find_process_on_port(port: int) -> list[int]:
    """Find PIDs listening on a port."""
    result = subprocess.run(
        ["lsof", "-ti", f":{port}"],
        capture_output=True, text=True,
    )
    pids = result.stdout.strip().split("\n")
    return [int(p) for p in pids if p.strip()]


def _service_stop(logger, service: str, port: int) -> None:
    """Stop a running service by finding its process on the port."""
    pids = _find_process_on_port(port)
    if not pids:
        click.echo(f"No {service} running on port {port}.")
        return

    for pid in pids:
        os.kill(pid, signal.SIGINT)
        logger.info("Sent SIGINT", extra={"service": service, "pid": pid, "port": port})

    click.echo(f"{service.title()} on port {port} stopped (PID: {', '.join(str(p) for p in pids)}).")


def _service_status(logger, service: str, port: int) -> None:
    """Check if a service is running on a port."""
    pids = _find_process_on_port(port)
    if pids:
        click.echo(f"{service.title()} is running on port {port} (PID: {', '.join(str(p) for p in pids)}).")
    else:
        click.echo(f"{service.title()} is not running on port {port}.")


def _get_service_port(port: int | None) -> int:
    """Get the port from argument or config."""
    if port is not None:
        return port
    from notekeeper.backend.core.config import get_app_config
    return get_app_config().application.server.port


@click.command()
@click.option(
    "--service", "-s",
    type=click.Choice(["server", "tui", "notes", "improve", "health", "config", "test", "info"]),
    default="info",
    help="Service or command to run.",
)
@click.option(
    "--action", "-a",
    type=click.Choice(["start", "stop", "restart", "status"]),
    default="start",
    help="Lifecycle action for the server.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output (INFO level logging).",
)
@click.option(
    "--debug", "-d",
    is_flag=True,
    help="Enable debug output (DEBUG level logging).",
)
@click.option(
    "--host",
    default=None,
    help="Server host.",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Server port.",
)
@click.option(
    "--reload",
    is_flag=True,
    help="Enable auto-reload (server only).",
)
@click.option(
    "--text", "-t",
    default=None,
    help="Text to improve (improve only).",
)
@click.option(
    "--local",
    is_flag=True,
    help="Use the offline heuristics instead of the gateway (improve only).",
)
@click.option(
    "--test-type",
    type=click.Choice(["all", "unit", "integration"]),
    default="all",
    help="Test type to run.",
)
@click.option(
    "--coverage",
    is_flag=True,
    help="Run tests with coverage.",
)
def main(
    service: str,
    action: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
    text: str | None,
    local: bool,
    test_type: str,
    coverage: bool,
) -> None:
    """
    Notekeeper CLI.

    Use --service to select what to run. For the server, use --action
    to control lifecycle (start/stop/restart/status).

    \b
    Examples:
        python cli.py --service server --verbose
        python cli.py --service server --action stop
        python cli.py --service server --action restart --port 8099
        python cli.py --service tui
        python cli.py --service notes
        python cli.py --service improve --text "I think that we should ship it"
        python cli.py --service improve --local --text "..."
        python cli.py --service health --debug
        python cli.py --service config
        python cli.py --service test --test-type unit --coverage
        python cli.py --service info
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")

    structlog.contextvars.bind_contextvars(source="cli")

    logger = get_logger(__name__)

    logger.debug("CLI invoked", extra={"service": service, "action": action, "log_level": log_level})

    if service in LONG_RUNNING_SERVICES and action != "start":
        service_port = _get_service_port(port)

        if action == "stop":
            _service_stop(logger, service, service_port)
            return
        elif action == "status":
            _service_status(logger, service, service_port)
            return
        elif action == "restart":
            _service_stop(logger, service, service_port)
            import time
            time.sleep(2)

    if service == "server":
        run_server(logger, host, port, reload)
    elif service == "tui":
        run_tui(logger, debug)
    elif service == "notes":
        list_notes(logger)
    elif service == "improve":
        improve_text(logger, text, local)
    elif service == "health":
        check_health(logger)
    elif service == "config":
        show_config(logger)
    elif service == "test":
        run_tests(logger, test_type, coverage)
    elif service == "info":
        show_info(logger)


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    """Start the FastAPI development server."""
    from notekeeper.backend.core.config import get_app_config

    try:
        server_config = get_app_config().application.server
    except Exception as e:
        logger.error("Failed to load configuration.", extra={"error": str(e)})
        click.echo(
            click.style("Error: Could not load config/settings/application.yaml.", fg="red"),
            err=True,
        )
        sys.exit(1)

    server_host = host or server_config.host
    server_port = port or server_config.port

    logger.info(
        "Starting server",
        extra={"host": server_host, "port": server_port, "reload": reload},
    )

    cmd = [
        sys.executable, "-m", "uvicorn",
        "notekeeper.backend.main:app",
        "--host", server_host,
        "--port", str(server_port),
    ]

    if reload:
        cmd.append("--reload")

    click.echo(f"Starting server at http://{server_host}:{server_port}")
    click.echo("Press Ctrl+C to stop\n")

    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except subprocess.CalledProcessError as e:
        logger.error("Server failed to start", extra={"exit_code": e.returncode})
        sys.exit(e.returncode)


def run_tui(logger, debug: bool) -> None:
    """Start the terminal editor (requires a running server)."""
    from tui import NotesTUI

    logger.info("Starting TUI")
    # The terminal belongs to the TUI; keep only the file handler
    setup_logging(level="DEBUG" if debug else "WARNING", enable_console=False)
    structlog.contextvars.bind_contextvars(source="tui")
    NotesTUI(debug=debug).run()


def list_notes(logger) -> None:
    """Print all notes as a table (requires a running server)."""
    from rich.console import Console
    from rich.table import Table

    from notekeeper.client.api import APIClient
    from notekeeper.client.errors import RemoteStoreError
    from notekeeper.client.formatting import format_relative_date, note_preview
    from notekeeper.client.store import RemoteStoreClient

    console = Console()

    async def _fetch():
        async with APIClient(frontend_id="cli") as api:
            return await RemoteStoreClient(api).list()

    try:
        notes = asyncio.run(_fetch())
    except RemoteStoreError as e:
        logger.error("Failed to list notes", extra={"error": e.message, "code": e.code})
        console.print(f"[red]Error: {e.message}[/red]")
        console.print("[dim]Is the server running? Start with: python cli.py --service server[/dim]")
        sys.exit(1)

    if not notes:
        console.print("[dim]No notes yet.[/dim]")
        return

    table = Table(title=f"Notes ({len(notes)})", show_header=True)
    table.add_column("Title", style="cyan")
    table.add_column("Updated")
    table.add_column("Preview", style="dim")
    for note in notes:
        table.add_row(note.title, format_relative_date(note.updated_at), note_preview(note.content, 60))
    console.print(table)


def improve_text(logger, text: str | None, local: bool) -> None:
    """Improve a paragraph through the gateway, or locally with --local."""
    from rich.console import Console
    from rich.markdown import Markdown

    from notekeeper.backend.core.config import get_app_config
    from notekeeper.client.api import APIClient
    from notekeeper.client.assist import LocalTextImprovementService, build_assist_service
    from notekeeper.client.errors import AssistError, ValidationError
    from notekeeper.rendering.normalize import normalize_markdown

    console = Console()
    if text is None:
        text = click.get_text_stream("stdin").read()

    async def _improve():
        async with APIClient(frontend_id="cli") as api:
            if local:
                service = LocalTextImprovementService(delay=0)
            else:
                service = build_assist_service(api, get_app_config().editor.assist)
            return await service.improve(text)

    try:
        improved = asyncio.run(_improve())
    except ValidationError as e:
        console.print(f"[yellow]{e.message}[/yellow]")
        sys.exit(1)
    except AssistError as e:
        logger.error("Text improvement failed", extra={"reason": e.reason.value, "detail": e.detail})
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)

    console.print(Markdown(normalize_markdown(improved or "")))


def check_health(logger) -> None:
    """Check application health by testing imports and configuration."""
    click.echo("Checking application health...\n")

    checks = []

    # Check 1: Core imports
    try:
        from notekeeper.backend.core.config import get_app_config, get_settings
        from notekeeper.backend.core.exceptions import ApplicationError
        checks.append(("Core imports", True, None))
        logger.debug("Core imports successful")
    except Exception as e:
        checks.append(("Core imports", False, str(e)))
        logger.error("Core imports failed", extra={"error": str(e)})

    # Check 2: Configuration loading
    try:
        app_config = get_app_config()
        app_name = app_config.application.name
        checks.append(("YAML configuration", True, f"App: {app_name}"))
        logger.debug("Configuration loaded", extra={"app_name": app_name})
    except Exception as e:
        checks.append(("YAML configuration", False, str(e)))
        logger.error("Configuration failed", extra={"error": str(e)})

    # Check 3: Upstream credential
    try:
        from notekeeper.backend.gateway.registry import get_provider
        provider = get_provider()
        if provider.is_configured:
            checks.append(("Gateway credential", True, f"Provider: {provider.provider_name}"))
        else:
            checks.append(("Gateway credential", False, f"{provider.credential_env} not set"))
        logger.debug("Provider loaded", extra={"provider": provider.provider_name})
    except Exception as e:
        checks.append(("Gateway credential", False, str(e)))
        logger.error("Provider failed", extra={"error": str(e)})

    # Check 4: FastAPI app
    try:
        from notekeeper.backend.main import get_app
        app = get_app()
        checks.append(("FastAPI application", True, f"Title: {app.title}"))
        logger.debug("FastAPI app loaded", extra={"title": app.title})
    except Exception as e:
        checks.append(("FastAPI application", False, str(e)))
        logger.error("FastAPI app failed", extra={"error": str(e)})

    # Check 5: Database models
    try:
        from notekeeper.backend.models.note import Note
        checks.append(("Database models", True, f"Table: {Note.__tablename__}"))
        logger.debug("Database models loaded")
    except Exception as e:
        checks.append(("Database models", False, str(e)))
        logger.error("Database models failed", extra={"error": str(e)})

    # Check 6: Rendering
    try:
        from notekeeper.rendering import render_markdown
        render_markdown("# ok")
        checks.append(("Markdown rendering", True, None))
        logger.debug("Rendering loaded")
    except Exception as e:
        checks.append(("Markdown rendering", False, str(e)))
        logger.error("Rendering failed", extra={"error": str(e)})

    click.echo("Health Check Results:")
    click.echo("-" * 50)

    all_passed = True
    for name, passed, detail in checks:
        status = click.style("✓ PASS", fg="green") if passed else click.style("✗ FAIL", fg="red")
        detail_str = f" ({detail})" if detail else ""
        click.echo(f"  {status}  {name}{detail_str}")
        if not passed:
            all_passed = False

    click.echo("-" * 50)

    if all_passed:
        click.echo(click.style("\nAll checks passed!", fg="green"))
    else:
        click.echo(click.style("\nSome checks failed. See details above.", fg="yellow"))
        click.echo("Note: the gateway credential is read from config/.env or the environment.")


def _echo_section(title: str, values: dict) -> None:
    click.echo(f"\n{title}:")
    click.echo("-" * 40)
    for key, value in values.items():
        if isinstance(value, dict):
            click.echo(f"  {key}:")
            for k, v in value.items():
                click.echo(f"    {k}: {v}")
        else:
            click.echo(f"  {key}: {value}")


def show_config(logger) -> None:
    """Display loaded configuration. Secrets are never shown."""
    click.echo("Application Configuration:")

    try:
        from notekeeper.backend.core.config import get_app_config

        app_config = get_app_config()

        _echo_section("Application Settings (from YAML)", app_config.application.model_dump())
        _echo_section("Database Settings (from YAML)", app_config.database.model_dump())
        _echo_section("Logging Settings (from YAML)", app_config.logging.model_dump())
        _echo_section("Feature Flags (from YAML)", app_config.features.model_dump())
        _echo_section("Gateway Settings (from YAML)", app_config.gateway.model_dump())
        _echo_section("Editor Settings (from YAML)", app_config.editor.model_dump())

        logger.info("Configuration displayed successfully")

    except Exception as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        click.echo(click.style(f"Error loading configuration: {e}", fg="red"))
        sys.exit(1)


def run_tests(logger, test_type: str, coverage: bool) -> None:
    """Run the test suite."""
    logger.info("Running tests", extra={"type": test_type, "coverage": coverage})

    cmd = [sys.executable, "-m", "pytest"]

    if test_type == "unit":
        cmd.append("tests/unit")
    elif test_type == "integration":
        cmd.append("tests/integration")
    else:
        cmd.append("tests/")

    cmd.append("-v")

    if coverage:
        cmd.extend(["--cov=notekeeper", "--cov-report=term-missing"])

    click.echo(f"Running: {' '.join(cmd)}\n")

    try:
        result = subprocess.run(cmd)
        sys.exit(result.returncode)
    except FileNotFoundError:
        logger.error("pytest not found. Install with: pip install -e '.[test]'")
        sys.exit(1)


def show_info(logger) -> None:
    """Display application information."""
    click.echo("Notekeeper")
    click.echo("=" * 40)

    try:
        from notekeeper.backend.core.config import get_app_config
        app_config = get_app_config()
        click.echo(f"Name: {app_config.application.name}")
        click.echo(f"Version: {app_config.application.version}")
        click.echo(f"Description: {app_config.application.description}")
    except Exception as e:
        logger.error(
            "Failed to load application configuration",
            extra={"error": str(e)},
        )
        click.echo(
            click.style(
                "Error: Could not load application.yaml configuration.",
                fg="red",
            ),
            err=True,
        )
        sys.exit(1)

    click.echo()
    click.echo("Services (--service):")
    click.echo("  server         Note store API and text improvement gateway")
    click.echo("  tui            Terminal note editor")
    click.echo("  notes          List notes")
    click.echo("  improve        Improve a paragraph of text")
    click.echo("  health         Check application health")
    click.echo("  config         Display configuration")
    click.echo("  test           Run test suite")
    click.echo("  info           Show this information")
    click.echo()
    click.echo("Lifecycle actions (--action, server only):")
    click.echo("  start          Start the service (default)")
    click.echo("  stop           Stop a running service")
    click.echo("  restart        Stop then start")
    click.echo("  status         Check if running")
    click.echo()
    click.echo("Options:")
    click.echo("  --verbose, -v  Enable INFO level logging")
    click.echo("  --debug, -d    Enable DEBUG level logging")
    click.echo()
    click.echo("Examples:")
    click.echo("  python cli.py --service server --reload --verbose")
    click.echo("  python cli.py --service server --action status")
    click.echo("  python cli.py --service tui")
    click.echo("  python cli.py --service improve --text \"...\"")
    click.echo("  python cli.py --service test --test-type unit --coverage")

    logger.debug("Info displayed")


if __name__ == "__main__":
    main()
