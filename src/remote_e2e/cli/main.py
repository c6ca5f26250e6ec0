"""remote-e2e CLI entry point."""

import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional

import typer

from remote_e2e import __version__
from remote_e2e.agent import AgentController, AgentOptions
from remote_e2e.cli.ux import (
    console,
    print_error,
    print_info,
    print_state,
    print_success,
    print_summary,
    print_warning,
)
from remote_e2e.config import settings
from remote_e2e.core.constants import LOG_DIR, LOG_FILE_NAME, MAX_PORT, MIN_PORT
from remote_e2e.errors import E2eError
from remote_e2e.gateway import E2eGateway
from remote_e2e.git_utils import GitRepositoryResolver
from remote_e2e.health import HttpHealthProbe
from remote_e2e.logging.redact import install_redaction_filter, register_secret
from remote_e2e.models import Outcome, TestObjectType, TestState
from remote_e2e.normalizer import grade
from remote_e2e.tunnel.ngrok import NgrokTunnelProvider

logger = logging.getLogger(__name__)

# Root typer for `remote-e2e` CLI commands
app = typer.Typer(
    help="Run remote end-to-end tests against a local server",
    no_args_is_help=True,
    invoke_without_command=True,
)


def setup_file_logging(verbose: bool = False) -> None:
    """Send package logs to a rotating file; nothing goes to the console."""
    package_logger = logging.getLogger("remote_e2e")
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if any(isinstance(h, RotatingFileHandler) for h in package_logger.handlers):
        return

    os.makedirs(LOG_DIR, exist_ok=True)
    file_handler = RotatingFileHandler(
        LOG_DIR / LOG_FILE_NAME,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    install_redaction_filter(file_handler)
    package_logger.addHandler(file_handler)
    package_logger.propagate = False


def parse_params(values: Optional[List[str]]) -> Dict[str, Any]:
    """Turn repeated ``KEY=VALUE`` options into a dict."""
    params: Dict[str, Any] = {}
    for value in values or []:
        key, sep, item = value.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(
                f"Expected KEY=VALUE, got '{value}'", param_hint="--param"
            )
        params[key.strip()] = item
    return params


class _ProgressPrinter:
    """Print a table whenever the run's status or step count moves."""

    def __init__(self) -> None:
        self._last = None

    def __call__(self, state: TestState) -> None:
        marker = (state.status, state.step_number, len(state.tests))
        if marker == self._last:
            return
        self._last = marker
        if state.tests:
            print_state(state)
        else:
            print_info(f"Status: {state.status.value}", log=False)


@app.callback()
def callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", help="Show version and exit", is_flag=True
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Write debug output to the log file"
    ),
) -> None:
    """remote-e2e CLI."""
    if version:
        typer.echo(f"remote-e2e version: {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    setup_file_logging(verbose or settings.VERBOSE)


@app.command(name="run")
def run_tests(
    object_type: TestObjectType = typer.Option(
        TestObjectType.E2E_TEST,
        "--type",
        "-t",
        help="What to create: a single test, a generated suite or a commit suite",
    ),
    description: str = typer.Option(
        "E2E Test", "--description", "-d", help="What the test should exercise"
    ),
    port: int = typer.Option(
        3000,
        "--port",
        "-p",
        help="Local port your app listens on",
        min=MIN_PORT,
        max=MAX_PORT,
    ),
    file_path: Optional[str] = typer.Option(
        None,
        "--file",
        "-f",
        help="File the test relates to (defaults to the current directory)",
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", help="API key (defaults to DEBUGGAI_API_KEY)"
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="API base URL (defaults to DEBUGGAI_BASE_URL)"
    ),
    tunnel_token: Optional[str] = typer.Option(
        None, "--tunnel-token", help="Tunnel auth token (defaults to NGROK_AUTH_TOKEN)"
    ),
    poll_interval: Optional[float] = typer.Option(
        None, "--poll-interval", help="Seconds between status polls", min=0.1
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds before the run is abandoned", min=1.0
    ),
    param: Optional[List[str]] = typer.Option(
        None, "--param", help="Extra test parameter as KEY=VALUE (repeatable)"
    ),
) -> None:
    """Create a remote test object, expose the local port and wait for the result."""
    effective_key = api_key or settings.API_KEY
    if not effective_key:
        print_error(
            "No API key configured. Pass --api-key or set DEBUGGAI_API_KEY."
        )
        raise typer.Exit(1)
    register_secret(effective_key, tunnel_token)

    test_params = parse_params(param)
    gateway = E2eGateway(base_url or settings.BASE_URL, effective_key)
    options = AgentOptions(
        object_type=object_type,
        local_port=port,
        description=description,
        test_params=test_params,
        file_path=file_path,
        tunnel_token=tunnel_token or settings.TUNNEL_TOKEN or None,
        tunnel_domain=settings.TUNNEL_DOMAIN,
        poll_interval=poll_interval or settings.POLL_INTERVAL,
        timeout=timeout or settings.TIMEOUT,
    )
    controller = AgentController(
        gateway,
        NgrokTunnelProvider(),
        HttpHealthProbe(),
        GitRepositoryResolver(),
        options,
        on_update=_ProgressPrinter(),
    )

    print_info(f"Starting {object_type.value} against localhost:{port}")
    try:
        with console.status("Waiting for remote run..."):
            final = asyncio.run(controller.run())
    except E2eError as exc:
        print_error(exc.message)
        if exc.hint:
            print_warning(f"Hint: {exc.hint}", log=False)
        raise typer.Exit(1)

    verdict = grade(final)
    print_summary(final, verdict)
    if verdict != Outcome.PASS:
        raise typer.Exit(1)
    print_success("E2E run passed")


@app.command(name="check")
def check_service(
    port: int = typer.Option(
        3000, "--port", "-p", help="Local port to probe", min=MIN_PORT, max=MAX_PORT
    ),
) -> None:
    """Check whether a local service answers on PORT."""
    if asyncio.run(HttpHealthProbe().check(port)):
        print_success(f"Service is active on port {port}")
        return
    print_error(
        f"Service is not active on port {port}. "
        "Please start your application server before running E2E tests."
    )
    raise typer.Exit(1)


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
