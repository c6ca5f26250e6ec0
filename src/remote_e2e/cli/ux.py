"""User experience utilities for the remote-e2e CLI."""

import logging
from typing import Any, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from remote_e2e.models import Outcome, Step, TestState

# Define a custom theme for consistent styling
CUSTOM_THEME = Theme(
    {
        "info": "bold cyan",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "heading": "bold white on blue",
    }
)

# Create console for terminal output
console = Console(theme=CUSTOM_THEME)

logger = logging.getLogger("remote_e2e.cli")

_STATUS_STYLES = {
    "pending": "dim",
    "running": "info",
    "completed": "success",
    "success": "success",
    "pass": "success",
    "skipped": "dim",
    "failed": "error",
    "fail": "error",
    "error": "error",
}

_GRADE_STYLES = {
    Outcome.PASS: "success",
    Outcome.FAIL: "error",
    Outcome.ERROR: "error",
}


def print_info(
    message: str,
    *args: Any,
    log: bool = True,
    console_output: bool = True,
    **kwargs: Any,
) -> None:
    """Print an informational message.

    Args:
        message: The message to print
        log: Whether to log to file
        console_output: Whether to print to console
    """
    if console_output:
        console.print(f"[info]INFO:[/info] {message}", *args, **kwargs)
    if log:
        logger.info(message)


def print_success(
    message: str,
    *args: Any,
    log: bool = True,
    console_output: bool = True,
    **kwargs: Any,
) -> None:
    """Print a success message."""
    if console_output:
        console.print(f"[success]SUCCESS:[/success] {message}", *args, **kwargs)
    if log:
        logger.info(f"SUCCESS: {message}")


def print_warning(
    message: str,
    *args: Any,
    log: bool = True,
    console_output: bool = True,
    **kwargs: Any,
) -> None:
    """Print a warning message."""
    if console_output:
        console.print(f"[warning]WARNING:[/warning] {message}", *args, **kwargs)
    if log:
        logger.warning(message)


def print_error(
    message: str,
    *args: Any,
    log: bool = True,
    console_output: bool = True,
    **kwargs: Any,
) -> None:
    """Print an error message."""
    if console_output:
        console.print(f"[error]ERROR:[/error] {message}", *args, **kwargs)
    if log:
        logger.error(message)


def _styled(value: str) -> str:
    style = _STATUS_STYLES.get(value.lower())
    return f"[{style}]{value}[/{style}]" if style else value


def _latest_step(steps: List[Step]) -> str:
    if not steps:
        return "-"
    step = steps[-1]
    label = step.label or step.planned_next_goal or "-"
    if len(label) > 60:
        label = label[:57] + "..."
    return label


def render_state(state: TestState, title: Optional[str] = None) -> Table:
    """Build a table of the tests in ``state``."""
    if title is None:
        description = state.test_object.description if state.test_object else ""
        title = description or "E2E Run"

    table = Table(
        title=f"[heading]{title}[/heading]",
        caption=f"status: {state.status.value} | steps: {state.step_number}",
        expand=False,
        border_style="blue",
    )
    table.add_column("Test", style="bright_blue")
    table.add_column("Status", justify="center")
    table.add_column("Outcome", justify="center")
    table.add_column("Steps", justify="right")
    table.add_column("Latest step", style="dim")

    for test in state.tests:
        table.add_row(
            test.title or test.description or test.uuid,
            _styled(test.status),
            _styled(test.outcome),
            str(len(test.steps)),
            _latest_step(test.steps),
        )
    return table


def print_state(state: TestState) -> None:
    console.print(render_state(state))


def print_summary(state: TestState, grade: Outcome) -> None:
    """Print the final panel for a finished run."""
    style = _GRADE_STYLES.get(grade, "warning")
    lines = [f"Result: [{style}]{grade.value.upper()}[/{style}]"]
    if state.test_object is not None:
        lines.append(f"Object: [cyan]{state.test_object.uuid}[/cyan]")
    lines.append(f"Status: {_styled(state.status.value)}")
    lines.append(f"Tests: {len(state.tests)}  Steps: {state.step_number}")
    if state.error:
        lines.append(f"Error: [error]{state.error}[/error]")

    console.print(
        Panel(
            "\n".join(lines),
            title="E2E Run Summary",
            border_style=style,
            expand=False,
        )
    )
    logger.info("Run finished with grade %s", grade.value)
