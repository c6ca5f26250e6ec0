"""Per-test and per-step derivation shared by every object kind."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, List, Optional

from remote_e2e.errors import UnrecognizedStatus
from remote_e2e.models import (
    E2eRun,
    E2eTest,
    Outcome,
    Status,
    Step,
    TerminalTest,
    TestObject,
    TestState,
)

_EVALUATION_SEPARATOR = " - "


def coerce_status(value: Any) -> Status:
    """Map a remote status string onto :class:`Status`."""
    if isinstance(value, Status):
        return value
    if isinstance(value, str):
        try:
            return Status(value.strip().lower())
        except ValueError:
            pass
    raise UnrecognizedStatus(value)


def _step_status(index: int, evaluation: str) -> str:
    # A message grades the goal of the step before it, so the first step
    # has nothing to report yet.
    if index == 0 or not evaluation:
        return Status.PENDING.value
    verdict = evaluation.split(_EVALUATION_SEPARATOR, 1)[0].strip().lower()
    return verdict or Status.PENDING.value


def derive_steps(run: Optional[E2eRun]) -> List[Step]:
    """Build the step list from the first conversation of ``run``."""
    if run is None or not run.conversations:
        return []
    messages = run.conversations[0].messages or []

    steps: List[Step] = []
    for index, message in enumerate(messages):
        content = message.json_content
        current = content.current_state if content else None
        memory = (current.memory if current else None) or ""
        evaluation = (current.evaluation_previous_goal if current else None) or ""
        steps.append(
            Step(
                label=memory,
                status=_step_status(index, evaluation),
                details=memory,
                evaluation_of_previous_goal=evaluation,
                planned_next_goal=(current.next_goal if current else None) or "",
                actions=list(content.action or []) if content else [],
            )
        )
    return steps


def terminal_test_from_test(test: E2eTest) -> TerminalTest:
    run = test.cur_run
    return TerminalTest(
        uuid=test.uuid,
        description=test.description or test.name or "",
        title=test.name or "",
        status=(run.status if run else None) or Status.PENDING.value,
        outcome=(run.outcome if run else None) or Outcome.PENDING.value,
        steps=derive_steps(run),
    )


def terminal_test_from_run(run: E2eRun) -> TerminalTest:
    test = run.test or {}
    name = test.get("name") or ""
    return TerminalTest(
        uuid=test.get("uuid") or run.uuid,
        description=test.get("description") or name,
        title=name,
        status=run.status or Status.PENDING.value,
        outcome=run.outcome or Outcome.PENDING.value,
        steps=derive_steps(run),
    )


def terminal_tests(members: Optional[List[E2eTest]]) -> List[TerminalTest]:
    return [terminal_test_from_test(test) for test in members or []]


def build_state(
    previous: TestState,
    polled: TestObject,
    status: Status,
    tests: List[TerminalTest],
) -> TestState:
    """Replace ``previous`` wholesale with freshly derived values."""
    state = replace(
        previous,
        test_object=polled,
        status=status,
        tests=tests,
        step_number=sum(len(test.steps) for test in tests),
        error=None,
    )
    return replace(state, completed=state.is_terminal)


__all__ = [
    "build_state",
    "coerce_status",
    "derive_steps",
    "terminal_test_from_run",
    "terminal_test_from_test",
    "terminal_tests",
]
