"""Data model for remote E2E runs.

Two families live here: pydantic models mirroring the shapes the remote
service returns (camelCase on the wire), and the canonical dataclasses the
rest of the package passes around.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class TestObjectType(str, Enum):
    """Which remote object a run creates and polls."""

    __test__ = False

    E2E_TEST = "e2e-test"
    TEST_SUITE = "test-suite"
    COMMIT_SUITE = "commit-suite"


class Status(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    # Outcome-flavoured values reported at the UI boundary
    FAILED = "failed"
    SUCCESS = "success"
    SKIPPED = "skipped"


TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.ERROR, Status.FAILED})


class Outcome(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    UNKNOWN = "unknown"
    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"


class VariantKind(str, Enum):
    TEST = "test"
    TEST_SUITE = "test-suite"
    COMMIT_SUITE = "commit-suite"
    RUN = "run"


# ---------------------------------------------------------------------------
# Remote shapes
# ---------------------------------------------------------------------------


class RemoteModel(BaseModel):
    """Base for remote payloads: camelCase aliases, unknown fields kept."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )


class CurrentState(RemoteModel):
    evaluation_previous_goal: Optional[str] = None
    memory: Optional[str] = None
    next_goal: Optional[str] = None


class MessageContent(RemoteModel):
    current_state: Optional[CurrentState] = None
    action: Optional[List[Dict[str, Any]]] = None


class Message(RemoteModel):
    uuid: Optional[str] = None
    json_content: Optional[MessageContent] = None


class Conversation(RemoteModel):
    uuid: Optional[str] = None
    messages: Optional[List[Message]] = None


class E2eRun(RemoteModel):
    kind: ClassVar[VariantKind] = VariantKind.RUN

    uuid: str
    status: Optional[str] = None
    outcome: Optional[str] = None
    key: Optional[str] = None
    conversations: Optional[List[Conversation]] = None
    test: Optional[Dict[str, Any]] = None


class E2eTest(RemoteModel):
    kind: ClassVar[VariantKind] = VariantKind.TEST

    uuid: str
    name: Optional[str] = None
    description: Optional[str] = None
    test_script: Optional[Any] = None
    key: Optional[str] = None
    tunnel_key: Optional[str] = None
    cur_run: Optional[E2eRun] = None


class E2eTestSuite(RemoteModel):
    kind: ClassVar[VariantKind] = VariantKind.TEST_SUITE

    uuid: str
    name: Optional[str] = None
    description: Optional[str] = None
    completed: bool = False
    key: Optional[str] = None
    tunnel_key: Optional[str] = None
    tests: Optional[List[E2eTest]] = None


class E2eCommitSuite(RemoteModel):
    kind: ClassVar[VariantKind] = VariantKind.COMMIT_SUITE

    uuid: str
    run_status: str
    description: Optional[str] = None
    key: Optional[str] = None
    tunnel_key: Optional[str] = None
    tests: List[E2eTest] = []


Variant = Union[E2eTest, E2eTestSuite, E2eCommitSuite, E2eRun]


# ---------------------------------------------------------------------------
# Canonical state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TestObject:
    """Normalized wrapper returned by every create/poll call."""

    __test__ = False

    uuid: str
    description: str
    status: Status
    raw_object: Dict[str, Any]
    # Set by the gateway, which has already classified raw_object
    variant: Optional[Variant] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Step:
    label: str
    status: str
    details: Optional[str] = None
    evaluation_of_previous_goal: str = ""
    planned_next_goal: str = ""
    actions: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class TerminalTest:
    __test__ = False

    uuid: str
    description: str
    title: str
    status: str
    outcome: str
    steps: List[Step] = field(default_factory=list)


@dataclass(frozen=True)
class TestState:
    """Aggregate run state handed to the UI layer after every update."""

    __test__ = False

    test_object: Optional[TestObject] = None
    completed: bool = False
    status: Status = Status.PENDING
    tests: List[TerminalTest] = field(default_factory=list)
    step_number: int = 0
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class TunnelInfo:
    url: str
    port: int
    subdomain: str


@dataclass(frozen=True)
class RepositoryInfo:
    repo_name: str
    repo_path: str
    branch_name: str
    file_path: str


__all__ = [
    "Conversation",
    "CurrentState",
    "E2eCommitSuite",
    "E2eRun",
    "E2eTest",
    "E2eTestSuite",
    "Message",
    "MessageContent",
    "Outcome",
    "RepositoryInfo",
    "Status",
    "Step",
    "TERMINAL_STATUSES",
    "TerminalTest",
    "TestObject",
    "TestObjectType",
    "TestState",
    "TunnelInfo",
    "Variant",
    "VariantKind",
]
