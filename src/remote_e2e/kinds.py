"""One implementation per :class:`TestObjectType`.

An :class:`ObjectKind` knows where its objects live on the remote service,
which classified variants a poll of that object may legitimately return, and
how to turn such a variant into canonical status and tests. The kind is
chosen once when an agent is built and reused for every call.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Dict, FrozenSet, List, Optional

from remote_e2e.core.constants import (
    COMMIT_SUITES_PATH,
    E2E_TESTS_PATH,
    TEST_SUITES_GENERATE_PATH,
    TEST_SUITES_PATH,
)
from remote_e2e.errors import TypeMismatch, ValidationError
from remote_e2e.models import (
    E2eCommitSuite,
    E2eRun,
    E2eTest,
    E2eTestSuite,
    Status,
    TerminalTest,
    TestObject,
    TestObjectType,
    TestState,
    Variant,
    VariantKind,
)
from remote_e2e.steps import (
    build_state,
    coerce_status,
    terminal_test_from_run,
    terminal_test_from_test,
    terminal_tests,
)

logger = logging.getLogger(__name__)


class ObjectKind(ABC):
    object_type: ClassVar[TestObjectType]
    create_path: ClassVar[str]
    detail_prefix: ClassVar[str]
    accepts: ClassVar[FrozenSet[VariantKind]]

    def poll_path(self, uuid: str) -> str:
        if not uuid:
            raise ValidationError(f"UUID is required to poll {self.object_type.value}")
        return f"{self.detail_prefix}{uuid}/"

    def check(self, variant: Variant) -> None:
        if variant.kind not in self.accepts:
            expected = " or ".join(sorted(kind.value for kind in self.accepts))
            logger.error(
                "Expected %s for %s but received %s",
                expected,
                self.object_type.value,
                variant.kind.value,
            )
            raise TypeMismatch(expected, variant.kind.value)

    @abstractmethod
    def status_of(self, variant: Variant) -> Status:
        """Canonical status of an accepted variant."""

    @abstractmethod
    def tests_of(self, variant: Variant) -> List[TerminalTest]:
        """Displayed tests of an accepted variant, rebuilt from scratch."""

    def created_status(self, variant: Variant) -> Status:
        """Status reported for a freshly created object."""
        self.check(variant)
        return Status.RUNNING

    def polled_status(self, variant: Variant) -> Status:
        self.check(variant)
        return self.status_of(variant)

    def derive(self, previous: TestState, polled: TestObject, variant: Variant) -> TestState:
        self.check(variant)
        return build_state(previous, polled, self.status_of(variant), self.tests_of(variant))


class SingleTestKind(ObjectKind):
    object_type = TestObjectType.E2E_TEST
    create_path = E2E_TESTS_PATH
    detail_prefix = E2E_TESTS_PATH
    accepts = frozenset({VariantKind.TEST, VariantKind.RUN})

    def status_of(self, variant: Variant) -> Status:
        if isinstance(variant, E2eRun):
            return coerce_status(variant.status or Status.RUNNING.value)
        run = variant.cur_run
        if run is None:
            # The test exists before its run is scheduled.
            return Status.PENDING
        return coerce_status(run.status or Status.RUNNING.value)

    def tests_of(self, variant: Variant) -> List[TerminalTest]:
        if isinstance(variant, E2eRun):
            return [terminal_test_from_run(variant)]
        return [terminal_test_from_test(variant)]


class TestSuiteKind(ObjectKind):
    __test__ = False

    object_type = TestObjectType.TEST_SUITE
    create_path = TEST_SUITES_GENERATE_PATH
    detail_prefix = TEST_SUITES_PATH
    accepts = frozenset({VariantKind.TEST_SUITE})

    def status_of(self, variant: E2eTestSuite) -> Status:
        return Status.COMPLETED if variant.completed else Status.RUNNING

    def tests_of(self, variant: E2eTestSuite) -> List[TerminalTest]:
        return terminal_tests(variant.tests)


class CommitSuiteKind(ObjectKind):
    object_type = TestObjectType.COMMIT_SUITE
    create_path = COMMIT_SUITES_PATH
    detail_prefix = COMMIT_SUITES_PATH
    accepts = frozenset({VariantKind.COMMIT_SUITE})

    def status_of(self, variant: E2eCommitSuite) -> Status:
        return coerce_status(variant.run_status)

    def tests_of(self, variant: E2eCommitSuite) -> List[TerminalTest]:
        return terminal_tests(variant.tests)

    def created_status(self, variant: Variant) -> Status:
        self.check(variant)
        return self.status_of(variant)


_KINDS: Dict[TestObjectType, ObjectKind] = {
    kind.object_type: kind
    for kind in (SingleTestKind(), TestSuiteKind(), CommitSuiteKind())
}


def kind_for(object_type: TestObjectType) -> ObjectKind:
    try:
        return _KINDS[TestObjectType(object_type)]
    except ValueError as exc:
        raise ValidationError(f"Unknown test object type: {object_type}") from exc


def describe(variant: Variant) -> str:
    return getattr(variant, "description", None) or getattr(variant, "name", None) or ""


def tunnel_subdomain(variant: Variant) -> str:
    """Public name the remote service expects the tunnel under."""
    if variant.key:
        return variant.key
    if isinstance(variant, E2eTest) and variant.cur_run and variant.cur_run.key:
        return variant.cur_run.key
    return variant.uuid


def tunnel_token(variant: Variant) -> Optional[str]:
    return getattr(variant, "tunnel_key", None)


__all__ = [
    "CommitSuiteKind",
    "ObjectKind",
    "SingleTestKind",
    "TestSuiteKind",
    "describe",
    "kind_for",
    "tunnel_subdomain",
    "tunnel_token",
]
