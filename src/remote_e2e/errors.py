"""Structured error taxonomy for remote E2E runs.

Every error raised from a public operation is an :class:`E2eError` carrying a
``kind`` so callers can decide how to surface it without parsing messages.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Iterable, Optional

_SECRET_FIELD_PATTERN = re.compile(
    r"(?i)(authorization|authtoken|auth_token|[a-z0-9\-]*key|token)\s*[:=]\s*([^\s,]+)"
)


def _scrub_detail(detail: Optional[str]) -> Optional[str]:
    if detail is None:
        return None
    return _SECRET_FIELD_PATTERN.sub(lambda m: f"{m.group(1)}=<redacted>", detail)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    ENVIRONMENT = "environment"
    GATEWAY = "gateway"
    CLASSIFICATION = "classification"
    TUNNEL = "tunnel"
    PROGRAMMING = "programming"


class E2eError(Exception):
    """Base class for all errors raised by remote-e2e."""

    kind: ErrorKind = ErrorKind.PROGRAMMING
    code: str = "error"

    def __init__(self, message: str, *, hint: Optional[str] = None) -> None:
        self.message = _scrub_detail(message) or ""
        self.hint = hint
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "hint": self.hint,
        }


# Validation: caller's fault, never retried.
class ValidationError(E2eError):
    kind = ErrorKind.VALIDATION
    code = "invalid_argument"


# Environment: fatal to the current run.
class EnvironmentCheckError(E2eError):
    kind = ErrorKind.ENVIRONMENT
    code = "environment"


class NoWorkspace(EnvironmentCheckError):
    code = "no_workspace"


class NotAGitRepository(EnvironmentCheckError):
    code = "not_a_git_repository"


class ServiceUnavailable(EnvironmentCheckError):
    code = "service_unavailable"

    def __init__(self, port: int) -> None:
        super().__init__(
            f"Service is not active on port {port}. "
            "Please start your application server before running E2E tests.",
            hint="start the local server and initialize again",
        )
        self.port = port


# Gateway: fatal to a single poll tick.
class GatewayError(E2eError):
    kind = ErrorKind.GATEWAY
    code = "gateway"


class CreateFailed(GatewayError):
    code = "create_failed"


class PollFailed(GatewayError):
    code = "poll_failed"


# Classification: always fatal, the remote contract was broken.
class ClassificationError(E2eError):
    kind = ErrorKind.CLASSIFICATION
    code = "classification"


class EmptyResponse(ClassificationError):
    code = "empty_response"

    def __init__(self) -> None:
        super().__init__("Remote service returned an empty object")


class UnrecognizedShape(ClassificationError):
    code = "unrecognized_shape"

    def __init__(self, fields: Iterable[str]) -> None:
        self.fields = sorted(str(f) for f in fields)
        super().__init__(
            "Remote object does not match any known shape. "
            f"Received object with keys: {', '.join(self.fields) or '<none>'}"
        )


class TypeMismatch(ClassificationError):
    code = "type_mismatch"

    def __init__(self, expected: str, received: str) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"Expected {expected} but received {received}")


class UnrecognizedStatus(ClassificationError):
    code = "unrecognized_status"

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Remote object reported an unknown status: {value!r}")


class TunnelErrorCategory(str, Enum):
    AUTHENTICATION = "authentication"
    PORT_UNREACHABLE = "port_unreachable"
    NAME_IN_USE = "name_in_use"
    BINARY_MISSING = "binary_missing"
    GENERIC = "generic"


class TunnelError(E2eError):
    kind = ErrorKind.TUNNEL
    code = "tunnel"

    def __init__(
        self,
        message: str,
        category: TunnelErrorCategory = TunnelErrorCategory.GENERIC,
        *,
        original: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.original = _scrub_detail(original)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["category"] = self.category.value
        return data


class NotInitialized(E2eError):
    code = "not_initialized"

    def __init__(
        self, reason: Optional[str] = None, *, hint: Optional[str] = None
    ) -> None:
        message = "Agent is not initialized. Please call initialize() first."
        if reason:
            message = f"Agent is not initialized: {reason}"
        super().__init__(message, hint=hint)


class RunInProgress(E2eError):
    code = "run_in_progress"

    def __init__(self) -> None:
        super().__init__(
            "A test is already running on this agent. "
            "Wait for it to finish or call shutdown() first."
        )


__all__ = [
    "ClassificationError",
    "CreateFailed",
    "E2eError",
    "EmptyResponse",
    "EnvironmentCheckError",
    "ErrorKind",
    "GatewayError",
    "NoWorkspace",
    "NotAGitRepository",
    "NotInitialized",
    "PollFailed",
    "RunInProgress",
    "ServiceUnavailable",
    "TunnelError",
    "TunnelErrorCategory",
    "TypeMismatch",
    "UnrecognizedShape",
    "UnrecognizedStatus",
    "ValidationError",
]
