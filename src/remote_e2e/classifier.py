"""Structural classification of untyped remote payloads.

The remote service never says which object it returned, so the shape is
decided here, once, and every later stage switches on ``Variant.kind``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Tuple, Type

from pydantic import ValidationError as PydanticValidationError

from remote_e2e.errors import EmptyResponse, UnrecognizedShape
from remote_e2e.models import E2eCommitSuite, E2eRun, E2eTest, E2eTestSuite, Variant

logger = logging.getLogger(__name__)


def _is_commit_suite(raw: Mapping[str, Any]) -> bool:
    return "uuid" in raw and "runStatus" in raw and isinstance(raw.get("tests"), list)


def _is_run(raw: Mapping[str, Any]) -> bool:
    return "uuid" in raw and "status" in raw and "outcome" in raw


def _is_test(raw: Mapping[str, Any]) -> bool:
    return "uuid" in raw and "name" in raw and "testScript" in raw


def _is_test_suite(raw: Mapping[str, Any]) -> bool:
    return "uuid" in raw and "name" in raw and isinstance(raw.get("completed"), bool)


# Order matters: first match wins.
_RULES: Tuple[Tuple[Callable[[Mapping[str, Any]], bool], Type[Variant]], ...] = (
    (_is_commit_suite, E2eCommitSuite),
    (_is_run, E2eRun),
    (_is_test, E2eTest),
    (_is_test_suite, E2eTestSuite),
)


def classify(raw: Optional[Mapping[str, Any]]) -> Variant:
    """Return the typed variant ``raw`` matches.

    Raises:
        EmptyResponse: ``raw`` is ``None``.
        UnrecognizedShape: no rule matched, or the matched shape is malformed.
    """
    if raw is None:
        raise EmptyResponse()
    if not isinstance(raw, Mapping):
        raise UnrecognizedShape([])

    for matches, model in _RULES:
        if not matches(raw):
            continue
        try:
            return model.model_validate(dict(raw))
        except PydanticValidationError as exc:
            logger.error(
                "Payload looked like %s but failed validation: %s",
                model.kind.value,
                exc,
            )
            raise UnrecognizedShape(raw.keys()) from exc

    raise UnrecognizedShape(raw.keys())


__all__ = ["classify"]
