"""Derivation of canonical :class:`TestState` from classified remote objects."""

from __future__ import annotations

import logging
from typing import Optional

from remote_e2e.classifier import classify
from remote_e2e.kinds import kind_for
from remote_e2e.models import (
    Outcome,
    Status,
    TestObject,
    TestObjectType,
    TestState,
    Variant,
)
from remote_e2e.steps import coerce_status, derive_steps

logger = logging.getLogger(__name__)


def normalize(
    previous: TestState,
    object_type: TestObjectType,
    polled: TestObject,
    variant: Optional[Variant] = None,
) -> TestState:
    """Produce the next :class:`TestState` for a polled object.

    ``variant`` is the classifier's verdict on ``polled.raw_object``; it is
    computed here when the caller has not already done so.

    Raises:
        TypeMismatch: the variant is not one ``object_type`` accepts.
        UnrecognizedStatus: the object reports a status outside :class:`Status`.
    """
    if variant is None:
        variant = classify(polled.raw_object)
    state = kind_for(object_type).derive(previous, polled, variant)
    logger.debug(
        "Normalized %s %s: status=%s tests=%d",
        object_type.value,
        polled.uuid,
        state.status.value,
        len(state.tests),
    )
    return state


def grade(state: TestState) -> Outcome:
    """Fold per-test outcomes into one verdict for the finished run."""
    if state.status == Status.ERROR:
        return Outcome.ERROR
    outcomes = {test.outcome for test in state.tests}
    if Outcome.ERROR.value in outcomes:
        return Outcome.ERROR
    if Outcome.FAIL.value in outcomes or state.status == Status.FAILED:
        return Outcome.FAIL
    return Outcome.PASS


__all__ = ["coerce_status", "derive_steps", "grade", "normalize"]
