"""Remote object gateway backed by the E2E service HTTP API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from remote_e2e.classifier import classify
from remote_e2e.core.api_client import APIClient, UnauthenticatedError
from remote_e2e.errors import CreateFailed, PollFailed
from remote_e2e.kinds import describe, kind_for
from remote_e2e.models import TestObject, TestObjectType

logger = logging.getLogger(__name__)


class E2eGateway(APIClient):
    """Client for creating and polling E2E tests, suites and commit suites."""

    async def create(
        self,
        object_type: TestObjectType,
        description: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> TestObject:
        """Create a remote object of ``object_type``.

        Args:
            object_type: Which kind of object to create
            description: Free-text description of what to test
            params: Extra request fields (repository context, test params)

        Returns:
            TestObject: The created object and its initial status

        Raises:
            CreateFailed: If the request fails or the response has no UUID
            ClassificationError: If the response is not the expected shape
        """
        kind = kind_for(object_type)
        body = {**(params or {}), "description": description}
        try:
            response = await self.post(kind.create_path, body)
        except (httpx.HTTPError, UnauthenticatedError) as exc:
            logger.error("Error creating %s: %s", object_type.value, exc)
            raise CreateFailed(f"Failed to create {object_type.value}: {exc}") from exc

        raw = self._decode(response, CreateFailed, f"create {object_type.value}")
        if not raw:
            raise CreateFailed(
                f"Failed to create {object_type.value}: No result returned from server"
            )
        if not isinstance(raw, dict) or not raw.get("uuid"):
            raise CreateFailed(
                f"Failed to create {object_type.value}: Missing UUID in response"
            )

        variant = classify(raw)
        test_object = TestObject(
            uuid=raw["uuid"],
            description=describe(variant),
            status=kind.created_status(variant),
            raw_object=raw,
            variant=variant,
        )
        logger.info(
            "Created %s %s (status=%s)",
            object_type.value,
            test_object.uuid,
            test_object.status.value,
        )
        return test_object

    async def poll(
        self,
        object_type: TestObjectType,
        uuid: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> TestObject:
        """Fetch the current copy of a remote object.

        Raises:
            ValidationError: If ``uuid`` is empty
            PollFailed: If the request fails or the response has no UUID
            ClassificationError: If the response is not the expected shape
        """
        kind = kind_for(object_type)
        path = kind.poll_path(uuid)
        try:
            response = await self.get(path, params=params)
        except (httpx.HTTPError, UnauthenticatedError) as exc:
            logger.error("Error polling %s with UUID %s: %s", object_type.value, uuid, exc)
            raise PollFailed(
                f"Failed to poll {object_type.value} with UUID {uuid}: {exc}"
            ) from exc

        raw = self._decode(response, PollFailed, f"poll {object_type.value}")
        if not raw:
            raise PollFailed(
                f"Failed to poll {object_type.value} with UUID {uuid}: "
                "No result returned from server"
            )
        if not isinstance(raw, dict) or not raw.get("uuid"):
            raise PollFailed(f"Failed to poll {object_type.value}: Missing UUID in response")

        variant = classify(raw)
        status = kind.polled_status(variant)
        logger.debug("Polled %s %s status: %s", object_type.value, uuid, status.value)
        return TestObject(
            uuid=raw["uuid"],
            description=describe(variant),
            status=status,
            raw_object=raw,
            variant=variant,
        )

    def _decode(self, response: httpx.Response, failure: type, action: str) -> Any:
        try:
            return self.json_body(response)
        except ValueError as exc:
            raise failure(f"Failed to {action}: response was not valid JSON") from exc


__all__ = ["E2eGateway"]
