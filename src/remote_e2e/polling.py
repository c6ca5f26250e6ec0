"""Bounded polling loop for one remote run."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from remote_e2e.core.constants import DEFAULT_POLL_INTERVAL_S, DEFAULT_RUN_TIMEOUT_S
from remote_e2e.errors import E2eError, GatewayError
from remote_e2e.kinds import tunnel_subdomain, tunnel_token
from remote_e2e.models import TERMINAL_STATUSES, Status, TestObject, TestState, Variant
from remote_e2e.tunnel.coordinator import TunnelCoordinator

logger = logging.getLogger(__name__)

CreateFn = Callable[[], Awaitable[TestObject]]
PollFn = Callable[[str], Awaitable[Optional[TestObject]]]
ClassifyFn = Callable[[Optional[Mapping[str, Any]]], Variant]
NormalizeFn = Callable[[TestState, TestObject, Variant], TestState]
UpdateCallback = Callable[[TestState], Union[None, Awaitable[None]]]


class PollingLoop:
    """Create a remote object, expose the local port, poll until done.

    The poll interval and the overall timeout are independent: the timeout is
    wall-clock from the start of :meth:`run`, covering creation, tunnel setup
    and every poll. Polls are strictly sequential. Whatever way the loop ends
    (terminal status, timeout, error or cancellation) the tunnel is closed
    exactly once.
    """

    def __init__(
        self,
        *,
        tunnel: Optional[TunnelCoordinator] = None,
        local_port: Optional[int] = None,
        auth_token: Optional[str] = None,
        interval: float = DEFAULT_POLL_INTERVAL_S,
        timeout: float = DEFAULT_RUN_TIMEOUT_S,
        max_skipped_polls: Optional[int] = None,
        on_update: Optional[UpdateCallback] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.tunnel = tunnel
        self.local_port = local_port
        self.auth_token = auth_token
        self.interval = interval
        self.timeout = timeout
        # None keeps skipping empty polls until the timeout.
        self.max_skipped_polls = max_skipped_polls
        self.on_update = on_update
        self._state = TestState()
        self._running = False

    @property
    def state(self) -> TestState:
        return self._state

    def is_running(self) -> bool:
        return self._running

    async def run(
        self,
        create_fn: CreateFn,
        poll_fn: PollFn,
        classify: ClassifyFn,
        normalize: NormalizeFn,
    ) -> TestState:
        """Drive the run to a terminal :class:`TestState`.

        Returns the final state on completion or timeout. Structured errors
        that end the run (creation, classification, tunnel setup) are raised
        after the state has been marked ``error`` and the tunnel released.
        """
        self._state = TestState()
        self._running = True
        try:
            return await asyncio.wait_for(
                self._drive(create_fn, poll_fn, classify, normalize),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            message = f"Test timed out after {self.timeout:g} seconds"
            logger.error(message)
            await self._fail(message)
            return self._state
        except E2eError as exc:
            logger.error("Run failed (%s): %s", exc.kind.value, exc.message)
            await self._fail(exc.message)
            raise
        except asyncio.CancelledError:
            logger.warning("Run cancelled")
            self._state = replace(
                self._state, status=Status.ERROR, completed=True, error="Run cancelled"
            )
            raise
        finally:
            self._running = False
            if self.tunnel is not None:
                await self.tunnel.close()

    async def _drive(
        self,
        create_fn: CreateFn,
        poll_fn: PollFn,
        classify: ClassifyFn,
        normalize: NormalizeFn,
    ) -> TestState:
        test_object = await create_fn()
        self._state = replace(
            self._state,
            test_object=test_object,
            status=test_object.status,
            completed=test_object.status in TERMINAL_STATUSES,
        )
        await self._publish()
        if self._state.is_terminal:
            logger.warning(
                "Test object %s was created already %s; nothing to poll",
                test_object.uuid,
                test_object.status.value,
            )
            return self._state

        if self.tunnel is not None:
            await self._open_tunnel(test_object, classify)

        skipped = 0
        while True:
            await asyncio.sleep(self.interval)

            try:
                polled = await poll_fn(test_object.uuid)
            except GatewayError as exc:
                logger.warning("Poll failed, skipping tick: %s", exc.message)
                polled = None

            if polled is None:
                skipped += 1
                if self.max_skipped_polls is not None and skipped > self.max_skipped_polls:
                    message = f"No update received in {skipped} consecutive polls"
                    logger.error(message)
                    await self._fail(message)
                    return self._state
                continue
            skipped = 0

            variant = _variant_of(polled, classify)
            self._state = normalize(self._state, polled, variant)
            await self._publish()

            if self._state.is_terminal:
                logger.info(
                    "Run %s finished with status %s",
                    polled.uuid,
                    self._state.status.value,
                )
                return self._state

    async def _open_tunnel(self, test_object: TestObject, classify: ClassifyFn) -> None:
        variant = _variant_of(test_object, classify)
        await self.tunnel.open(
            self.local_port,
            tunnel_subdomain(variant),
            tunnel_token(variant) or self.auth_token,
        )

    async def _fail(self, message: str) -> None:
        self._state = replace(
            self._state, status=Status.ERROR, completed=True, error=message
        )
        await self._publish()

    async def _publish(self) -> None:
        if self.on_update is None:
            return
        try:
            result = self.on_update(self._state)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("State update callback failed")


def _variant_of(test_object: TestObject, classify: ClassifyFn) -> Variant:
    if test_object.variant is not None:
        return test_object.variant
    return classify(test_object.raw_object)


__all__ = ["PollingLoop"]
