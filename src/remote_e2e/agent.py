"""Top-level orchestrator for one remote E2E run."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from remote_e2e.classifier import classify
from remote_e2e.core.constants import (
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_RUN_TIMEOUT_S,
    DEFAULT_TUNNEL_DOMAIN,
    MAX_PORT,
    MIN_PORT,
)
from remote_e2e.errors import (
    E2eError,
    NoWorkspace,
    NotInitialized,
    RunInProgress,
    ServiceUnavailable,
    ValidationError,
)
from remote_e2e.interfaces import (
    HealthProbe,
    RemoteObjectGateway,
    RepositoryResolver,
    TunnelProvider,
)
from remote_e2e.kinds import ObjectKind, kind_for
from remote_e2e.models import (
    RepositoryInfo,
    TestObject,
    TestObjectType,
    TestState,
    Variant,
)
from remote_e2e.normalizer import normalize
from remote_e2e.polling import PollingLoop, UpdateCallback
from remote_e2e.tunnel.coordinator import TunnelCoordinator

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "E2E Test"


class AgentState(Enum):
    UNINITIALIZED = "uninitialized"
    CHECKING = "checking"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AgentOptions:
    object_type: TestObjectType
    local_port: int
    description: str = DEFAULT_DESCRIPTION
    test_params: Dict[str, Any] = field(default_factory=dict)
    file_path: Optional[str] = None
    workspace_dir: Optional[str] = None
    tunnel_token: Optional[str] = None
    tunnel_domain: str = DEFAULT_TUNNEL_DOMAIN
    poll_interval: float = DEFAULT_POLL_INTERVAL_S
    timeout: float = DEFAULT_RUN_TIMEOUT_S
    max_skipped_polls: Optional[int] = None


class AgentController:
    """Validate the environment, then run one create/poll cycle.

    Owns the :class:`PollingLoop` and :class:`TunnelCoordinator` for the
    lifetime of a run; concurrent runs need separate controllers.
    """

    def __init__(
        self,
        gateway: RemoteObjectGateway,
        tunnel_provider: TunnelProvider,
        health_probe: HealthProbe,
        repository_resolver: RepositoryResolver,
        options: AgentOptions,
        *,
        on_update: Optional[UpdateCallback] = None,
    ) -> None:
        self.gateway = gateway
        self.tunnel_provider = tunnel_provider
        self.health_probe = health_probe
        self.repository_resolver = repository_resolver
        self.options = options
        self.on_update = on_update
        self.object_type = TestObjectType(options.object_type)
        self.kind: ObjectKind = kind_for(self.object_type)

        self._state = AgentState.UNINITIALIZED
        self._repository_info: Optional[RepositoryInfo] = None
        self._loop: Optional[PollingLoop] = None
        self._task: Optional[asyncio.Task] = None
        self._last_error: Optional[E2eError] = None

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def repository_info(self) -> Optional[RepositoryInfo]:
        return self._repository_info

    @property
    def test_state(self) -> Optional[TestState]:
        return self._loop.state if self._loop else None

    @property
    def last_error(self) -> Optional[E2eError]:
        return self._last_error

    async def initialize(self) -> bool:
        """Check that the local service answers before anything remote happens.

        Raises:
            RunInProgress: If a run is already under way
            ValidationError: If the configured port is not a usable port
            ServiceUnavailable: If nothing answers on the configured port
        """
        if self._state == AgentState.RUNNING:
            raise RunInProgress()
        port = self.options.local_port
        if isinstance(port, bool) or not isinstance(port, int) or not (
            MIN_PORT <= port <= MAX_PORT
        ):
            error = ValidationError(
                f"Invalid port number: {port}. "
                f"Port must be between {MIN_PORT} and {MAX_PORT}"
            )
            self._state = AgentState.FAILED
            self._last_error = error
            raise error

        self._state = AgentState.CHECKING
        logger.info("Checking if service is active on port %s...", port)

        if not await self.health_probe.check(port):
            error = ServiceUnavailable(port)
            self._state = AgentState.FAILED
            self._last_error = error
            logger.error(error.message)
            raise error

        logger.info("Service is active on port %s", port)
        self._state = AgentState.READY
        return True

    def is_ready(self) -> bool:
        return self._state == AgentState.READY

    def is_test_running(self) -> bool:
        return self._state == AgentState.RUNNING

    async def run(self) -> TestState:
        """Run the configured test object to a terminal state.

        Raises:
            RunInProgress: If this agent is already checking or running
            NotInitialized: If the local service still does not answer
            E2eError: Any structured error that ended the run
        """
        if self._state in (AgentState.CHECKING, AgentState.RUNNING):
            raise RunInProgress()
        if self._state != AgentState.READY:
            try:
                await self.initialize()
            except ServiceUnavailable as exc:
                raise NotInitialized(exc.message, hint=exc.hint) from exc

        self._state = AgentState.RUNNING
        try:
            self._repository_info = await asyncio.to_thread(self._resolve_repository)
            self._loop = self._build_loop()
            self._task = asyncio.ensure_future(
                self._loop.run(self._create, self._poll, classify, self._normalize)
            )
            final = await self._task
        except E2eError as exc:
            self._last_error = exc
            self._state = AgentState.FAILED
            raise
        except asyncio.CancelledError:
            self._state = AgentState.FAILED
            raise
        finally:
            self._task = None

        self._state = (
            AgentState.FAILED if final.error is not None else AgentState.COMPLETED
        )
        return final

    async def shutdown(self) -> None:
        """Cancel an in-flight run; the loop closes its tunnel on the way out."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except E2eError as exc:
            logger.debug("Run ended with %s during shutdown", exc.code)

    def _resolve_repository(self) -> RepositoryInfo:
        file_path = self.options.file_path
        if not file_path:
            workspace = self.options.workspace_dir or os.getcwd()
            if not workspace or not os.path.isdir(workspace):
                raise NoWorkspace(
                    "No workspace directories found. "
                    "Please open a workspace to run E2E tests."
                )
            logger.info("No file given. Using workspace directory instead.")
            file_path = workspace
        return self.repository_resolver.resolve(file_path)

    def _build_loop(self) -> PollingLoop:
        tunnel = TunnelCoordinator(
            self.tunnel_provider, base_domain=self.options.tunnel_domain
        )
        return PollingLoop(
            tunnel=tunnel,
            local_port=self.options.local_port,
            auth_token=self.options.tunnel_token,
            interval=self.options.poll_interval,
            timeout=self.options.timeout,
            max_skipped_polls=self.options.max_skipped_polls,
            on_update=self.on_update,
        )

    def _params(self) -> Dict[str, Any]:
        info = self._repository_info
        if info is None:
            raise ValidationError("Repository information is required to create a test")
        return {
            "branchName": info.branch_name,
            **self.options.test_params,
            "filePath": info.file_path,
            "repoName": info.repo_name,
            "repoPath": info.repo_path,
        }

    def _description(self) -> str:
        return self.options.test_params.get("description") or self.options.description

    async def _create(self) -> TestObject:
        return await self.gateway.create(
            self.object_type, self._description(), self._params()
        )

    async def _poll(self, uuid: str) -> TestObject:
        return await self.gateway.poll(self.object_type, uuid)

    def _normalize(
        self, previous: TestState, polled: TestObject, variant: Variant
    ) -> TestState:
        return normalize(previous, self.object_type, polled, variant)


__all__ = ["AgentController", "AgentOptions", "AgentState"]
