"""Collaborator interfaces the orchestration core depends on."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from remote_e2e.models import RepositoryInfo, TestObject, TestObjectType


@runtime_checkable
class RemoteObjectGateway(Protocol):
    async def create(
        self,
        object_type: TestObjectType,
        description: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> TestObject:
        """Create a remote object; raises ``CreateFailed``."""
        ...

    async def poll(
        self,
        object_type: TestObjectType,
        uuid: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> TestObject:
        """Fetch the latest copy of a remote object; raises ``PollFailed``."""
        ...


@runtime_checkable
class TunnelProvider(Protocol):
    async def open(self, port: int, hostname: str, auth_token: str) -> str:
        """Expose ``port`` under ``hostname`` and return the public URL."""
        ...

    async def close(self, url: str) -> None:
        ...


@runtime_checkable
class HealthProbe(Protocol):
    async def check(self, port: int) -> bool:
        """Return whether something answers on ``port``; never raises."""
        ...


@runtime_checkable
class RepositoryResolver(Protocol):
    def resolve(self, file_path: str) -> RepositoryInfo:
        """Resolve repository context; raises ``NotAGitRepository``."""
        ...


__all__ = ["HealthProbe", "RemoteObjectGateway", "RepositoryResolver", "TunnelProvider"]
