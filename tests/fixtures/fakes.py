"""In-memory stand-ins for the collaborator protocols."""

import asyncio
from typing import List, Optional

from remote_e2e.errors import NotAGitRepository
from remote_e2e.models import RepositoryInfo, TestObject


class FakeTunnelProvider:
    def __init__(
        self,
        fail_with: Optional[BaseException] = None,
        close_error: Optional[BaseException] = None,
        open_delay: float = 0.0,
    ):
        self.fail_with = fail_with
        self.close_error = close_error
        self.open_delay = open_delay
        self.opened: List[tuple] = []
        self.closed: List[str] = []
        self.events: List[str] = []

    async def open(self, port: int, hostname: str, auth_token: str) -> str:
        self.events.append(f"open:{hostname}")
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if self.fail_with is not None:
            raise self.fail_with
        self.opened.append((port, hostname, auth_token))
        return f"https://{hostname}"

    async def close(self, url: str) -> None:
        self.events.append(f"close:{url}")
        self.closed.append(url)
        if self.close_error is not None:
            raise self.close_error

    @property
    def active(self) -> int:
        return len(self.opened) - len(self.closed)


class FakeHealthProbe:
    """Answers from ``answers`` in order; the last answer repeats."""

    def __init__(self, *answers: bool):
        self.answers = list(answers) or [True]
        self.calls: List[int] = []

    async def check(self, port: int) -> bool:
        self.calls.append(port)
        if len(self.answers) > 1:
            return self.answers.pop(0)
        return self.answers[0]


class FakeRepositoryResolver:
    def __init__(self, info: Optional[RepositoryInfo] = None):
        self.info = info
        self.calls: List[str] = []

    def resolve(self, file_path: str) -> RepositoryInfo:
        self.calls.append(file_path)
        if self.info is None:
            raise NotAGitRepository(f'File "{file_path}" is not in a repository')
        return self.info


class FakeGateway:
    """Returns ``created`` from create and walks ``polls`` one per call.

    Entries in ``polls`` may be a TestObject, ``None`` or an exception to
    raise. The last entry repeats once the others are used up.
    """

    def __init__(self, created: TestObject, polls: Optional[list] = None):
        self.created = created
        self.polls = list(polls or [])
        self.create_calls: List[tuple] = []
        self.poll_calls: List[str] = []

    async def create(self, object_type=None, description=None, params=None) -> TestObject:
        self.create_calls.append((object_type, description, dict(params or {})))
        return self.created

    async def poll(self, object_type, uuid, params=None):
        self.poll_calls.append(uuid)
        if not self.polls:
            return None
        item = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
        if isinstance(item, BaseException):
            raise item
        return item
