import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

from remote_e2e.models import RepositoryInfo  # noqa: E402

from tests.fixtures.fakes import FakeTunnelProvider  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "git: test needs a git executable on PATH")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (
        "DEBUGGAI_API_KEY",
        "DEBUGGAI_BASE_URL",
        "NGROK_AUTH_TOKEN",
        "DEBUGGAI_TUNNEL_DOMAIN",
        "DEBUGGAI_POLL_INTERVAL",
        "DEBUGGAI_TIMEOUT",
        "DEBUGGAI_VERBOSE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def repository_info(tmp_path) -> RepositoryInfo:
    return RepositoryInfo(
        repo_name="acme/shop",
        repo_path=str(tmp_path),
        branch_name="main",
        file_path=str(tmp_path / "app.py"),
    )


@pytest.fixture
def tunnel_provider() -> FakeTunnelProvider:
    return FakeTunnelProvider()
