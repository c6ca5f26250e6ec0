import shutil
import subprocess

import pytest

from remote_e2e.errors import NotAGitRepository
from remote_e2e.git_utils import GitRepositoryResolver, repo_name_from_remote


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(cwd, *args):
    subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


@pytest.fixture
def repo(tmp_path):
    root = tmp_path / "shop"
    root.mkdir()
    _git(root, "init", "-q")
    _git(root, "checkout", "-q", "-b", "feature/login")
    _git(root, "config", "user.email", "dev@example.com")
    _git(root, "config", "user.name", "Dev")
    (root / "app.py").write_text("print('hi')\n")
    _git(root, "add", "app.py")
    _git(root, "-c", "commit.gpgsign=false", "commit", "-q", "-m", "init")
    return root


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://github.com/acme/shop.git", "acme/shop"),
        ("https://github.com/acme/shop", "acme/shop"),
        ("git@github.com:acme/shop.git", "acme/shop"),
        ("ssh://git@github.com/acme/shop.git", "acme/shop"),
        ("https://gitlab.com/acme/shop.git", None),
        ("", None),
        (None, None),
    ],
)
def test_repo_name_from_remote(url, expected):
    assert repo_name_from_remote(url) == expected


@pytest.mark.git
@requires_git
def test_resolve_uses_origin_remote(repo):
    _git(repo, "remote", "add", "origin", "git@github.com:acme/shop.git")

    info = GitRepositoryResolver().resolve(str(repo / "app.py"))

    assert info.repo_name == "acme/shop"
    assert info.branch_name == "feature/login"
    assert info.file_path == str((repo / "app.py").resolve())
    assert (
        subprocess.check_output(["git", "rev-parse", "--show-toplevel"], cwd=str(repo))
        .decode()
        .strip()
        == info.repo_path
    )


@pytest.mark.git
@requires_git
def test_resolve_falls_back_to_directory_name(repo):
    info = GitRepositoryResolver().resolve(str(repo))

    assert info.repo_name == "shop"


@pytest.mark.git
@requires_git
def test_resolve_on_unborn_branch(tmp_path):
    root = tmp_path / "fresh"
    root.mkdir()
    _git(root, "init", "-q")
    _git(root, "symbolic-ref", "HEAD", "refs/heads/trunk")

    info = GitRepositoryResolver().resolve(str(root))

    assert info.branch_name == "trunk"


def test_resolve_outside_repository(tmp_path, monkeypatch):
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    target = tmp_path / "loose.py"
    target.write_text("")

    with pytest.raises(NotAGitRepository) as exc:
        GitRepositoryResolver().resolve(str(target))

    assert "loose.py" in exc.value.message
