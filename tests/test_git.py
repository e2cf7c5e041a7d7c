"""Tests for git session detection."""

import subprocess
from pathlib import Path

import pytest

from reviewed_patch import git
from reviewed_patch.git import SessionInfo, detect_session, repo_name_from_remote


@pytest.mark.parametrize(
    "url, expected",
    [
        ("git@github.com:user/repo.git", "repo"),
        ("https://github.com/user/repo.git", "repo"),
        ("https://github.com/user/repo", "repo"),
        ("https://gitlab.example.com/group/sub/project.git/", "project"),
        ("ssh://git@host:2222/team/tool.git", "tool"),
        ("/srv/git/local-repo.git", "local-repo"),
    ],
)
def test_repo_name_from_remote(url, expected):
    assert repo_name_from_remote(url) == expected


def test_repo_name_from_unparseable_remote():
    assert repo_name_from_remote("") is None


def test_session_id_format():
    assert SessionInfo(repo_name="repo", branch_name="feature/x").session_id == "repo:feature/x"


def _fake_git(responses):
    """Build a _git replacement answering from a dict keyed by the first args."""
    calls = []

    def fake(args, cwd):
        calls.append((tuple(args), cwd))
        return responses.get(tuple(args))

    return fake, calls


class TestDetectSession:
    """Tests for detect_session with git calls stubbed out."""

    def test_uses_remote_and_branch(self, monkeypatch):
        fake, calls = _fake_git({
            ("rev-parse", "--show-toplevel"): "/work/checkout",
            ("remote", "get-url", "origin"): "git@github.com:acme/widgets.git",
            ("rev-parse", "--abbrev-ref", "HEAD"): "main",
        })
        monkeypatch.setattr(git, "_git", fake)

        session = detect_session()

        assert session == SessionInfo(repo_name="widgets", branch_name="main")
        assert session.session_id == "widgets:main"
        # follow-up commands run from the repository root
        assert all(cwd == Path("/work/checkout") for _, cwd in calls[1:])

    def test_falls_back_to_directory_name(self, monkeypatch):
        fake, _ = _fake_git({
            ("rev-parse", "--show-toplevel"): "/work/checkout",
            ("rev-parse", "--abbrev-ref", "HEAD"): "dev",
        })
        monkeypatch.setattr(git, "_git", fake)

        assert detect_session() == SessionInfo(repo_name="checkout", branch_name="dev")

    def test_unknown_branch(self, monkeypatch):
        fake, _ = _fake_git({
            ("rev-parse", "--show-toplevel"): "/work/checkout",
        })
        monkeypatch.setattr(git, "_git", fake)

        assert detect_session().branch_name == "unknown"

    def test_outside_repository(self, monkeypatch):
        fake, _ = _fake_git({})
        monkeypatch.setattr(git, "_git", fake)

        assert detect_session() is None


class TestGitRunner:
    """Tests for the subprocess wrapper."""

    def test_nonzero_exit_is_none(self, monkeypatch):
        def fake_run(*args, **kwargs):
            return subprocess.CompletedProcess(args=args, returncode=128, stdout="", stderr="fatal")

        monkeypatch.setattr(subprocess, "run", fake_run)

        assert git._git(["rev-parse", "--show-toplevel"], None) is None

    def test_missing_git_binary_is_none(self, monkeypatch):
        def fake_run(*args, **kwargs):
            raise FileNotFoundError("git")

        monkeypatch.setattr(subprocess, "run", fake_run)

        assert git._git(["status"], None) is None

    def test_strips_stdout(self, monkeypatch):
        def fake_run(*args, **kwargs):
            return subprocess.CompletedProcess(args=args, returncode=0, stdout="main\n", stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)

        assert git._git(["rev-parse", "--abbrev-ref", "HEAD"], None) == "main"

    def test_not_a_repository(self, tmp_path):
        """A plain directory is sessionless (or git is not installed)."""
        assert detect_session(tmp_path) is None
