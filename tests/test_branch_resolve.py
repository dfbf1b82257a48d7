import shutil
import subprocess

import pytest

from build_notify.core.branch import BRANCH_ENV_VAR, resolve_branch
from build_notify.core.git import GitOutput


class FakeGit:
    def __init__(self, outputs):
        self._outputs = outputs
        self.calls = []

    def __call__(self, args, cwd):
        self.calls.append(args[0])
        out = self._outputs[args[0]]
        if isinstance(out, Exception):
            raise out
        return out


def test_env_override_wins_without_running_git():
    git = FakeGit({})
    r = resolve_branch(env={BRANCH_ENV_VAR: " main "}, runner=git)
    assert r.ok
    assert r.branch == "main"
    assert r.reason == "env_override"
    assert git.calls == []


def test_blank_env_override_is_ignored():
    git = FakeGit({"branch": GitOutput(0, "* develop\n")})
    r = resolve_branch(env={BRANCH_ENV_VAR: "   "}, runner=git)
    assert r.branch == "develop"
    assert r.reason == "branch_list"


def test_normal_branch_from_listing():
    git = FakeGit({"branch": GitOutput(0, "  main\n* feature/login\n")})
    r = resolve_branch(env={}, runner=git)
    assert r.ok
    assert r.branch == "feature/login"
    assert git.calls == ["branch"]


def test_detached_head_resolved_from_decoration():
    git = FakeGit(
        {
            "branch": GitOutput(0, "* (HEAD detached at 4f1e2d3)\n  main\n"),
            "show": GitOutput(0, " (HEAD, tag: v1.2.10, origin/Release1.2)\n"),
        }
    )
    r = resolve_branch(env={}, runner=git)
    assert r.ok
    assert r.branch == "Release1.2"
    assert r.reason == "detached_decoration"
    assert git.calls == ["branch", "show"]


def test_detached_head_without_remote_ref_falls_back_to_marker_text():
    git = FakeGit(
        {
            "branch": GitOutput(0, "* (HEAD detached at 4f1e2d3)\n"),
            "show": GitOutput(0, " (HEAD, tag: v1.2.10)\n"),
        }
    )
    r = resolve_branch(env={}, runner=git)
    assert r.ok
    assert r.branch == "(HEAD detached at 4f1e2d3)"
    assert r.reason == "detached_fallback"


def test_detached_head_strict_mode_fails():
    git = FakeGit(
        {
            "branch": GitOutput(0, "* (HEAD detached at 4f1e2d3)\n"),
            "show": GitOutput(0, " (HEAD)\n"),
        }
    )
    r = resolve_branch(env={}, runner=git, strict_detached=True)
    assert not r.ok
    assert r.branch is None
    assert r.reason == "detached_unresolved"


def test_no_current_branch_is_failure():
    git = FakeGit({"branch": GitOutput(0, "")})
    r = resolve_branch(env={}, runner=git)
    assert not r.ok
    assert r.branch is None
    assert r.reason == "no_current_branch"


def test_detached_head_failing_show_falls_back():
    git = FakeGit(
        {
            "branch": GitOutput(0, "* (HEAD detached at abc1234)\n"),
            "show": GitOutput(128, "fatal: bad object HEAD\n"),
        }
    )
    r = resolve_branch(env={}, runner=git)
    assert r.ok
    assert r.branch == "(HEAD detached at abc1234)"
    assert r.reason == "detached_fallback"
    assert "fatal: bad object HEAD" in r.detail


def test_detached_head_failing_show_strict_mode_fails():
    git = FakeGit(
        {
            "branch": GitOutput(0, "* (HEAD detached at abc1234)\n"),
            "show": GitOutput(128, "fatal: bad object HEAD\n"),
        }
    )
    r = resolve_branch(env={}, runner=git, strict_detached=True)
    assert not r.ok
    assert r.branch is None
    assert r.reason == "detached_unresolved"
    assert "fatal: bad object HEAD" in r.detail


def test_cli_error_is_logged_and_not_raised():
    from build_notify.core.log import logger

    messages = []
    sink = logger.add(lambda m: messages.append(str(m)), level="WARNING")
    try:
        git = FakeGit({"branch": GitOutput(128, "fatal: not a git repository\n")})
        r = resolve_branch(env={}, runner=git)
    finally:
        logger.remove(sink)

    assert not r.ok
    assert r.reason == "cli_error"
    assert "not a git repository" in r.detail
    assert any("not a git repository" in m for m in messages)


def test_git_not_installed_is_cli_error():
    git = FakeGit({"branch": FileNotFoundError("git")})
    r = resolve_branch(env={}, runner=git)
    assert not r.ok
    assert r.reason == "cli_error"


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_real_git_repository(tmp_path):
    def git(*args):
        subprocess.run(["git", *args], cwd=tmp_path, check=True, capture_output=True)

    git("init", "-q")
    git("checkout", "-q", "-b", "release/2.0")
    git("-c", "user.name=ci", "-c", "user.email=ci@example.com", "commit", "-q", "--allow-empty", "-m", "init")

    r = resolve_branch(tmp_path, env={})
    assert r.ok
    assert r.branch == "release/2.0"


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_real_git_outside_repository(tmp_path, monkeypatch):
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    r = resolve_branch(tmp_path, env={})
    assert not r.ok
    assert r.branch is None
    assert r.reason == "cli_error"
