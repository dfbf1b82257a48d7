from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Mapping, Optional

from build_notify.core.git import GitOutput, GitRunner, run_git
from build_notify.core.log import logger
from build_notify.core.tokens import tokenize

BRANCH_ENV_VAR = "BUILD_SOURCEBRANCHNAME"
DETACHED_MARKER = "(HEAD detached at"

BRANCH_LIST_ARGS = ["branch", "--no-color"]
DECORATION_ARGS = ["show", "-s", "--no-color", "--pretty=%d", "HEAD"]


Reason = Literal[
    "env_override",
    "branch_list",
    "detached_decoration",
    "detached_fallback",
    "no_current_branch",
    "cli_error",
    "detached_unresolved",
]


@dataclass(frozen=True)
class BranchResult:
    ok: bool
    branch: Optional[str]
    reason: Reason
    detail: str = ""

    @classmethod
    def success(cls, branch: str, reason: Reason, detail: str = "") -> "BranchResult":
        return cls(ok=True, branch=branch, reason=reason, detail=detail)

    @classmethod
    def failure(cls, reason: Reason, detail: str = "") -> "BranchResult":
        return cls(ok=False, branch=None, reason=reason, detail=detail)


def parse_branch_list(output: str) -> Optional[str]:
    """Return the current branch from `git branch` output, or None.

    The current branch is the first line starting with "*". The name keeps
    any detached-HEAD text, e.g. "(HEAD detached at 1a2b3c4)".
    """
    for line in output.splitlines():
        if line.startswith("*"):
            name = line[1:].strip()
            return name or None
    return None


def is_detached(candidate: str) -> bool:
    return candidate.startswith(DETACHED_MARKER)


def parse_decoration(line: str) -> Optional[str]:
    """Pick the branch out of a ref decoration such as
    "(HEAD, tag: v1.2.10, origin/Release1.2)".

    The first token after the HEAD marker that contains "/" is taken as the
    remote branch; the name is the part after its last "/". Multi-segment
    branches ("origin/feature/x") therefore resolve to their last segment.
    """
    tokens = tokenize(line, ", ")
    for tok in tokens[1:]:
        if "/" in tok:
            name = tok.rsplit("/", 1)[1].rstrip(")").strip()
            return name or None
    return None


def resolve_branch(
    cwd: Optional[Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    runner: GitRunner = run_git,
    strict_detached: bool = False,
) -> BranchResult:
    """Determine the current branch name.

    Never raises: git problems come back as a failed BranchResult and a log
    line, and the caller decides whether to skip its gated action.
    """
    environ = os.environ if env is None else env

    override = (environ.get(BRANCH_ENV_VAR) or "").strip()
    if override:
        logger.debug("branch from {}: {}", BRANCH_ENV_VAR, override)
        return BranchResult.success(override, "env_override")

    listing = _run(runner, BRANCH_LIST_ARGS, cwd)
    if not listing.ok:
        detail = listing.output.strip()
        logger.warning("git branch failed: {}", detail)
        return BranchResult.failure("cli_error", detail)

    candidate = parse_branch_list(listing.output)
    if candidate is None:
        logger.info("no current branch in git branch output (repository without commits?)")
        return BranchResult.failure("no_current_branch", listing.output.strip())

    if not is_detached(candidate):
        return BranchResult.success(candidate, "branch_list")

    decoration = _run(runner, DECORATION_ARGS, cwd)
    if decoration.ok:
        name = parse_decoration(decoration.output.strip())
        if name:
            logger.debug("detached HEAD resolved via decoration: {}", name)
            return BranchResult.success(name, "detached_decoration", decoration.output.strip())
        detail = decoration.output.strip()
    else:
        detail = decoration.output.strip()
        logger.warning("git show failed: {}", detail)

    if strict_detached:
        logger.warning("detached HEAD with no remote branch ref: {}", candidate)
        return BranchResult.failure("detached_unresolved", detail)

    # Known limitation: the returned name still carries the detached marker.
    logger.warning("detached HEAD with no remote branch ref; using {!r}", candidate)
    return BranchResult.success(candidate, "detached_fallback", detail)


def _run(runner: GitRunner, args: list[str], cwd: Optional[Path]) -> GitOutput:
    try:
        return runner(args, cwd)
    except OSError as e:
        return GitOutput(returncode=-1, output=f"git could not be started: {e}")
