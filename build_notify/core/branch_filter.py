from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Callable, Optional

from build_notify.core.branch import BranchResult
from build_notify.core.tokens import tokenize

UNFILTERED_SPECS = ("", "*", "**")


@dataclass(frozen=True)
class GateDecision:
    proceed: bool
    filtered: bool
    reason: str
    branch: Optional[str] = None
    filters: list[str] = field(default_factory=list)


def is_unfiltered(spec: Optional[str]) -> bool:
    """True when no branch filtering was requested (empty, "*" or "**")."""
    return (spec or "").strip() in UNFILTERED_SPECS


def parse_filters(spec: Optional[str]) -> list[str]:
    return tokenize(spec, ";")


def branch_matches(branch: Optional[str], spec: Optional[str]) -> bool:
    """Case-insensitive whole-string glob match against any ;-separated pattern."""
    if not branch:
        return False
    name = branch.casefold()
    return any(fnmatchcase(name, pattern.casefold()) for pattern in parse_filters(spec))


def evaluate_gate(spec: Optional[str], resolve: Callable[[], BranchResult]) -> GateDecision:
    """Decide whether the gated action should run.

    `resolve` is only called when a real filter is configured.
    """
    if is_unfiltered(spec):
        return GateDecision(proceed=True, filtered=False, reason="no branch filter configured")

    filters = parse_filters(spec)
    result = resolve()
    if not result.ok:
        return GateDecision(
            proceed=False,
            filtered=True,
            reason=f"branch could not be resolved ({result.reason})",
            filters=filters,
        )

    if branch_matches(result.branch, spec):
        return GateDecision(
            proceed=True,
            filtered=True,
            reason="branch matches filter",
            branch=result.branch,
            filters=filters,
        )

    return GateDecision(
        proceed=False,
        filtered=True,
        reason="branch matches no filter",
        branch=result.branch,
        filters=filters,
    )
