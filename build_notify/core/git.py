from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional


@dataclass(frozen=True)
class GitOutput:
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


GitRunner = Callable[[list[str], Optional[Path]], GitOutput]


def run_git(args: list[str], cwd: Optional[Path] = None) -> GitOutput:
    """Run a read-only git subcommand and capture stdout+stderr together.

    No timeout: the pipeline step timeout bounds this call. OSError (git not
    installed, bad cwd) propagates to the caller.
    """
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
    )
    return GitOutput(
        returncode=proc.returncode,
        output=(proc.stdout or "") + (proc.stderr or ""),
    )
