from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from build_notify.core.log import logger

# Compiled once at import and never rebound.
PLACEHOLDER_RE = re.compile(r"\{\{\s*ZIP_FILE_OUTPUT\s*\}\}")

UNKNOWN_PATH = "Unknown Path"


def resolve_artifact_path(container: Optional[str | Path]) -> str:
    """Read the artifact path from an output-path container file.

    The value is the first line of the file up to the first ";", trimmed.
    Falls back to UNKNOWN_PATH when the file is missing or unreadable.
    """
    if not container or not str(container).strip():
        return UNKNOWN_PATH

    p = Path(container)
    if not p.is_file():
        logger.info("output path container not found: {}", p)
        return UNKNOWN_PATH

    try:
        text = p.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("output path container unreadable: {}: {}", p, e)
        return UNKNOWN_PATH

    lines = text.splitlines()
    first = lines[0] if lines else ""
    return first.split(";", 1)[0].strip()


def has_placeholder(body: str) -> bool:
    return PLACEHOLDER_RE.search(body or "") is not None


def expand_body(body: str, container: Optional[str | Path]) -> str:
    """Replace every {{ ZIP_FILE_OUTPUT }} in body with the artifact path."""
    if not has_placeholder(body):
        return body

    value = resolve_artifact_path(container)
    # Function replacement: the path is inserted literally (no \1 or \\ escapes).
    return PLACEHOLDER_RE.sub(lambda _m: value, body)
