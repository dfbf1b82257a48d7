from __future__ import annotations

import re
from typing import Iterable, Optional


def tokenize(text: Optional[str], separators: str | Iterable[str] = " ") -> list[str]:
    """Split text on any of the separators; trim tokens and drop empty ones.

    A plain string is a set of single-character separators, so ", " splits on
    both "," and " ". Pass a list/tuple to split on whole strings instead.
    """
    if not text:
        return []

    if isinstance(separators, str):
        seps = list(separators)
    else:
        seps = [s for s in separators if s]
    if not seps:
        tok = text.strip()
        return [tok] if tok else []

    # Longest first so multi-char separators win over their prefixes.
    pattern = "|".join(re.escape(s) for s in sorted(set(seps), key=len, reverse=True))
    return [tok.strip() for tok in re.split(pattern, text) if tok.strip()]
