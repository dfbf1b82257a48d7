from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NotifyError(Exception):
    """Base error envelope for the outer layers (config, mail).

    The branch/filter/template core never raises these; it returns results.
    """

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<notify>"
        return f"{loc}: {self.code}: {self.message}"


class ConfigError(NotifyError):
    pass


class ConfigLoadError(ConfigError):
    pass


class MailError(NotifyError):
    pass
