from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int = 25
    username: Optional[str] = None
    password: Optional[str] = None
    use_ssl: bool = False


@dataclass(frozen=True)
class MailMessage:
    sender: str
    subject: str
    body: str
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    is_html: bool = False
    attachment: Optional[str] = None

    @property
    def recipients(self) -> list[str]:
        """Envelope recipients: to + cc + bcc."""
        return [*self.to, *self.cc, *self.bcc]


@dataclass(frozen=True)
class NotifySettings:
    """Everything one `send` needs, after config file / env / CLI merging."""

    mail: MailMessage
    smtp: SmtpSettings
    branch_filter: str = ""
    output_path_container: Optional[str] = None
    strict_detached: bool = False
