from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional

from build_notify.core.branch import BranchResult, resolve_branch
from build_notify.core.branch_filter import GateDecision, evaluate_gate
from build_notify.core.contracts import MailMessage, NotifySettings, SmtpSettings
from build_notify.core.log import logger
from build_notify.core.mail import send_message
from build_notify.core.template import expand_body

Resolver = Callable[[], BranchResult]
Sender = Callable[[MailMessage, SmtpSettings], None]


@dataclass(frozen=True)
class Notification:
    decision: GateDecision
    mail: MailMessage


@dataclass(frozen=True)
class NotifyResult:
    sent: bool
    notification: Notification
    dry_run: bool = False


def default_resolver(settings: NotifySettings, cwd: Optional[Path] = None) -> Resolver:
    return lambda: resolve_branch(cwd, strict_detached=settings.strict_detached)


def prepare_notification(
    settings: NotifySettings, resolve: Optional[Resolver] = None
) -> Notification:
    """Expand the body and apply the branch gate; does not send anything."""
    body = expand_body(settings.mail.body, settings.output_path_container)
    decision = evaluate_gate(settings.branch_filter, resolve or default_resolver(settings))
    return Notification(decision=decision, mail=replace(settings.mail, body=body))


def run_notification(
    settings: NotifySettings,
    *,
    send: Sender = send_message,
    resolve: Optional[Resolver] = None,
    dry_run: bool = False,
) -> NotifyResult:
    notification = prepare_notification(settings, resolve)
    decision = notification.decision

    if not decision.proceed:
        logger.info(
            "not sending: {} (branch={!r}, filters={})",
            decision.reason,
            decision.branch,
            ";".join(decision.filters),
        )
        return NotifyResult(sent=False, notification=notification, dry_run=dry_run)

    if decision.filtered:
        logger.info("branch {!r} selected by {}", decision.branch, ";".join(decision.filters))

    if dry_run:
        return NotifyResult(sent=False, notification=notification, dry_run=True)

    send(notification.mail, settings.smtp)
    return NotifyResult(sent=True, notification=notification)
