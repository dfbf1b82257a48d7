from __future__ import annotations

import mimetypes
import smtplib
import ssl
from email.message import EmailMessage
from pathlib import Path
from typing import Optional

from build_notify.core.contracts import MailMessage, SmtpSettings
from build_notify.core.errors import MailError
from build_notify.core.log import logger
from build_notify.core.tokens import tokenize

SMTPS_PORT = 465


def split_addresses(value: Optional[str]) -> list[str]:
    """Recipient list from "a@x;b@y" or "a@x, b@y"."""
    return tokenize(value, [";", ","])


def build_message(mail: MailMessage) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = mail.sender
    if mail.to:
        msg["To"] = ", ".join(mail.to)
    if mail.cc:
        msg["Cc"] = ", ".join(mail.cc)
    msg["Subject"] = mail.subject

    if mail.is_html:
        msg.set_content(mail.body, subtype="html")
    else:
        msg.set_content(mail.body)

    if mail.attachment:
        _attach(msg, Path(mail.attachment))

    return msg


def _attach(msg: EmailMessage, path: Path) -> None:
    if not path.is_file():
        logger.warning("attachment not found, sending without it: {}", path)
        return

    ctype, encoding = mimetypes.guess_type(path.name)
    if ctype is None or encoding is not None:
        ctype = "application/octet-stream"
    maintype, subtype = ctype.split("/", 1)
    msg.add_attachment(
        path.read_bytes(), maintype=maintype, subtype=subtype, filename=path.name
    )


def send_message(mail: MailMessage, smtp: SmtpSettings, smtp_factory=None) -> None:
    """Deliver one message. Single attempt; failures raise MailError.

    `smtp_factory(host, port, implicit_tls, context)` returns an SMTP-like
    object; tests pass a fake here. TLS always verifies the server certificate.
    """
    recipients = mail.recipients
    if not recipients:
        raise MailError(code="E_MAIL_NO_RECIPIENTS", message="no recipients", path="to")

    msg = build_message(mail)
    implicit_tls = smtp.use_ssl and smtp.port == SMTPS_PORT
    factory = smtp_factory or _default_factory
    context = ssl.create_default_context() if smtp.use_ssl else None

    try:
        with factory(smtp.host, smtp.port, implicit_tls, context) as server:
            if smtp.use_ssl and not implicit_tls:
                server.starttls(context=context)
            if smtp.username:
                server.login(smtp.username, smtp.password or "")
            server.send_message(msg, from_addr=mail.sender, to_addrs=recipients)
    except smtplib.SMTPAuthenticationError as e:
        raise MailError(
            code="E_MAIL_AUTH", message=f"SMTP authentication failed: {e}", path="smtp_username"
        ) from e
    except (smtplib.SMTPException, OSError) as e:
        raise MailError(
            code="E_MAIL_SEND",
            message=f"could not send via {smtp.host}:{smtp.port}: {e}",
            path="smtp_host",
        ) from e

    logger.info("mail sent to {} recipient(s) via {}:{}", len(recipients), smtp.host, smtp.port)


def _default_factory(
    host: str, port: int, implicit_tls: bool, context: Optional[ssl.SSLContext]
) -> smtplib.SMTP:
    if implicit_tls:
        return smtplib.SMTP_SSL(host, port, context=context)
    return smtplib.SMTP(host, port)
