from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml

from build_notify.core.contracts import MailMessage, NotifySettings, SmtpSettings
from build_notify.core.errors import ConfigError, ConfigLoadError
from build_notify.core.mail import split_addresses

CONFIG_KEYS: frozenset[str] = frozenset(
    {
        "to",
        "cc",
        "bcc",
        "from",
        "subject",
        "body",
        "body_file",
        "html",
        "smtp_host",
        "smtp_port",
        "smtp_username",
        "smtp_password",
        "use_ssl",
        "attachment",
        "branch_filter",
        "output_path_container",
        "strict_detached",
    }
)

DEFAULT_SMTP_PORT = 25

TRUE_WORDS = ("true", "yes", "on", "1")
FALSE_WORDS = ("false", "no", "off", "0", "")


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load notification settings from a YAML file.

    Format (every key optional):
      to: ["dev@example.com"]      # or "a@x;b@y"
      from: ci@example.com
      smtp_host: smtp.example.com
      branch_filter: "main;release/*"
    """
    p = Path(path)
    if not p.is_file():
        raise ConfigLoadError(
            code="E_CONFIG_NOT_FOUND", message="config file does not exist", file=str(p)
        )

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigLoadError(code="E_CONFIG_PARSE", message=str(e), file=str(p)) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigLoadError(
            code="E_CONFIG_INVALID_TOP_LEVEL",
            message="config file must be a mapping",
            file=str(p),
        )

    unknown = sorted(str(k) for k in raw if k not in CONFIG_KEYS)
    if unknown:
        raise ConfigLoadError(
            code="E_CONFIG_UNKNOWN_KEY",
            message=f"unknown keys: {', '.join(unknown)}",
            file=str(p),
        )

    values = dict(raw)
    # Relative body files are relative to the config file.
    body_file = values.get("body_file")
    if isinstance(body_file, str) and body_file and not Path(body_file).is_absolute():
        values["body_file"] = str(p.parent / body_file)
    return values


def merge_values(
    file_values: dict[str, Any] | None, overrides: dict[str, Any] | None
) -> dict[str, Any]:
    """Config-file values overridden by explicitly given (non-None) CLI/env values."""
    merged = dict(file_values or {})
    for k, v in (overrides or {}).items():
        if v is not None:
            merged[k] = v
    return merged


def build_settings(
    file_values: dict[str, Any] | None = None, overrides: dict[str, Any] | None = None
) -> NotifySettings:
    values = merge_values(file_values, overrides)

    to = _addresses(values.get("to"), "to")
    cc = _addresses(values.get("cc"), "cc")
    bcc = _addresses(values.get("bcc"), "bcc")
    if not (to or cc or bcc):
        raise ConfigError(
            code="E_CONFIG_NO_RECIPIENTS", message="at least one of to/cc/bcc is required", path="to"
        )

    sender = _str(values.get("from"))
    if not sender:
        raise ConfigError(code="E_CONFIG_NO_SENDER", message="sender is required", path="from")

    host = _str(values.get("smtp_host"))
    if not host:
        raise ConfigError(
            code="E_CONFIG_NO_SMTP_HOST", message="SMTP host is required", path="smtp_host"
        )

    port = _port(values.get("smtp_port"))

    body = _str(values.get("body"))
    body_file = _str(values.get("body_file"))
    if body_file:
        body = _read_body(body_file)

    return NotifySettings(
        mail=MailMessage(
            sender=sender,
            subject=_str(values.get("subject")),
            body=body,
            to=to,
            cc=cc,
            bcc=bcc,
            is_html=_bool(values.get("html"), "html"),
            attachment=_str(values.get("attachment")) or None,
        ),
        smtp=SmtpSettings(
            host=host,
            port=port,
            username=_str(values.get("smtp_username")) or None,
            password=_str(values.get("smtp_password")) or None,
            use_ssl=_bool(values.get("use_ssl"), "use_ssl"),
        ),
        branch_filter=_str(values.get("branch_filter")),
        output_path_container=_str(values.get("output_path_container")) or None,
        strict_detached=_bool(values.get("strict_detached"), "strict_detached"),
    )


def _str(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()


def _addresses(v: Any, key: str) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return split_addresses(v)
    if isinstance(v, list) and all(isinstance(x, str) for x in v):
        out: list[str] = []
        for item in v:
            out.extend(split_addresses(item))
        return out
    raise ConfigError(
        code="E_CONFIG_INVALID_ADDRESSES",
        message=f"{key} must be a string or a list of strings",
        path=key,
    )


def _bool(v: Any, key: str) -> bool:
    if v is None:
        return False
    if isinstance(v, bool):
        return v
    if isinstance(v, str) and v.strip().lower() in TRUE_WORDS:
        return True
    if isinstance(v, str) and v.strip().lower() in FALSE_WORDS:
        return False
    raise ConfigError(
        code="E_CONFIG_INVALID_BOOL", message=f"{key} must be true or false, got {v!r}", path=key
    )


def _port(v: Any) -> int:
    if v is None:
        return DEFAULT_SMTP_PORT
    try:
        port = int(v)
    except (TypeError, ValueError):
        port = -1
    if not 0 < port < 65536:
        raise ConfigError(
            code="E_CONFIG_INVALID_PORT", message=f"invalid SMTP port: {v}", path="smtp_port"
        )
    return port


def _read_body(path: str) -> str:
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigLoadError(
            code="E_CONFIG_BODY_FILE", message=f"cannot read body file: {e}", file=str(p), path="body_file"
        ) from e


def optional_config(path: Optional[str]) -> dict[str, Any]:
    if not path:
        return {}
    return load_config_file(path)
