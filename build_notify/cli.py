from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from build_notify.core.branch import resolve_branch
from build_notify.core.branch_filter import branch_matches, is_unfiltered
from build_notify.core.config import build_settings, optional_config
from build_notify.core.errors import ConfigError, ConfigLoadError, MailError, NotifyError
from build_notify.core.log import configure_logging
from build_notify.core.notify import NotifyResult, run_notification
from build_notify.core.template import expand_body

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only warnings and errors"),
) -> None:
    """build-notify: send an end-of-build email, optionally gated by git branch."""
    configure_logging(verbose=verbose, quiet=quiet)


@app.command("send")
def send(
    to: Optional[str] = typer.Option(None, "--to", help="Recipients, ; or , separated"),
    cc: Optional[str] = typer.Option(None, "--cc"),
    bcc: Optional[str] = typer.Option(None, "--bcc"),
    sender: Optional[str] = typer.Option(None, "--from", envvar="BUILD_NOTIFY_FROM"),
    subject: Optional[str] = typer.Option(None, "--subject"),
    body: Optional[str] = typer.Option(
        None, "--body", help="Body text; {{ ZIP_FILE_OUTPUT }} is replaced"
    ),
    body_file: Optional[str] = typer.Option(None, "--body-file", help="Read the body from a file"),
    html: Optional[bool] = typer.Option(None, "--html/--text", help="Send the body as HTML"),
    smtp_host: Optional[str] = typer.Option(None, "--smtp-host", envvar="BUILD_NOTIFY_SMTP_HOST"),
    smtp_port: Optional[int] = typer.Option(None, "--smtp-port", envvar="BUILD_NOTIFY_SMTP_PORT"),
    smtp_username: Optional[str] = typer.Option(
        None, "--smtp-username", envvar="BUILD_NOTIFY_SMTP_USERNAME"
    ),
    smtp_password: Optional[str] = typer.Option(
        None, "--smtp-password", envvar="BUILD_NOTIFY_SMTP_PASSWORD"
    ),
    use_ssl: Optional[bool] = typer.Option(None, "--use-ssl/--no-ssl"),
    attachment: Optional[str] = typer.Option(None, "--attachment", help="File to attach"),
    branch_filter: Optional[str] = typer.Option(
        None,
        "--branch-filter",
        envvar="BUILD_NOTIFY_BRANCH_FILTER",
        help="Glob patterns, ; separated (e.g. 'main;release/*'). Empty, * or ** = always send",
    ),
    output_path_container: Optional[str] = typer.Option(
        None, "--output-path-container", help="File whose first field is the artifact path"
    ),
    strict_detached: Optional[bool] = typer.Option(
        None,
        "--strict-detached/--lenient-detached",
        help="Fail branch resolution on a detached HEAD with no remote branch ref",
    ),
    config: Optional[str] = typer.Option(
        None, "--config", envvar="BUILD_NOTIFY_CONFIG", help="YAML settings file"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the message instead of sending"),
) -> None:
    """Send the build notification email."""
    overrides: dict[str, Any] = {
        "to": to,
        "cc": cc,
        "bcc": bcc,
        "from": sender,
        "subject": subject,
        "body": body,
        "body_file": body_file,
        "html": html,
        "smtp_host": smtp_host,
        "smtp_port": smtp_port,
        "smtp_username": smtp_username,
        "smtp_password": smtp_password,
        "use_ssl": use_ssl,
        "attachment": attachment,
        "branch_filter": branch_filter,
        "output_path_container": output_path_container,
        "strict_detached": strict_detached,
    }
    if body is not None and body_file is None:
        # An explicit --body beats a body_file from the config file.
        overrides["body_file"] = ""

    try:
        settings = build_settings(optional_config(config), overrides)
    except ConfigError as e:
        _print_errors([e])
        raise typer.Exit(code=_exit_code(e))

    try:
        result = run_notification(settings, dry_run=dry_run)
    except MailError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    _report(result)


@app.command("branch")
def branch_cmd(
    strict_detached: bool = typer.Option(False, "--strict-detached"),
) -> None:
    """Print the current branch as the send gate sees it."""
    result = resolve_branch(strict_detached=strict_detached)
    if not result.ok:
        typer.echo(f"branch could not be resolved: {result.reason}", err=True)
        if result.detail:
            typer.echo(result.detail, err=True)
        raise typer.Exit(code=1)

    table = Table(title="build-notify branch")
    table.add_column("Branch")
    table.add_column("Source")
    table.add_row(result.branch or "", result.reason)
    console.print(table)


@app.command("match")
def match_cmd(
    branch: str = typer.Argument(..., help="Branch name"),
    branch_filter: str = typer.Argument(..., help="Glob patterns, ; separated"),
) -> None:
    """Check a branch name against a branch filter."""
    if is_unfiltered(branch_filter):
        typer.echo("unfiltered")
        return
    if branch_matches(branch, branch_filter):
        typer.echo("match")
        return
    typer.echo("no match")
    raise typer.Exit(code=1)


@app.command("expand")
def expand_cmd(
    body: Optional[str] = typer.Option(None, "--body"),
    body_file: Optional[Path] = typer.Option(None, "--body-file"),
    output_path_container: Optional[str] = typer.Option(None, "--output-path-container"),
) -> None:
    """Print the body with {{ ZIP_FILE_OUTPUT }} expanded."""
    if body_file is not None:
        try:
            text = body_file.read_text(encoding="utf-8")
        except OSError as e:
            typer.echo(f"{body_file}: E_BODY_FILE: {e}", err=True)
            raise typer.Exit(code=1)
    else:
        text = body or ""
    typer.echo(expand_body(text, output_path_container))


def _report(result: NotifyResult) -> None:
    decision = result.notification.decision
    mail = result.notification.mail

    if not decision.proceed:
        typer.echo(f"SKIP: {decision.reason} (branch={decision.branch or '-'})")
        return

    if result.dry_run:
        table = Table(title="build-notify dry run")
        table.add_column("Field")
        table.add_column("Value")
        table.add_row("From", mail.sender)
        table.add_row("To", ", ".join(mail.to))
        table.add_row("Cc", ", ".join(mail.cc))
        table.add_row("Bcc", ", ".join(mail.bcc))
        table.add_row("Subject", mail.subject)
        table.add_row("HTML", "yes" if mail.is_html else "no")
        table.add_row("Attachment", mail.attachment or "")
        table.add_row("Branch", decision.branch or "")
        console.print(table)
        console.print(mail.body, markup=False, highlight=False)
        return

    typer.echo(f"OK: sent to {len(mail.recipients)} recipient(s)")


def _exit_code(e: NotifyError) -> int:
    return 1 if isinstance(e, ConfigLoadError) else 2


def _print_errors(errors: list[NotifyError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="build-notify")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
