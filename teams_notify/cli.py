"""CLI entry point - command definitions using Click.

Commands:
    init      Generate a template config file
    deploy    Post the features and fixes of a commit range as a deployment digest
    tests     Post a test execution digest and export coverage report files
"""

import functools
import json
import sys
from typing import Any

import click

from teams_notify import __version__


# ---------------------------------------------------------------------------
# Helpers shared by all data commands
# ---------------------------------------------------------------------------

def _verbose(ctx: click.Context, message: str) -> None:
    if ctx.obj["verbose"]:
        click.echo(f"[verbose] {message}", err=True)


def _load_config(ctx: click.Context, overrides: dict[str, Any], required: tuple[str, ...]):
    """Load config, check mandatory options and return it. Exits on error."""
    from teams_notify.config import ConfigError, load

    try:
        config = load(ctx.obj["config_path"], overrides)
        if not ctx.obj["dry_run"]:
            required = ("url",) + required
        config.require(*required)
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)
    return config


def _warn_defaults(config, names: tuple[str, ...]) -> None:
    for name in names:
        if name in config.defaulted:
            click.echo(
                f"Warning: '{name}' is not set, using \"{getattr(config, name)}\" instead.",
                err=True,
            )


def _deliver(ctx: click.Context, config, card) -> dict:
    """Save, print or post the card payload depending on the group options."""
    payload = card.to_dict()
    indent = 2 if ctx.obj["pretty"] else None
    text = json.dumps(payload, indent=indent, ensure_ascii=False)

    save_path: str | None = ctx.obj["save_request"]
    if save_path:
        ctx.obj["storage"].write(save_path, text.encode("utf-8"))
        click.echo(f"Request written to '{save_path}'", err=True)

    if ctx.obj["dry_run"]:
        click.echo(text)
        return payload

    _verbose(ctx, f"Posting notification to {config.url}")
    ctx.obj["client"].post(config.url, payload)
    click.echo("Notification sent.", err=True)
    return payload


def _handle_errors(func):
    """Decorator that catches pipeline exceptions and exits cleanly."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from teams_notify.client import NetworkError, WebhookError
        from teams_notify.git import SourceReadError
        from teams_notify.reports.commits import CommitLogError
        from teams_notify.reports.export import ExportError
        from teams_notify.reports.testrun import ReportParseError
        from teams_notify.storage import StorageError

        try:
            return func(*args, **kwargs)
        except SourceReadError as exc:
            click.echo(f"Read error: {exc}", err=True)
            sys.exit(1)
        except StorageError as exc:
            click.echo(f"File error: {exc}", err=True)
            sys.exit(1)
        except (ReportParseError, CommitLogError) as exc:
            click.echo(f"Parse error: {exc}", err=True)
            sys.exit(1)
        except ExportError as exc:
            click.echo(f"Export error: {exc}", err=True)
            sys.exit(1)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
            sys.exit(1)
        except WebhookError as exc:
            click.echo(f"Delivery error: {exc}", err=True)
            sys.exit(1)

    return wrapper


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default=None,
              help="Path to the configuration file [default: notify-config.yaml if present].")
@click.option("--dry-run", is_flag=True, default=False,
              help="Print the payload instead of posting it.")
@click.option("--save-request", "save_request", default=None,
              help="Also write the JSON payload to this file.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON payload.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="teams-notify")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, dry_run: bool,
        save_request: str | None, pretty: bool, verbose: bool) -> None:
    """Post release and test digests to a Microsoft Teams webhook."""
    from teams_notify.client import WebhookClient
    from teams_notify.storage import LocalStorage

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["dry_run"] = dry_run
    ctx.obj["save_request"] = save_request
    ctx.obj["pretty"] = pretty
    ctx.obj["verbose"] = verbose
    ctx.obj.setdefault("storage", LocalStorage())
    ctx.obj.setdefault("client", WebhookClient())


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="notify-config.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template notify-config.yaml file."""
    from teams_notify.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your webhook URL and report settings.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# deploy
# ---------------------------------------------------------------------------

@cli.command("deploy")
@click.option("-u", "--url", default=None, help="Incoming webhook URL.")
@click.option("-e", "--env", default=None, help="Environment the branch was deployed to.")
@click.option("-b", "--branch", default=None, help="Deployed branch label.")
@click.option("--from", "from_ref", default=None, help="Start of the commit range.")
@click.option("--to", "to_ref", default="HEAD", show_default=True, help="End of the commit range.")
@click.option("--log", "log_path", default=None,
              help="Read the commit log from this file instead of running git.")
@click.option("--regex", default=None, help="Override the commit line pattern.")
@click.option("--case-sensitive/--case-insensitive", "case_sensitive", default=None,
              help="Match the commit pattern case-sensitively.")
@click.pass_context
@_handle_errors
def deploy_command(ctx: click.Context, url, env, branch, from_ref, to_ref,
                   log_path, regex, case_sensitive) -> None:
    """Notify a deployment with the user stories and defects of a commit range."""
    from teams_notify.card import build_deployment_card
    from teams_notify.git import commit_range, read_commit_log
    from teams_notify.reports.commits import parse_commit_log

    config = _load_config(ctx, {
        "url": url, "env": env, "branch": branch,
        "regex": regex, "case_sensitive": case_sensitive,
    }, required=())
    _warn_defaults(config, ("env", "branch"))

    if log_path:
        _verbose(ctx, f"Reading commit log from '{log_path}'")
        log_text = ctx.obj["storage"].read(log_path).decode("utf-8")
    else:
        _verbose(ctx, f"Reading git log {commit_range(from_ref, to_ref)}")
        log_text = read_commit_log(from_ref, to_ref)

    items = parse_commit_log(log_text, config.regex, config.case_sensitive)
    _verbose(ctx, f"Found {len(items)} ticket(s) in the commit log")

    card = build_deployment_card(items, branch=config.branch, env=config.env)
    _deliver(ctx, config, card)


# ---------------------------------------------------------------------------
# tests
# ---------------------------------------------------------------------------

@cli.command("tests")
@click.option("-u", "--url", default=None, help="Incoming webhook URL.")
@click.option("--host-url", "--storage-url", "host_url", default=None,
              help="Base URL prepended to exported report file paths.")
@click.option("-p", "--path", default=None, help="Test result JSON file.")
@click.option("-e", "--env", default=None, help="Environment the tests ran in.")
@click.option("-o", "--output", default=None, help="Directory for exported report files.")
@click.option("-f", "--output-format", "output_format", default=None,
              help="Report file format (csv).")
@click.option("-s", "--separator", default=None, help="CSV field separator.")
@click.option("--threshold", type=int, default=None, help="Minimum coverage percent considered good.")
@click.option("--timezone", default=None, help="Time zone used to display the start time.")
@click.pass_context
@_handle_errors
def tests_command(ctx: click.Context, url, host_url, path, env, output,
                  output_format, separator, threshold, timezone) -> None:
    """Notify a test execution and export failed tests and coverage files."""
    from teams_notify.card import build_test_card
    from teams_notify.reports.coverage import classify
    from teams_notify.reports.export import export_reports
    from teams_notify.reports.testrun import load_report, parse_test_report

    config = _load_config(ctx, {
        "url": url, "host_url": host_url, "path": path, "env": env,
        "output": output, "output_format": output_format, "separator": separator,
        "threshold": threshold, "timezone": timezone,
    }, required=("host_url",))
    _warn_defaults(config, ("path", "env", "output", "separator", "output_format"))

    storage = ctx.obj["storage"]
    _verbose(ctx, f"Reading test result from '{config.path}'")
    report = parse_test_report(load_report(storage.read(config.path)))

    _verbose(ctx, "Calculating code coverage")
    split = classify(report.coverage, config.threshold)

    _verbose(ctx, f"Generating coverage files in '{config.output}'")
    exported = export_reports(
        report.failures, split.good, split.bad,
        config.output_format, config.separator, config.output, storage,
    )

    card = build_test_card(
        report, env=config.env, exported=exported, host_url=config.host_url,
        threshold=config.threshold, timezone=config.timezone,
    )
    _deliver(ctx, config, card)
