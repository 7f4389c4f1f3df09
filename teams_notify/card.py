"""MessageCard builders.

Functions:
    build_deployment_card(items, branch, env)                -> NotificationCard
    build_test_card(report, env, exported, host_url, ...)    -> NotificationCard
    build(kind, data)                                        -> NotificationCard

Both digests produce a single section. Fact rows are grouped under a label
shown only on the first row of each group, which Teams renders as a merged
header cell.
"""

from collections.abc import Iterable
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from teams_notify.duration import format_duration
from teams_notify.models import Action, Fact, Item, NotificationCard, Section, TestReport
from teams_notify.reports.commits import group_items
from teams_notify.reports.coverage import DEFAULT_THRESHOLD, classify
from teams_notify.reports.export import BAD_COVERAGE, FAILED_TESTS, GOOD_COVERAGE
from teams_notify.reports.testrun import ReportParseError, parse_timestamp

DEPLOYMENT = "deployment"
TEST = "test"

DEFAULT_TIMEZONE = "Europe/Paris"
_START_TIME_FORMAT = "%d/%m/%Y %H:%M:%S"

FEATURES_LABEL = "User Stories:"
FIXES_LABEL = "Defects:"
FAILED_TESTS_LABEL = "Failed Tests:"

_STATUS_COLORS = {"Passed": "green", "Failed": "red"}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def labelled_facts(label: str, texts: Iterable[str]) -> list[Fact]:
    """Return one Fact per text; only the first carries *label*."""
    return [Fact(label=label if i == 0 else "", text=text) for i, text in enumerate(texts)]


def build_deployment_card(items: Iterable[Item], branch: str, env: str) -> NotificationCard:
    features, fixes = group_items(items)
    facts = (
        labelled_facts(FEATURES_LABEL, (_ticket_text(i) for i in features))
        + labelled_facts(FIXES_LABEL, (_ticket_text(i) for i in fixes))
    )
    title = f"{branch} deployed"
    return NotificationCard(
        summary=title,
        sections=[Section(title=title, subtitle=f"on {env}", facts=facts)],
    )


def build_test_card(
    report: TestReport,
    env: str,
    exported: dict[str, str] | None = None,
    host_url: str = "",
    threshold: int = DEFAULT_THRESHOLD,
    timezone: str = DEFAULT_TIMEZONE,
) -> NotificationCard:
    """Build the test digest card.

    When report files were exported (*exported* maps report keys to paths)
    the card links to them through OpenUri actions prefixed with *host_url*.
    Otherwise failures and coverage are listed inline as facts.
    """
    summary = report.summary
    title = f"Test Execution in {env} - {format_start_time(summary.start_time, timezone)}"
    section = Section(title=title, subtitle=_summary_text(report))

    actions = None
    if exported:
        actions = _report_actions(exported, host_url, threshold)
    else:
        section.facts = _inline_facts(report, threshold)

    return NotificationCard(summary="Test", sections=[section], actions=actions)


def build(kind: str, data: dict) -> NotificationCard:
    """Dispatch to the builder for *kind* (``"deployment"`` or ``"test"``)."""
    if kind == DEPLOYMENT:
        return build_deployment_card(**data)
    if kind == TEST:
        return build_test_card(**data)
    raise ValueError(f"Unknown card kind '{kind}'")


def format_start_time(value: str, timezone: str = DEFAULT_TIMEZONE) -> str:
    """Render an ISO timestamp as ``dd/mm/YYYY HH:MM:SS`` in *timezone*.

    Values that cannot be parsed are returned unchanged.
    """
    if not value:
        return ""
    try:
        moment = parse_timestamp(value)
        if moment.tzinfo is not None:
            moment = moment.astimezone(ZoneInfo(timezone))
    except (ReportParseError, ZoneInfoNotFoundError, ValueError):
        return value
    return moment.strftime(_START_TIME_FORMAT)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _ticket_text(item: Item) -> str:
    return f"**{item.ticket_number}** - {item.title}"


def _strong(label: str) -> str:
    return f"<strong>{label}: </strong>"


def _summary_text(report: TestReport) -> str:
    s = report.summary
    color = _STATUS_COLORS.get(s.outcome, "red")
    org_wide = "n/a" if s.org_wide_coverage_percent is None else f"{s.org_wide_coverage_percent}%"
    lines = [
        f"{_strong(s.run_id_label)}{s.run_id} (Execution Time: {format_duration(s.execution_time_ms)})",
        f'{_strong("Status")}<span style="color:{color};">{s.outcome}</span>',
        f"{_strong('Code Coverage')}{s.run_coverage_percent}%",
        f"{_strong('Org Wide Coverage')}{org_wide}",
        f"{_strong('Tests Ran')}{s.total_run}",
        f"{_strong('Tests Passed')}{s.passed} ({s.pass_rate}%)",
        f"{_strong('Tests Failed')}{s.failed} ({s.fail_rate}%)",
    ]
    return "\n\n".join(lines)


def _coverage_labels(threshold: int) -> dict[str, str]:
    return {
        FAILED_TESTS: "Failed Tests",
        BAD_COVERAGE: f"Coverage < {threshold}%",
        GOOD_COVERAGE: f"Coverage >= {threshold}%",
    }


def _report_actions(exported: dict[str, str], host_url: str, threshold: int) -> list[Action]:
    labels = _coverage_labels(threshold)
    actions: list[Action] = []
    for key in (FAILED_TESTS, BAD_COVERAGE, GOOD_COVERAGE):
        path = exported.get(key)
        if path:
            actions.append(Action(label=labels[key], target_uri=f"{host_url}{Path(path).as_posix()}"))
    return actions


def _failure_text(failure) -> str:
    text = f"**{failure.full_name}** - {failure.message}"
    if failure.coverage_percent is not None:
        text += f" ({failure.coverage_percent}%)"
    return text


def _inline_facts(report: TestReport, threshold: int) -> list[Fact]:
    labels = _coverage_labels(threshold)
    split = classify(report.coverage, threshold)
    return (
        labelled_facts(FAILED_TESTS_LABEL, (_failure_text(f) for f in report.failures))
        + labelled_facts(f"{labels[BAD_COVERAGE]}:", (_coverage_text(e) for e in split.bad))
        + labelled_facts(f"{labels[GOOD_COVERAGE]}:", (_coverage_text(e) for e in split.good))
    )


def _coverage_text(entry) -> str:
    return f"**{entry.class_name}** - {entry.covered_percent}%"
