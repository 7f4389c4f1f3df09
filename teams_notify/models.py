"""Data models for notification digests.

Contains dataclasses used to structure the parsed inputs and serialize the
MessageCard payload:
    - Item, Kind            (commit log entries)
    - CoverageEntry, TestFailure, TestSummary, TestReport
    - Fact, Section, Action, NotificationCard
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MESSAGE_CARD_CONTEXT = "http://schema.org/extensions"
DEFAULT_THEME_COLOR = "0076D7"


# ---------------------------------------------------------------------------
# Commit log
# ---------------------------------------------------------------------------

class Kind(str, Enum):
    FEATURE = "feature"
    FIX = "fix"


@dataclass(frozen=True)
class Item:
    """One ticket extracted from a commit log line."""

    ticket_number: str
    title: str
    kind: Kind = Kind.FIX
    # Raw type segment, None when the line had no second "/" segment
    keyword: str | None = None


# ---------------------------------------------------------------------------
# Test report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CoverageEntry:
    class_name: str
    covered_percent: int

    def __post_init__(self) -> None:
        clamped = max(0, min(100, int(self.covered_percent)))
        object.__setattr__(self, "covered_percent", clamped)


@dataclass
class TestFailure:
    __test__ = False  # not a pytest test class

    full_name: str
    message: str = ""
    stack_trace: str = ""
    class_name: str = ""
    coverage_percent: int | None = None


@dataclass
class TestSummary:
    __test__ = False

    run_id: str
    outcome: str
    start_time: str
    execution_time_ms: int
    run_coverage_percent: int
    org_wide_coverage_percent: int | None
    total_run: int
    passed: int
    pass_rate: int
    failed: int
    fail_rate: int
    run_id_label: str = "Run Id"

    @property
    def is_passed(self) -> bool:
        return self.outcome == "Passed"


@dataclass
class TestReport:
    __test__ = False

    summary: TestSummary
    coverage: list[CoverageEntry] = field(default_factory=list)
    failures: list[TestFailure] = field(default_factory=list)

    def coverage_by_class(self) -> dict[str, int]:
        """Name -> percent lookup. Duplicate class names: the last entry wins."""
        return {entry.class_name: entry.covered_percent for entry in self.coverage}


# ---------------------------------------------------------------------------
# MessageCard payload
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Fact:
    label: str
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.label, "value": self.text}


@dataclass
class Section:
    title: str
    subtitle: str
    facts: list[Fact] | None = None
    markdown: bool = True

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "activityTitle": self.title,
            "activitySubtitle": self.subtitle,
        }
        if self.facts is not None:
            data["facts"] = [f.to_dict() for f in self.facts]
        data["markdown"] = self.markdown
        return data


@dataclass(frozen=True)
class Action:
    label: str
    target_uri: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "@type": "OpenUri",
            "name": self.label,
            "targets": [{"os": "default", "uri": self.target_uri}],
        }


@dataclass
class NotificationCard:
    summary: str
    sections: list[Section] = field(default_factory=list)
    actions: list[Action] | None = None
    theme_color: str = DEFAULT_THEME_COLOR

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the MessageCard JSON document posted to the webhook."""
        data: dict[str, Any] = {
            "@type": "MessageCard",
            "@context": MESSAGE_CARD_CONTEXT,
            "themeColor": self.theme_color,
            "summary": self.summary,
            "sections": [s.to_dict() for s in self.sections],
        }
        if self.actions:
            data["potentialAction"] = [a.to_dict() for a in self.actions]
        return data
