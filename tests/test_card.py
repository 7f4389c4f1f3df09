"""Tests for teams_notify/card.py"""

import pytest

from teams_notify.card import (
    build,
    build_deployment_card,
    build_test_card,
    format_start_time,
    labelled_facts,
)
from teams_notify.models import CoverageEntry, Fact, Item, Kind, TestFailure, TestReport, TestSummary
from teams_notify.reports.commits import parse_commit_log
from teams_notify.reports.export import BAD_COVERAGE, FAILED_TESTS, GOOD_COVERAGE


def _summary(**overrides) -> TestSummary:
    values = dict(
        run_id="0Af1", outcome="Failed", start_time="2026-10-19T08:00:00.000Z",
        execution_time_ms=3_661_000, run_coverage_percent=79,
        org_wide_coverage_percent=None, total_run=4, passed=3, pass_rate=75,
        failed=1, fail_rate=25,
    )
    values.update(overrides)
    return TestSummary(**values)


def _report() -> TestReport:
    return TestReport(
        summary=_summary(),
        coverage=[CoverageEntry("A", 100), CoverageEntry("B", 75), CoverageEntry("C", 85)],
        failures=[TestFailure("B.testIt", "boom", "trace", "B", 75)],
    )


# ---------------------------------------------------------------------------
# labelled_facts
# ---------------------------------------------------------------------------

def test_only_first_fact_carries_label():
    facts = labelled_facts("Defects:", ["one", "two", "three"])
    assert [f.label for f in facts] == ["Defects:", "", ""]
    assert [f.text for f in facts] == ["one", "two", "three"]


def test_labelled_facts_empty():
    assert labelled_facts("Defects:", []) == []


# ---------------------------------------------------------------------------
# Deployment digest
# ---------------------------------------------------------------------------

class TestDeploymentCard:
    def test_end_to_end_from_log(self):
        items = parse_commit_log(
            "a1b2c3 12345 / Feature / Add export\n4d5e6f 12346 / Fix / Null pointer"
        )
        payload = build_deployment_card(items, branch="develop", env="UAT").to_dict()

        facts = payload["sections"][0]["facts"]
        assert facts == [
            {"name": "User Stories:", "value": "**12345** - Add export"},
            {"name": "Defects:", "value": "**12346** - Null pointer"},
        ]

    def test_payload_shape(self):
        payload = build_deployment_card([], branch="develop", env="UAT").to_dict()
        assert payload["@type"] == "MessageCard"
        assert payload["@context"] == "http://schema.org/extensions"
        assert payload["themeColor"] == "0076D7"
        assert payload["summary"] == "develop deployed"
        assert payload["sections"] == [{
            "activityTitle": "develop deployed",
            "activitySubtitle": "on UAT",
            "facts": [],
            "markdown": True,
        }]
        assert "potentialAction" not in payload

    def test_features_listed_before_fixes(self):
        items = [
            Item("3", "fix one", Kind.FIX, "Fix"),
            Item("1", "feat one", Kind.FEATURE, "Feature"),
            Item("4", "fix two", Kind.FIX, "Fix"),
            Item("2", "feat two", Kind.FEATURE, "Feature"),
        ]
        facts = build_deployment_card(items, "b", "e").sections[0].facts
        assert facts == [
            Fact("User Stories:", "**1** - feat one"),
            Fact("", "**2** - feat two"),
            Fact("Defects:", "**3** - fix one"),
            Fact("", "**4** - fix two"),
        ]


# ---------------------------------------------------------------------------
# Test digest
# ---------------------------------------------------------------------------

class TestTestCard:
    def test_title_uses_env_and_local_start_time(self):
        card = build_test_card(_report(), env="UAT")
        assert card.sections[0].title == "Test Execution in UAT - 19/10/2026 10:00:00"

    def test_subtitle_contents(self):
        subtitle = build_test_card(_report(), env="UAT").sections[0].subtitle
        assert "<strong>Run Id: </strong>0Af1 (Execution Time: 1h1min1s)" in subtitle
        assert '<span style="color:red;">Failed</span>' in subtitle
        assert "<strong>Code Coverage: </strong>79%" in subtitle
        assert "<strong>Org Wide Coverage: </strong>n/a" in subtitle
        assert "<strong>Tests Failed: </strong>1 (25%)" in subtitle

    def test_deploy_report_uses_deployment_id_label(self):
        report = _report()
        report.summary = _summary(run_id_label="DeploymentId")
        subtitle = build_test_card(report, env="UAT").sections[0].subtitle
        assert subtitle.startswith("<strong>DeploymentId: </strong>0Af1 (Execution Time: ")

    def test_passed_status_is_green(self):
        report = _report()
        report.summary = _summary(outcome="Passed", org_wide_coverage_percent=81)
        subtitle = build_test_card(report, env="UAT").sections[0].subtitle
        assert '<span style="color:green;">Passed</span>' in subtitle
        assert "<strong>Org Wide Coverage: </strong>81%" in subtitle

    def test_actions_link_exported_files(self):
        exported = {
            FAILED_TESTS: "output/failedTest.csv",
            GOOD_COVERAGE: "output/goodCoverage.csv",
            BAD_COVERAGE: "output/badCoverage.csv",
        }
        payload = build_test_card(
            _report(), env="UAT", exported=exported, host_url="https://ci.example.com/",
        ).to_dict()

        actions = payload["potentialAction"]
        assert [a["name"] for a in actions] == ["Failed Tests", "Coverage < 85%", "Coverage >= 85%"]
        assert actions[0] == {
            "@type": "OpenUri",
            "name": "Failed Tests",
            "targets": [{"os": "default", "uri": "https://ci.example.com/output/failedTest.csv"}],
        }
        assert "facts" not in payload["sections"][0]
        assert payload["summary"] == "Test"

    def test_actions_only_for_existing_files(self):
        card = build_test_card(_report(), env="UAT", exported={BAD_COVERAGE: "out/badCoverage.csv"})
        assert [a.label for a in card.actions] == ["Coverage < 85%"]

    def test_inline_facts_without_exported_files(self):
        card = build_test_card(_report(), env="UAT", exported={})
        assert card.actions is None
        assert card.sections[0].facts == [
            Fact("Failed Tests:", "**B.testIt** - boom (75%)"),
            Fact("Coverage < 85%:", "**B** - 75%"),
            Fact("Coverage >= 85%:", "**A** - 100%"),
            Fact("", "**C** - 85%"),
        ]

    def test_threshold_changes_labels(self):
        card = build_test_card(_report(), env="UAT", exported={GOOD_COVERAGE: "g.csv"}, threshold=70)
        assert card.actions[0].label == "Coverage >= 70%"


# ---------------------------------------------------------------------------
# format_start_time / build
# ---------------------------------------------------------------------------

def test_format_start_time_converts_timezone():
    assert format_start_time("2026-01-15T12:30:00.000+0000") == "15/01/2026 13:30:00"


def test_format_start_time_keeps_unparseable_value():
    assert format_start_time("not a date") == "not a date"
    assert format_start_time("") == ""


def test_build_dispatches_on_kind():
    card = build("deployment", {"items": [], "branch": "main", "env": "PROD"})
    assert card.summary == "main deployed"
    card = build("test", {"report": _report(), "env": "UAT"})
    assert card.summary == "Test"


def test_build_unknown_kind():
    with pytest.raises(ValueError, match="Unknown card kind"):
        build("release", {})
