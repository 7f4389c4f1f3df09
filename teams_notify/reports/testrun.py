"""Test-execution report parsing.

Functions:
    load_report(raw)          -> dict        JSON decode
    detect_shape(report)      -> ReportShape LEGACY or RAW
    parse_test_report(report) -> TestReport

Two report shapes are accepted:

* ``LEGACY`` - output of ``sfdx force:apex:test:run --json``. Statistics are
  pre-computed under ``result.summary`` and per-class coverage percentages
  under ``result.coverage.coverage``.
* ``RAW`` - output of ``sfdx force:mdapi:deploy:report --json``. Only line
  counts are available under ``result.details.runTestResult``; coverage,
  execution time and rates are derived here.
"""

import json
import math
import re
from datetime import datetime
from enum import Enum
from typing import Any

from teams_notify.models import CoverageEntry, TestFailure, TestReport, TestSummary

# Outcomes of a test record that count as failures
_FAILED_OUTCOMES = ("Fail", "CompileFail")

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_TZ_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")

# Deploy reports identify the run by the deployment id
DEPLOYMENT_ID_LABEL = "DeploymentId"


class ReportParseError(ValueError):
    """Raised when a report is not valid JSON or lacks a required field."""


class ReportShape(str, Enum):
    LEGACY = "legacy"
    RAW = "raw"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_report(raw: bytes | str) -> dict:
    """Decode a JSON test report. Raises ReportParseError on malformed input."""
    try:
        report = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ReportParseError(f"Test report is not valid JSON: {exc}") from exc
    if not isinstance(report, dict):
        raise ReportParseError("Test report must be a JSON object at the top level.")
    return report


def detect_shape(report: dict) -> ReportShape:
    result = report.get("result")
    if not isinstance(result, dict):
        raise ReportParseError("Missing required field 'result'")
    if isinstance(result.get("summary"), dict):
        return ReportShape.LEGACY
    details = result.get("details")
    if isinstance(details, dict) and isinstance(details.get("runTestResult"), dict):
        return ReportShape.RAW
    raise ReportParseError(
        "Unrecognised test report: expected 'result.summary' "
        "or 'result.details.runTestResult'"
    )


def parse_test_report(report: dict) -> TestReport:
    """Normalise *report* into a summary, coverage entries and failing tests.

    Coverage entries and failures are sorted by name. Each failure carries
    the coverage of its class when the report has one.
    """
    shape = detect_shape(report)
    result = report["result"]

    if shape is ReportShape.LEGACY:
        summary = _legacy_summary(_require(result, "summary"))
        coverage = _coverage_entries(_legacy_coverage_records(result))
        container = result
    else:
        run = result["details"]["runTestResult"]
        records = _require(run, "codeCoverage")
        if isinstance(records, dict):
            records = [records]
        coverage = _coverage_entries(records)
        summary = _raw_summary(result, _global_coverage(records))
        container = run

    lookup = {entry.class_name: entry.covered_percent for entry in coverage}
    failures = [_to_failure(rec, lookup) for rec in _failure_records(container)]

    coverage.sort(key=lambda e: e.class_name)
    failures.sort(key=lambda f: f.full_name)
    return TestReport(summary=summary, coverage=coverage, failures=failures)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def _legacy_summary(raw: dict) -> TestSummary:
    total = _required_int(raw, "testsRan")
    passed = _required_int(raw, "passing")
    failed = _required_int(raw, "failing")
    outcome = raw.get("outcome") or ("Failed" if failed > 0 else "Passed")
    org_wide = raw.get("orgWideCoverage")
    pass_rate = raw.get("passRate")
    fail_rate = raw.get("failRate")
    return TestSummary(
        run_id=str(raw.get("testRunId", "")),
        outcome="Passed" if outcome == "Passed" else "Failed",
        start_time=str(raw.get("testStartTime", "")),
        execution_time_ms=_required_int(raw, "testExecutionTime"),
        run_coverage_percent=_required_int(raw, "testRunCoverage"),
        org_wide_coverage_percent=None if org_wide is None else _as_int(org_wide),
        total_run=total,
        passed=passed,
        pass_rate=_rate(passed, total) if pass_rate is None else _as_int(pass_rate),
        failed=failed,
        fail_rate=_rate(failed, total) if fail_rate is None else _as_int(fail_rate),
    )


def _raw_summary(result: dict, run_coverage: int) -> TestSummary:
    total = _required_int(result, "numberTestsTotal")
    passed = _required_int(result, "numberTestsCompleted")
    failed = _required_int(result, "numberTestErrors")
    created = parse_timestamp(_require(result, "createdDate"))
    completed = parse_timestamp(_require(result, "completedDate"))
    if (created.tzinfo is None) != (completed.tzinfo is None):
        raise ReportParseError(
            "'createdDate' and 'completedDate' must both carry a time zone offset or both omit it"
        )
    elapsed = max(0, round((completed - created).total_seconds() * 1000))
    return TestSummary(
        run_id=str(result.get("id", "")),
        run_id_label=DEPLOYMENT_ID_LABEL,
        outcome="Failed" if failed > 0 else "Passed",
        start_time=str(result.get("startDate", "")),
        execution_time_ms=elapsed,
        run_coverage_percent=run_coverage,
        org_wide_coverage_percent=None,
        total_run=total,
        passed=passed,
        pass_rate=_rate(passed, total),
        failed=failed,
        fail_rate=_rate(failed, total),
    )


def _global_coverage(records: list[dict]) -> int:
    total = sum(_required_int(r, "numLocations") for r in records)
    not_covered = sum(_required_int(r, "numLocationsNotCovered") for r in records)
    return _percent_covered(total, not_covered)


# ---------------------------------------------------------------------------
# Coverage and failures
# ---------------------------------------------------------------------------

def _legacy_coverage_records(result: dict) -> list[dict]:
    coverage = result.get("coverage") or {}
    if isinstance(coverage, list):
        return _records(coverage, "coverage")
    if not isinstance(coverage, dict):
        raise ReportParseError("'coverage' must be an object or an array")
    return _records(coverage.get("coverage") or [], "coverage")


def _coverage_entries(records: list[dict]) -> list[CoverageEntry]:
    entries: list[CoverageEntry] = []
    for rec in _records(records, "codeCoverage"):
        if "coveredPercent" in rec:
            percent = _required_int(rec, "coveredPercent")
        else:
            percent = _percent_covered(
                _required_int(rec, "numLocations"),
                _required_int(rec, "numLocationsNotCovered"),
            )
        entries.append(CoverageEntry(class_name=str(_require(rec, "name")), covered_percent=percent))
    return entries


def _failure_records(container: dict) -> list[dict]:
    """Pre-populated ``failures`` when present, else failing ``tests``."""
    failures = container.get("failures")
    if failures is not None:
        # A single failure is serialised as an object rather than a list
        return _records([failures] if isinstance(failures, dict) else failures, "failures")
    tests = _records(container.get("tests") or [], "tests")
    return [t for t in tests if t.get("Outcome") in _FAILED_OUTCOMES]


def _to_failure(rec: dict, lookup: dict[str, int]) -> TestFailure:
    if "FullName" in rec or "Outcome" in rec:
        apex_class = rec.get("ApexClass") or {}
        if not isinstance(apex_class, dict):
            raise ReportParseError("'ApexClass' must be an object")
        class_name = apex_class.get("Name") or str(rec.get("FullName", "")).split(".")[0]
        full_name = rec.get("FullName") or class_name
        message = rec.get("Message")
        stack_trace = rec.get("StackTrace")
    else:
        class_name = str(_require(rec, "name"))
        method = rec.get("methodName")
        full_name = f"{class_name}.{method}" if method else class_name
        message = rec.get("message")
        stack_trace = rec.get("stackTrace")

    return TestFailure(
        full_name=str(full_name),
        message=message or "",
        stack_trace=stack_trace or "",
        class_name=class_name,
        coverage_percent=lookup.get(class_name),
    )


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def _require(mapping: dict, key: str) -> Any:
    value = mapping.get(key)
    if value is None:
        raise ReportParseError(f"Missing required field '{key}'")
    return value


def _required_int(mapping: dict, key: str) -> int:
    return _as_int(_require(mapping, key))


def _records(value: Any, name: str) -> list[dict]:
    if not isinstance(value, list):
        raise ReportParseError(f"'{name}' must be an array of objects")
    for rec in value:
        if not isinstance(rec, dict):
            raise ReportParseError(f"Every '{name}' record must be an object, got {rec!r}")
    return value


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _percent_covered(total: int, not_covered: int) -> int:
    if total == 0:
        return 0
    return _round_half_up((1 - not_covered / total) * 100)


def _rate(part: int, total: int) -> int:
    return _round_half_up(part / total * 100) if total else 0


def _as_int(value: Any) -> int:
    """Return an int from numbers or strings such as ``"75%"`` / ``"1234 ms"``."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return _round_half_up(value)
    match = _NUMBER_RE.search(str(value))
    if match is None:
        raise ReportParseError(f"Expected a number, got '{value}'")
    return _round_half_up(float(match.group(0)))


def parse_timestamp(value: str) -> datetime:
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _TZ_OFFSET_RE.sub(r"\1:\2", text)
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ReportParseError(f"Invalid timestamp '{value}'") from exc
