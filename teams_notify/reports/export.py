"""Report file export.

Functions:
    report_paths(output_dir, fmt)                 -> dict[str, str]
    render_failures_csv(failures, separator)      -> str
    render_coverage_csv(entries, separator)       -> str
    export_reports(failures, good, bad, fmt, separator, output_dir, storage)
                                                  -> dict[str, str]

Files are written as ``failedTest.<fmt>``, ``goodCoverage.<fmt>`` and
``badCoverage.<fmt>`` under *output_dir*. Failed tests are listed by their
class name, falling back to the full test name. Every CSV field is wrapped in double
quotes; embedded quotes are written as-is and multi-line stack traces are kept
verbatim inside their field.
"""

import os
import warnings
from collections.abc import Iterable

from teams_notify.models import CoverageEntry, TestFailure
from teams_notify.storage import StorageError

FAILED_TESTS = "failed_tests"
GOOD_COVERAGE = "good_coverage"
BAD_COVERAGE = "bad_coverage"

_FILE_STEMS = {
    FAILED_TESTS: "failedTest",
    GOOD_COVERAGE: "goodCoverage",
    BAD_COVERAGE: "badCoverage",
}

CSV_FORMAT = "csv"
# Reserved format name, no renderer yet
HTML_FORMAT = "html"

DEFAULT_SEPARATOR = ";"

_FAILURES_HEADER = ("Failed Test", "Error")
_COVERAGE_HEADER = ("Apex Class", "Coverage (%)")


class ExportError(Exception):
    """Raised when a report file cannot be produced."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def report_paths(output_dir: str, fmt: str) -> dict[str, str]:
    return {
        key: os.path.normpath(os.path.join(output_dir, f"{stem}.{fmt}"))
        for key, stem in _FILE_STEMS.items()
    }


def render_failures_csv(failures: Iterable[TestFailure], separator: str = DEFAULT_SEPARATOR) -> str:
    lines = [_row(_FAILURES_HEADER, separator)]
    for failure in failures:
        error = f"{failure.message}\n{failure.stack_trace}"
        lines.append(_row((failure.class_name or failure.full_name, error), separator))
    return "".join(lines)


def render_coverage_csv(entries: Iterable[CoverageEntry], separator: str = DEFAULT_SEPARATOR) -> str:
    lines = [_row(_COVERAGE_HEADER, separator)]
    for entry in entries:
        lines.append(_row((entry.class_name, str(entry.covered_percent)), separator))
    return "".join(lines)


def export_reports(
    failures: list[TestFailure],
    good: list[CoverageEntry],
    bad: list[CoverageEntry],
    fmt: str,
    separator: str,
    output_dir: str,
    storage,
) -> dict[str, str]:
    """Write the three report files and return ``{report_key: path}``.

    Files are written in order failed, good, bad. A failed write aborts the
    export; files written before it are left on disk.

    Raises:
        ExportError: unknown format or a write failure.
    """
    fmt = fmt.lower()
    if fmt == HTML_FORMAT:
        warnings.warn(
            "The 'html' output format is not supported yet; no report files were written.",
            UserWarning,
            stacklevel=2,
        )
        return {}
    if fmt != CSV_FORMAT:
        raise ExportError(f"Unknown output format '{fmt}' (expected '{CSV_FORMAT}')")

    paths = report_paths(output_dir, fmt)
    contents = {
        FAILED_TESTS: render_failures_csv(failures, separator),
        GOOD_COVERAGE: render_coverage_csv(good, separator),
        BAD_COVERAGE: render_coverage_csv(bad, separator),
    }

    written: dict[str, str] = {}
    for key, text in contents.items():
        path = paths[key]
        try:
            storage.write(path, text.encode("utf-8"))
        except (StorageError, OSError) as exc:
            raise ExportError(f"Failed to write report '{path}': {exc}") from exc
        written[key] = path
    return written


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row(fields: Iterable[str], separator: str) -> str:
    return separator.join(f'"{value}"' for value in fields) + "\n"
