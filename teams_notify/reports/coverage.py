"""Coverage classification.

    classify(entries, threshold=85) -> CoverageSplit(good, bad)

Entries at or above the threshold are "good", the rest "bad". Both lists keep
the order of the input, which the test report parser already sorts by class
name.
"""

from collections.abc import Iterable
from typing import NamedTuple

from teams_notify.models import CoverageEntry

DEFAULT_THRESHOLD = 85


class CoverageSplit(NamedTuple):
    good: list[CoverageEntry]
    bad: list[CoverageEntry]


def classify(entries: Iterable[CoverageEntry], threshold: int = DEFAULT_THRESHOLD) -> CoverageSplit:
    good: list[CoverageEntry] = []
    bad: list[CoverageEntry] = []
    for entry in entries:
        (good if entry.covered_percent >= threshold else bad).append(entry)
    return CoverageSplit(good=good, bad=bad)
