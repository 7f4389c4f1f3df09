"""Commit log parsing.

Functions:
    compile_pattern(pattern, case_sensitive)              -> re.Pattern
    iter_commit_items(log_text, pattern, case_sensitive)  -> Iterator[Item]
    parse_commit_log(log_text, pattern, case_sensitive)   -> list[Item]
    group_items(items)                                    -> (features, fixes)

A matching line looks like ``a1b2c3 12345 / Feature / Add export``: a ticket
number of at least five digits, a type keyword and a title, separated by
``/``.
"""

import re
from collections.abc import Iterable, Iterator

from teams_notify.models import Item, Kind

DEFAULT_PATTERN = r"[0-9]{5,} / (Feature|Fix).*"

# Marker added by CI bots to their own commits
_CI_SKIP_MARKER = "[ci skip]"
_FEATURE_KEYWORD = "Feature"


class CommitLogError(ValueError):
    """Raised when the commit pattern cannot be compiled."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compile_pattern(pattern: str | None = None, case_sensitive: bool = False) -> re.Pattern:
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        return re.compile(pattern or DEFAULT_PATTERN, flags)
    except re.error as exc:
        raise CommitLogError(f"Invalid commit pattern '{pattern}': {exc}") from exc


def iter_commit_items(
    log_text: str,
    pattern: str | None = None,
    case_sensitive: bool = False,
) -> Iterator[Item]:
    """Yield one Item per non-overlapping match of *pattern* in *log_text*.

    Items come out in log order (``git log`` is newest first). A log without
    any match yields nothing.
    """
    regex = compile_pattern(pattern, case_sensitive)
    for match in regex.finditer(log_text or ""):
        yield _to_item(match.group(0), case_sensitive)


def parse_commit_log(
    log_text: str,
    pattern: str | None = None,
    case_sensitive: bool = False,
) -> list[Item]:
    return list(iter_commit_items(log_text, pattern, case_sensitive))


def group_items(items: Iterable[Item]) -> tuple[list[Item], list[Item]]:
    """Split *items* into (features, fixes), keeping relative order.

    Items without a type keyword belong to neither group.
    """
    features: list[Item] = []
    fixes: list[Item] = []
    for item in items:
        if item.keyword is None:
            continue
        if item.kind is Kind.FEATURE:
            features.append(item)
        else:
            fixes.append(item)
    return features, fixes


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _segment(parts: list[str], index: int) -> str | None:
    return parts[index].strip() if index < len(parts) else None


def _to_item(line: str, case_sensitive: bool) -> Item:
    parts = line.replace(_CI_SKIP_MARKER, "").split("/")

    keyword = _segment(parts, 1)
    kind = Kind.FIX
    if keyword is not None and _is_feature(keyword, case_sensitive):
        kind = Kind.FEATURE

    return Item(
        ticket_number=_segment(parts, 0) or "",
        title=_segment(parts, 2) or "",
        kind=kind,
        keyword=keyword,
    )


def _is_feature(keyword: str, case_sensitive: bool) -> bool:
    if case_sensitive:
        return _FEATURE_KEYWORD in keyword
    return _FEATURE_KEYWORD.lower() in keyword.lower()
