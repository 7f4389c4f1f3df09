"""Commit log source: ``git log <range> --oneline``."""

import subprocess


class SourceReadError(Exception):
    """Raised when the commit log cannot be read or is empty."""


def commit_range(from_ref: str | None, to_ref: str = "HEAD") -> str:
    to_ref = to_ref or "HEAD"
    return f"{from_ref}..{to_ref}" if from_ref else to_ref


def read_commit_log(from_ref: str | None = None, to_ref: str = "HEAD", cwd: str | None = None) -> str:
    """Return the one-line log for the range *from_ref*..*to_ref*.

    Raises:
        SourceReadError: git is missing, exits non-zero, or prints nothing.
    """
    rev = commit_range(from_ref, to_ref)
    try:
        result = subprocess.run(
            ["git", "log", rev, "--oneline"],
            capture_output=True,
            text=True,
            cwd=cwd,
        )
    except FileNotFoundError as exc:
        raise SourceReadError("git executable not found on PATH") from exc

    if result.returncode != 0:
        raise SourceReadError(result.stderr.strip() or f"git log {rev} failed")
    if not result.stdout.strip():
        raise SourceReadError(f"git log {rev} returned no commits")
    return result.stdout
