"""Tests for teams_notify/git.py"""

import subprocess

import pytest

from teams_notify.git import SourceReadError, commit_range, read_commit_log


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def test_commit_range():
    assert commit_range("5.0", "HEAD") == "5.0..HEAD"
    assert commit_range(None, "HEAD") == "HEAD"
    assert commit_range("5.0", "") == "5.0..HEAD"


def test_read_commit_log_runs_git(monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append(args)
        return _completed(stdout="a1b2c3 12345 / Feature / Add export\n")

    monkeypatch.setattr(subprocess, "run", fake_run)
    log = read_commit_log("5.0", "HEAD")
    assert log.startswith("a1b2c3")
    assert calls == [["git", "log", "5.0..HEAD", "--oneline"]]


def test_read_commit_log_non_zero_exit(monkeypatch):
    monkeypatch.setattr(
        subprocess, "run",
        lambda *a, **k: _completed(stderr="fatal: bad revision '9.9..HEAD'", returncode=128),
    )
    with pytest.raises(SourceReadError, match="bad revision"):
        read_commit_log("9.9")


def test_read_commit_log_empty_output(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda *a, **k: _completed(stdout="\n"))
    with pytest.raises(SourceReadError, match="no commits"):
        read_commit_log("5.0")


def test_read_commit_log_without_git(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(subprocess, "run", missing)
    with pytest.raises(SourceReadError, match="not found"):
        read_commit_log("5.0")
