"""File access used by the notification pipeline.

Usage:
    storage = LocalStorage()
    raw     = storage.read("./TestResult.json")
    storage.write("output/failedTest.csv", b"...")

Any object exposing the same ``read`` / ``write`` pair can be passed where a
storage is expected.
"""

from pathlib import Path


class StorageError(Exception):
    """Raised when a file cannot be read or written."""


class LocalStorage:
    """Reads and writes files on the local file system."""

    def read(self, path: str) -> bytes:
        try:
            data = Path(path).read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"File not found: '{path}'") from exc
        except OSError as exc:
            raise StorageError(f"Unable to read '{path}': {exc}") from exc
        if not data:
            raise StorageError(f"File is empty: '{path}'")
        return data

    def write(self, path: str, data: bytes) -> None:
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Unable to write '{path}': {exc}") from exc
