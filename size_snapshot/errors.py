"""Errors raised while measuring and reconciling size snapshots.

Every error here aborts the build; none of them describe a transient
condition, so nothing is retried.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from size_snapshot.services.reconciler import SnapshotDiff


class SizeSnapshotError(Exception):
    """Base class for size snapshot failures."""


class InvalidOptionsError(SizeSnapshotError, ValueError):
    """Raised when the plugin is constructed with unrecognized or malformed options."""

    def __init__(self, message: str, invalid_keys: Iterable[str] = ()):
        super().__init__(message)
        self.invalid_keys = tuple(invalid_keys)

    @classmethod
    def for_unknown_keys(cls, keys: Iterable[str]) -> "InvalidOptionsError":
        names = sorted(keys)
        quoted = ", ".join(f'"{name}"' for name in names)
        if len(names) == 1:
            return cls(f"Option {quoted} is invalid", names)
        return cls(f"Options {quoted} are invalid", names)


class DuplicateOutputError(SizeSnapshotError, ValueError):
    """Raised when two files of one output normalize to the same snapshot name."""

    def __init__(self, name: str, paths: Iterable[str]):
        self.name = name
        self.paths = tuple(paths)
        listed = ", ".join(self.paths)
        super().__init__(f"Output files {listed} all map to the snapshot name \"{name}\"")


class MinifyError(SizeSnapshotError):
    """Raised when generated code cannot be parsed, so it cannot be minified."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        super().__init__(message)
        self.line = line
        self.column = column


class NoMinifiedCodeError(SizeSnapshotError):
    """Raised when the module-graph pipeline receives a module without any statements."""


class MissingSnapshotError(SizeSnapshotError):
    """Raised in match mode when no baseline snapshot exists."""

    def __init__(self, path: Path):
        super().__init__(
            f"Size snapshot is missing. Please run size-snapshot to create one ({path})."
        )
        self.path = path


class SnapshotMismatchError(SizeSnapshotError):
    """Raised in match mode when computed sizes drift beyond the threshold."""

    def __init__(self, diff: "SnapshotDiff"):
        super().__init__("Size snapshot is not matched. Run size-snapshot to rebuild one.")
        self.diff = diff
