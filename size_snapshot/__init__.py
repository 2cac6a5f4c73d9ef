"""Size snapshots for JavaScript build outputs."""

from size_snapshot.errors import (
    DuplicateOutputError,
    InvalidOptionsError,
    MinifyError,
    MissingSnapshotError,
    NoMinifiedCodeError,
    SizeSnapshotError,
    SnapshotMismatchError,
)
from size_snapshot.plugin import SizeSnapshot, size_snapshot
from size_snapshot.schemas import BuildOutput, SizeRecord, SizeSnapshotOptions

__version__ = "0.1.0"

__all__ = [
    "BuildOutput",
    "DuplicateOutputError",
    "InvalidOptionsError",
    "MinifyError",
    "MissingSnapshotError",
    "NoMinifiedCodeError",
    "SizeRecord",
    "SizeSnapshot",
    "SizeSnapshotError",
    "SizeSnapshotOptions",
    "SnapshotMismatchError",
    "size_snapshot",
]
