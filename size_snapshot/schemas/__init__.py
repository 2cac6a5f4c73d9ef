"""Pydantic schemas package."""

from size_snapshot.schemas.options import SizeSnapshotOptions, validate_options
from size_snapshot.schemas.output import BuildOutput
from size_snapshot.schemas.snapshot import PipelineResult, SizeRecord, Snapshot, TreeshakeRecord

__all__ = [
    "BuildOutput",
    "PipelineResult",
    "SizeRecord",
    "SizeSnapshotOptions",
    "Snapshot",
    "TreeshakeRecord",
    "validate_options",
]
