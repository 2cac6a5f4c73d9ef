"""Pydantic schemas for size records and snapshot documents."""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class PipelineResult(BaseModel):
    """Treeshaken size reported by one bundling pipeline."""

    model_config = ConfigDict(frozen=True)

    code: int = Field(ge=0)
    import_statements: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def imports_within_code(self) -> "PipelineResult":
        if self.import_statements is not None and self.import_statements > self.code:
            raise ValueError("import_statements cannot exceed code")
        return self


class TreeshakeRecord(BaseModel):
    """Sizes left after re-bundling a zero-import probe of the module."""

    model_config = ConfigDict(frozen=True)

    rollup: PipelineResult
    webpack: PipelineResult


class SizeRecord(BaseModel):
    """Sizes computed for one output file."""

    model_config = ConfigDict(frozen=True)

    bundled: int = Field(ge=0)
    minified: int = Field(ge=0)
    gzipped: int = Field(ge=0)
    treeshaked: Optional[TreeshakeRecord] = None


Snapshot = Dict[str, SizeRecord]

_snapshot_adapter = TypeAdapter(Snapshot)


def snapshot_to_data(snapshot: Snapshot) -> Dict[str, Any]:
    """Convert a snapshot to plain JSON data with sorted file keys."""
    return {
        name: snapshot[name].model_dump(exclude_none=True) for name in sorted(snapshot)
    }


def snapshot_from_data(data: Any) -> Snapshot:
    return _snapshot_adapter.validate_python(data)


def dump_snapshot(data: Dict[str, Any]) -> str:
    """Serialize snapshot data the way it is committed: two-space indent, trailing newline."""
    return json.dumps(data, indent=2) + "\n"
