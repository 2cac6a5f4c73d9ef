"""Pydantic schema for the output handed over by the primary bundler."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator


class BuildOutput(BaseModel):
    """One generated output: a single file, or a directory of chunks.

    ``externals`` lists the specifiers the primary build left unresolved.
    ``bare_externals`` treats every bare specifier (not starting with
    ``.`` or ``/``) as external.
    """

    format: str = Field(min_length=1)
    file: Optional[str] = None
    code: Optional[str] = None
    dir: Optional[str] = None
    files: Dict[str, str] = Field(default_factory=dict)
    externals: List[str] = Field(default_factory=list)
    bare_externals: bool = False

    @model_validator(mode="after")
    def check_shape(self) -> "BuildOutput":
        single = self.file is not None
        multi = self.dir is not None
        if single == multi:
            raise ValueError("Provide either 'file' with 'code' or 'dir' with 'files'")
        if single and self.code is None:
            raise ValueError("'code' is required together with 'file'")
        if multi and self.code is not None:
            raise ValueError("'code' cannot be combined with 'dir'; use 'files'")
        return self

    def chunks(self) -> List[Tuple[Path, str]]:
        """Return (path, code) for every generated file."""
        if self.file is not None:
            return [(Path(self.file), self.code or "")]
        base = Path(self.dir or "")
        return [(base / name, code) for name, code in self.files.items()]
