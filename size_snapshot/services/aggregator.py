"""Turns the primary build output into per-file size records."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path, PurePosixPath
from typing import Dict, Optional

from size_snapshot.config import settings
from size_snapshot.errors import DuplicateOutputError
from size_snapshot.logging_config import get_logger
from size_snapshot.schemas.output import BuildOutput
from size_snapshot.schemas.snapshot import SizeRecord
from size_snapshot.services.probe import build_probe, is_analyzable
from size_snapshot.services.sizes import gzipped_size, minify, raw_size
from size_snapshot.services.treeshake import TreeshakeRunner
from size_snapshot.utils.js_syntax import parse_source

logger = get_logger(__name__)


class OutputAggregator:
    """Measures every file of an output, keyed by its name relative to ``root``."""

    def __init__(
        self,
        root: Path,
        runner: Optional[TreeshakeRunner] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.root = Path(root).resolve()
        self.runner = runner or TreeshakeRunner()
        self.max_concurrency = max_concurrency or settings.max_concurrency

    def normalize_name(self, path: Path) -> str:
        """Path relative to the root with forward slashes, even for absolute inputs."""
        absolute = path if path.is_absolute() else Path.cwd() / path
        relative = os.path.relpath(os.path.normpath(absolute), self.root)
        return PurePosixPath(*Path(relative).parts).as_posix()

    async def measure(self, output: BuildOutput) -> Dict[str, SizeRecord]:
        chunks = output.chunks()
        names = [self.normalize_name(path) for path, _ in chunks]
        sources: Dict[str, str] = {}
        for name, (_, code) in zip(names, chunks):
            if name in sources:
                paths = [str(other) for other, _ in chunks if self.normalize_name(other) == name]
                raise DuplicateOutputError(name, paths)
            sources[name] = code
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def guarded(name: str, code: str) -> SizeRecord:
            async with semaphore:
                return await self.measure_file(name, code, output, sources)

        records = await asyncio.gather(*(guarded(name, code) for name, code in sources.items()))
        return dict(zip(sources, records))

    async def measure_file(
        self,
        name: str,
        code: str,
        output: BuildOutput,
        sources: Optional[Dict[str, str]] = None,
    ) -> SizeRecord:
        """Compute the size record of one generated file."""
        if not parse_source(code).statements():
            logger.warning("Generated an empty chunk: %s", name)

        minified = await asyncio.to_thread(minify, code)
        treeshaked = None
        if is_analyzable(output.format):
            probe = build_probe(
                name,
                code,
                output.externals,
                bare_externals=output.bare_externals,
                graph_sources=sources,
            )
            treeshaked = await self.runner.run(probe)

        record = SizeRecord(
            bundled=raw_size(code),
            minified=raw_size(minified),
            gzipped=gzipped_size(minified),
            treeshaked=treeshaked,
        )
        logger.debug("Measured %s (%s): %s", name, output.format, record.model_dump(exclude_none=True))
        return record
