"""Runs a probe through both treeshaking pipelines."""

import asyncio
from typing import Optional, Sequence

from size_snapshot.logging_config import get_logger
from size_snapshot.schemas.snapshot import TreeshakeRecord
from size_snapshot.services.bundlers import MinimalResolverBundler, ModuleGraphBundler, ProbeBundler
from size_snapshot.services.probe import ProbeModule

logger = get_logger(__name__)


class TreeshakeRunner:
    """Feeds the same probe to every pipeline and collects a TreeshakeRecord."""

    def __init__(self, bundlers: Optional[Sequence[ProbeBundler]] = None):
        self.bundlers = list(bundlers or (MinimalResolverBundler(), ModuleGraphBundler()))
        keys = {bundler.key for bundler in self.bundlers}
        missing = set(TreeshakeRecord.model_fields) - keys
        if missing:
            raise ValueError(f"Missing treeshake pipelines: {', '.join(sorted(missing))}")

    async def run(self, probe: ProbeModule) -> TreeshakeRecord:
        # Both pipelines always run to completion; a failure in one does not
        # cancel the other. The first failure is re-raised afterwards.
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(bundler.bundle_probe, probe) for bundler in self.bundlers),
            return_exceptions=True,
        )
        results = {}
        for bundler, outcome in zip(self.bundlers, outcomes):
            if isinstance(outcome, BaseException):
                logger.debug("Pipeline %s failed for %s: %s", bundler.key, probe.target_path, outcome)
                raise outcome
            results[bundler.key] = outcome
        return TreeshakeRecord(**results)

