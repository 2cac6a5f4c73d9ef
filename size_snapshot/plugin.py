"""Plugin facade invoked once the primary bundler has written its output.

Hosts call ``write_bundle`` once per output of a build and ``close_bundle``
when the build is over. Records accumulate across the calls of one build:
each call rewrites the snapshot with every file measured so far, or checks
those files against the committed baseline. Baseline files no output has
produced yet are reported as removed only by ``close_bundle``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from size_snapshot.errors import SnapshotMismatchError
from size_snapshot.logging_config import get_logger
from size_snapshot.schemas.options import SizeSnapshotOptions, validate_options
from size_snapshot.schemas.output import BuildOutput
from size_snapshot.schemas.snapshot import SizeRecord, Snapshot
from size_snapshot.services.aggregator import OutputAggregator
from size_snapshot.services.reconciler import SnapshotReconciler
from size_snapshot.services.reporter import Reporter
from size_snapshot.services.treeshake import TreeshakeRunner

logger = get_logger(__name__)


class SizeSnapshot:
    """Measures build outputs and reconciles them with the snapshot file."""

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        *,
        root: Optional[Path] = None,
        reporter: Optional[Reporter] = None,
        runner: Optional[TreeshakeRunner] = None,
        **kwargs: Any,
    ):
        merged = {**(options or {}), **kwargs}
        self.options: SizeSnapshotOptions = validate_options(merged)
        self.snapshot_path = Path(self.options.snapshot_path).resolve()
        # Names in the snapshot are relative to the directory holding it.
        self.root = Path(root).resolve() if root is not None else self.snapshot_path.parent
        self.reporter = reporter or Reporter()
        self.aggregator = OutputAggregator(self.root, runner=runner)
        self.reconciler = SnapshotReconciler(
            self.snapshot_path,
            match_snapshot=self.options.match_snapshot,
            threshold=self.options.threshold,
        )
        self._records: Dict[str, SizeRecord] = {}

    async def write_bundle(
        self, outputs: Union[BuildOutput, Sequence[BuildOutput]]
    ) -> Snapshot:
        """Measure ``outputs`` and write or match every file measured in this build.

        Raises MissingSnapshotError or SnapshotMismatchError in match mode;
        the mismatch diff is reported through the error sink first.
        """
        if isinstance(outputs, BuildOutput):
            outputs = [outputs]

        measured: Dict[str, SizeRecord] = {}
        for output in outputs:
            records = await self.aggregator.measure(output)
            if self.options.print_info:
                for name, record in records.items():
                    self.reporter.report_sizes(name, output.format, record)
            measured.update(records)

        self._records.update(measured)
        snapshot = dict(self._records)
        self._reconcile(snapshot, partial=True)
        return snapshot

    async def close_bundle(self) -> Snapshot:
        """End the build: in match mode, also fail on baseline files never produced.

        Clears the accumulated records so the next build starts afresh.
        """
        snapshot = dict(self._records)
        try:
            if self.options.match_snapshot and snapshot:
                self._reconcile(snapshot, partial=False)
        finally:
            self._records = {}
            self.reconciler.reset()
        return snapshot

    def _reconcile(self, snapshot: Snapshot, *, partial: bool) -> None:
        try:
            status = self.reconciler.reconcile(snapshot, partial=partial)
        except SnapshotMismatchError as exc:
            self.reporter.report_mismatch(exc.diff)
            raise
        logger.debug("Snapshot %s: %d file(s)", status.value, len(snapshot))


def size_snapshot(**options: Any) -> SizeSnapshot:
    """Build a plugin instance from keyword options (camelCase or snake_case)."""
    return SizeSnapshot(options)
