"""Writes the snapshot, or compares it against the committed baseline.

The snapshot file is read at most once and written at most once per run,
and only after every size has been computed. There is no locking: two
runs pointed at the same snapshot path at the same time are unsupported.
"""

from __future__ import annotations

import difflib
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from size_snapshot.errors import MissingSnapshotError, SnapshotMismatchError
from size_snapshot.logging_config import get_logger
from size_snapshot.schemas.snapshot import Snapshot, dump_snapshot, snapshot_to_data

logger = get_logger(__name__)


class ReconcileStatus(str, Enum):
    WRITTEN = "written"
    MATCHED = "matched"


@dataclass(frozen=True)
class FieldChange:
    """One differing leaf (or whole entry) between baseline and current sizes."""

    path: Tuple[str, ...]
    kind: str  # "added", "removed" or "changed"
    old: Any = None
    new: Any = None

    def describe(self) -> str:
        location = ".".join(self.path)
        if self.kind == "added":
            return f"{location}: added {json.dumps(self.new)}"
        if self.kind == "removed":
            return f"{location}: removed (was {json.dumps(self.old)})"
        return f"{location}: {json.dumps(self.old)} -> {json.dumps(self.new)}"


@dataclass
class SnapshotDiff:
    baseline: Dict[str, Any]
    current: Dict[str, Any]
    threshold: float
    changes: List[FieldChange] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return not self.changes

    def files(self) -> List[str]:
        return sorted({change.path[0] for change in self.changes})

    def render(self) -> str:
        """Line diff of the affected entries, baseline lines prefixed "- ", current "+ "."""
        lines = ["- Snapshot", "+ Received", ""]
        for name in self.files():
            lines.append(f"  {json.dumps(name)}:")
            before = _entry_lines(self.baseline, name)
            after = _entry_lines(self.current, name)
            lines.extend(
                line for line in difflib.ndiff(before, after) if not line.startswith("? ")
            )
        return "\n".join(lines)


def _entry_lines(data: Dict[str, Any], name: str) -> List[str]:
    if name not in data:
        return []
    return json.dumps(data[name], indent=2).splitlines()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def diff_snapshots(
    baseline: Dict[str, Any], current: Dict[str, Any], threshold: float = 0
) -> SnapshotDiff:
    """Compare two snapshot documents leaf by leaf.

    Numbers match when they differ by at most ``threshold``; keys present on
    one side only are always reported.
    """
    diff = SnapshotDiff(baseline=baseline, current=current, threshold=threshold)
    _diff_values((), baseline, current, threshold, diff.changes)
    return diff


def _diff_values(
    path: Tuple[str, ...], old: Any, new: Any, threshold: float, changes: List[FieldChange]
) -> None:
    if isinstance(old, dict) and isinstance(new, dict):
        for key in sorted(set(old) | set(new)):
            if key not in new:
                changes.append(FieldChange(path + (key,), "removed", old=old[key]))
            elif key not in old:
                changes.append(FieldChange(path + (key,), "added", new=new[key]))
            else:
                _diff_values(path + (key,), old[key], new[key], threshold, changes)
        return
    if _is_number(old) and _is_number(new):
        if abs(new - old) > threshold:
            changes.append(FieldChange(path, "changed", old=old, new=new))
        return
    if old != new:
        changes.append(FieldChange(path, "changed", old=old, new=new))


def load_snapshot(path: Path) -> Optional[Dict[str, Any]]:
    """Read a snapshot document; None when the file does not exist."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return json.loads(text)


def write_snapshot(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_snapshot(data), encoding="utf-8")


class SnapshotReconciler:
    """Applies write or match mode to a freshly computed snapshot."""

    def __init__(self, snapshot_path: Path, *, match_snapshot: bool = False, threshold: float = 0):
        self.snapshot_path = Path(snapshot_path)
        self.match_snapshot = match_snapshot
        self.threshold = threshold
        self._baseline: Optional[Dict[str, Any]] = None

    def reset(self) -> None:
        """Forget the baseline read for the current build."""
        self._baseline = None

    def baseline(self) -> Dict[str, Any]:
        """The committed snapshot, read once per build."""
        if self._baseline is None:
            baseline = load_snapshot(self.snapshot_path)
            if baseline is None:
                raise MissingSnapshotError(self.snapshot_path)
            self._baseline = baseline
        return self._baseline

    def reconcile(self, snapshot: Snapshot, *, partial: bool = False) -> ReconcileStatus:
        """Write ``snapshot``, or compare it with the baseline in match mode.

        With ``partial`` only baseline entries present in ``snapshot`` are
        compared, so outputs still to come are not reported as removed.
        """
        current = snapshot_to_data(snapshot)
        if not self.match_snapshot:
            write_snapshot(self.snapshot_path, current)
            logger.info("Wrote size snapshot to %s", self.snapshot_path)
            return ReconcileStatus.WRITTEN

        baseline = self.baseline()
        if partial:
            baseline = {name: entry for name, entry in baseline.items() if name in current}

        diff = diff_snapshots(baseline, current, self.threshold)
        if not diff.matched:
            for change in diff.changes:
                logger.debug("Size change %s", change.describe())
            raise SnapshotMismatchError(diff)
        logger.info("Size snapshot matched %s (threshold %s)", self.snapshot_path, self.threshold)
        return ReconcileStatus.MATCHED

