"""Services package."""

from size_snapshot.services.aggregator import OutputAggregator
from size_snapshot.services.reconciler import SnapshotReconciler, diff_snapshots
from size_snapshot.services.reporter import Reporter
from size_snapshot.services.treeshake import TreeshakeRunner

__all__ = ["OutputAggregator", "Reporter", "SnapshotReconciler", "TreeshakeRunner", "diff_snapshots"]
