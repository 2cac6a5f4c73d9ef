"""Treeshaking pipelines used to measure what survives a zero-import probe."""

from size_snapshot.services.bundlers.base import ProbeBundler
from size_snapshot.services.bundlers.minimal import MinimalResolverBundler
from size_snapshot.services.bundlers.module_graph import ModuleGraphBundler

__all__ = ["MinimalResolverBundler", "ModuleGraphBundler", "ProbeBundler"]
