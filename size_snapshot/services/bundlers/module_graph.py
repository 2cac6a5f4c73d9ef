"""Full module-graph treeshake pipeline.

The probe entry, the measured module and its sibling chunks are written to
a fresh in-memory volume. Modules are resolved through that volume, used
exports are propagated across the graph until nothing changes, and each
module drops unused side-effect-free declarations until a fixpoint, the
way a production-mode compressor does. Externals become ``require`` calls
and the surviving code is wrapped in a strict-mode arrow IIFE.
"""

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from size_snapshot.errors import MinifyError, NoMinifiedCodeError
from size_snapshot.logging_config import get_logger
from size_snapshot.schemas.snapshot import PipelineResult
from size_snapshot.services.bundlers.base import (
    ImportBinding,
    ModuleAnalysis,
    ModuleImport,
    analyze_module,
    statement_code,
    strip_semicolon,
)
from size_snapshot.services.probe import ProbeModule, is_bare_specifier, probe_sources
from size_snapshot.services.side_effects import PurityPolicy, SideEffectAnalyzer
from size_snapshot.services.sizes import minify, raw_size
from size_snapshot.utils.js_syntax import parse_source, referenced_names
from size_snapshot.utils.memory_volume import MemoryVolume

logger = get_logger(__name__)

RUNTIME_PREFIX = '(()=>{"use strict";'
RUNTIME_SUFFIX = "})();"
RESOLVE_EXTENSIONS = ("", ".js", ".mjs", "/index.js")


@dataclass
class GraphModule:
    path: str
    analysis: ModuleAnalysis
    analyzer: SideEffectAnalyzer
    resolved: Dict[str, Optional[str]] = field(default_factory=dict)
    used_exports: Set[str] = field(default_factory=set)
    retained: Set[int] = field(default_factory=set)
    references: List[Set[str]] = field(default_factory=list)
    pure: List[bool] = field(default_factory=list)

    def retained_references(self) -> Set[str]:
        names: Set[str] = set()
        for position in self.retained:
            names |= self.references[position]
        return names


class ModuleGraph:
    """Modules reachable from the probe entry, in evaluation order."""

    def __init__(self, volume: MemoryVolume, probe: ProbeModule, policy: PurityPolicy):
        self.volume = volume
        self.probe = probe
        self.policy = policy
        self.modules: Dict[str, GraphModule] = {}
        self.order: List[str] = []

    def build(self) -> "ModuleGraph":
        self._load(self.probe.entry_path, set())
        return self

    def _load(self, path: str, visiting: Set[str]) -> None:
        if path in self.modules or path in visiting:
            return
        visiting.add(path)
        parsed = parse_source(self.volume.read_text(path))
        error = parsed.syntax_error()
        if error is not None:
            raise MinifyError(
                f"Unable to parse {path} for treeshaking at line {error.start_point[0] + 1}",
                line=error.start_point[0] + 1,
                column=error.start_point[1] + 1,
            )
        analysis = analyze_module(parsed)
        statements = [statement.node for statement in analysis.statements]
        analyzer = SideEffectAnalyzer(
            parsed,
            policy=self.policy,
            substitutions=self.probe.environment_substitutions,
            local_functions=SideEffectAnalyzer.collect_local_functions(parsed, statements),
        )
        module = GraphModule(path=path, analysis=analysis, analyzer=analyzer)
        for statement in analysis.statements:
            module.references.append(referenced_names(statement.node, parsed) - statement.declared)
            if statement.is_default_expression:
                module.pure.append(not analyzer.has_side_effects(statement.node))
            else:
                module.pure.append(not analyzer.statement_has_side_effects(statement.node))

        for module_import in analysis.imports:
            target = self.resolve(module_import.specifier, path)
            module.resolved[module_import.specifier] = target
            if target is not None:
                self._load(target, visiting)
        self.modules[path] = module
        self.order.append(path)

    def resolve(self, specifier: str, importer: str) -> Optional[str]:
        """Resolve a specifier to a volume path, or None when it stays external."""
        if self.probe.externals(specifier):
            return None
        if is_bare_specifier(specifier):
            base = posixpath.join("/node_modules", specifier)
        elif specifier.startswith("/"):
            base = posixpath.normpath(specifier)
        else:
            base = posixpath.normpath(posixpath.join(posixpath.dirname(importer), specifier))
        for suffix in RESOLVE_EXTENSIONS:
            candidate = base + suffix
            if self.volume.is_file(candidate):
                return candidate
        logger.warning(
            "%s imports %r which is not declared external; treating it as external",
            importer,
            specifier,
        )
        return None

    def shake(self) -> None:
        """Propagate used exports and retained statements to a fixpoint."""
        changed = True
        while changed:
            for module in self.modules.values():
                module.retained = self._retain(module)
            changed = False
            for module in self.modules.values():
                if self._propagate(module):
                    changed = True

    def _retain(self, module: GraphModule) -> Set[int]:
        statements = module.analysis.statements
        export_locals = module.analysis.export_locals()
        if "*" in module.used_exports:
            protected = set(export_locals.values())
        else:
            protected = {
                export_locals[name] for name in module.used_exports if name in export_locals
            }
        alive = set(range(len(statements)))
        while True:
            referenced: Set[str] = set()
            for position in alive:
                referenced |= module.references[position]
            removable = {
                position
                for position in alive
                if module.pure[position]
                and not statements[position].declared & (referenced | protected)
            }
            if not removable:
                return alive
            alive -= removable

    def _propagate(self, module: GraphModule) -> bool:
        grew = False
        names = module.retained_references()
        for module_import in module.analysis.imports:
            target_path = module.resolved.get(module_import.specifier)
            if target_path is None:
                continue
            target = self.modules[target_path]
            wanted = {
                binding.imported for binding in module_import.bindings if binding.local in names
            }
            for exported, imported in module_import.reexports.items():
                if exported in module.used_exports or "*" in module.used_exports:
                    wanted.add(imported)
            if module_import.star_reexport:
                local = set(module.analysis.export_locals())
                wanted |= {name for name in module.used_exports if name not in local}
            if not wanted <= target.used_exports:
                target.used_exports |= wanted
                grew = True
        return grew


class ModuleGraphBundler:
    """Module-graph treeshaker running against a throwaway in-memory volume."""

    key = "webpack"
    label = "treeshaked with webpack in production mode"

    def __init__(self, policy: PurityPolicy = PurityPolicy(local_function_calls=False)):
        self.policy = policy

    def bundle_probe(self, probe: ProbeModule) -> PipelineResult:
        code = self.bundle(probe)
        minified = minify(code) if code else ""
        size = raw_size(minified)
        logger.debug("Module graph pipeline kept %d bytes of %s", size, probe.target_path)
        return PipelineResult(code=size)

    def bundle(self, probe: ProbeModule) -> str:
        """Return the unminified production chunk for the probe ("" when nothing survives)."""
        if not parse_source(probe.target_code).statements():
            raise NoMinifiedCodeError(
                f"There is no minified code for the module graph bundler to process in {probe.target_path}"
            )
        with MemoryVolume() as volume:
            for path, source in probe_sources(probe):
                volume.write_text(path, source)
            graph = ModuleGraph(volume, probe, self.policy).build()
            graph.shake()
            body = self._emit(graph, probe)
        if not body:
            return ""
        return RUNTIME_PREFIX + ";".join(body) + RUNTIME_SUFFIX

    def _emit(self, graph: ModuleGraph, probe: ProbeModule) -> List[str]:
        body: List[str] = []
        required: Set[str] = set()
        for path in graph.order:
            module = graph.modules[path]
            names = module.retained_references()
            for module_import in module.analysis.imports:
                if module.resolved.get(module_import.specifier) is not None:
                    continue
                body.extend(_render_require(module_import, names, required))
            parsed = module.analysis.parsed
            for position in sorted(module.retained):
                statement = module.analysis.statements[position]
                text = statement_code(parsed, statement, probe.environment_substitutions)
                body.append(strip_semicolon(text))
        return [part for part in body if part]


def _render_require(module_import: ModuleImport, names: Set[str], required: Set[str]) -> List[str]:
    source = json.dumps(module_import.specifier)
    used: List[ImportBinding] = [
        binding for binding in module_import.bindings if binding.local in names
    ]
    if not used:
        if module_import.specifier in required:
            return []
        required.add(module_import.specifier)
        return [f"require({source})"]
    required.add(module_import.specifier)
    parts: List[str] = []
    named: List[str] = []
    for binding in used:
        if binding.imported == "*":
            parts.append(f"var {binding.local}=require({source})")
        elif binding.imported == "default":
            parts.append(f"var {binding.local}=require({source}).default")
        elif binding.imported == binding.local:
            named.append(binding.local)
        else:
            named.append(f"{binding.imported}:{binding.local}")
    if named:
        parts.append("var{" + ",".join(named) + f"}}=require({source})")
    return parts
