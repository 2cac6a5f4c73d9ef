"""Minimal-resolving treeshake pipeline.

Resolves nothing but the probe target itself: every other specifier is left
external, the way the primary build left it. The production environment is
substituted textually before parsing, statements with side effects become
roots, and the declarations they reference are pulled back in.
"""

from __future__ import annotations

import json
from collections import OrderedDict
from typing import Dict, List, Set

from size_snapshot.errors import MinifyError
from size_snapshot.logging_config import get_logger
from size_snapshot.schemas.snapshot import PipelineResult
from size_snapshot.services.bundlers.base import (
    ImportBinding,
    ModuleAnalysis,
    analyze_module,
    statement_code,
)
from size_snapshot.services.probe import ProbeModule
from size_snapshot.services.side_effects import PurityPolicy, SideEffectAnalyzer
from size_snapshot.services.sizes import minify, raw_size
from size_snapshot.utils.js_syntax import parse_source, referenced_names, replace_substitutions

logger = get_logger(__name__)


class MinimalResolverBundler:
    """Statement-level treeshaker with mark-from-roots retention."""

    key = "rollup"
    label = "treeshaked with rollup with production NODE_ENV and minified"

    def __init__(self, policy: PurityPolicy = PurityPolicy()):
        self.policy = policy

    def bundle_probe(self, probe: ProbeModule) -> PipelineResult:
        code = self.bundle(probe)
        minified = minify(code) if code else ""
        size = raw_size(minified)
        imports_size = import_statements_size(minified) if minified else 0
        logger.debug("Minimal pipeline kept %d bytes of %s", size, probe.target_path)
        return PipelineResult(
            code=size,
            import_statements=imports_size or None,
        )

    def bundle(self, probe: ProbeModule) -> str:
        """Return the unminified treeshaken bundle of the probe."""
        source = replace_substitutions(probe.target_code, probe.environment_substitutions)
        parsed = parse_source(source)
        error = parsed.syntax_error()
        if error is not None:
            raise MinifyError(
                f"Unable to parse {probe.target_path} for treeshaking at line {error.start_point[0] + 1}",
                line=error.start_point[0] + 1,
                column=error.start_point[1] + 1,
            )
        analysis = analyze_module(parsed)
        self._check_externals(probe, analysis)

        statements = [statement.node for statement in analysis.statements]
        analyzer = SideEffectAnalyzer(
            parsed,
            policy=self.policy,
            local_functions=SideEffectAnalyzer.collect_local_functions(parsed, statements),
        )
        included = self._mark(analysis, analyzer)

        parts: List[str] = self._render_imports(analysis, included)
        parts.extend(
            statement_code(parsed, statement)
            for position, statement in enumerate(analysis.statements)
            if position in included
        )
        return "\n".join(parts)

    def _check_externals(self, probe: ProbeModule, analysis: ModuleAnalysis) -> None:
        for module_import in analysis.imports:
            if not probe.externals(module_import.specifier):
                logger.warning(
                    "%s imports %r which is not declared external; treating it as external",
                    probe.target_path,
                    module_import.specifier,
                )

    def _mark(self, analysis: ModuleAnalysis, analyzer: SideEffectAnalyzer) -> Set[int]:
        parsed = analysis.parsed
        declarations = analysis.declarations()
        included: Set[int] = set()
        pending: List[int] = []
        for position, statement in enumerate(analysis.statements):
            if statement.is_default_expression:
                effects = analyzer.has_side_effects(statement.node)
            else:
                effects = analyzer.statement_has_side_effects(statement.node)
            if effects:
                included.add(position)
                pending.append(position)

        while pending:
            position = pending.pop()
            for name in referenced_names(analysis.statements[position].node, parsed):
                target = declarations.get(name)
                if target is not None and target not in included:
                    included.add(target)
                    pending.append(target)
        return included

    def _render_imports(self, analysis: ModuleAnalysis, included: Set[int]) -> List[str]:
        parsed = analysis.parsed
        used_names: Set[str] = set()
        for position in included:
            used_names |= referenced_names(analysis.statements[position].node, parsed)

        by_specifier: "OrderedDict[str, List[ImportBinding]]" = OrderedDict()
        for module_import in analysis.imports:
            bindings = by_specifier.setdefault(module_import.specifier, [])
            bindings.extend(
                binding for binding in module_import.bindings if binding.local in used_names
            )
        return [render_import(specifier, bindings) for specifier, bindings in by_specifier.items()]


def render_import(specifier: str, bindings: List[ImportBinding]) -> str:
    """ES import declarations for the given bindings; a bare import when none are used.

    A namespace binding cannot share a declaration with named bindings, and
    only one default fits in a declaration, so the rest get their own.
    """
    source = json.dumps(specifier)
    if not bindings:
        return f"import {source};"
    default: List[str] = []
    namespace: List[str] = []
    named: Dict[str, str] = {}
    for binding in bindings:
        if binding.imported == "default":
            default.append(binding.local)
        elif binding.imported == "*":
            namespace.append(binding.local)
        else:
            named[binding.local] = binding.imported
    members = "{" + ",".join(
        local if local == imported else f"{imported} as {local}"
        for local, imported in named.items()
    ) + "}"

    first: List[str] = default[:1]
    declarations: List[List[str]] = [first]
    if namespace:
        first.append(f"* as {namespace[0]}")
        declarations.extend([f"* as {local}"] for local in namespace[1:])
        if named:
            declarations.append([members])
    elif named:
        first.append(members)
    declarations.extend([local] for local in default[1:])
    return "\n".join(f"import {','.join(clauses)} from {source};" for clauses in declarations)


def import_statements_size(code: str) -> int:
    """Bytes taken by top-level import declarations."""
    parsed = parse_source(code)
    return sum(
        node.end_byte - node.start_byte
        for node in parsed.statements()
        if node.type == "import_statement"
    )
