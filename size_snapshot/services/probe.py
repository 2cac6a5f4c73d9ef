"""Builds the zero-import probe used to measure side-effect-only code."""

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple

from size_snapshot.logging_config import get_logger
from size_snapshot.utils.js_syntax import named_children, parse_source, string_value

logger = get_logger(__name__)

ANALYZABLE_FORMATS = frozenset({"es", "esm", "module"})

PRODUCTION_SUBSTITUTIONS: Mapping[str, str] = {"process.env.NODE_ENV": json.dumps("production")}


def is_analyzable(output_format: str) -> bool:
    """Only ES module output exposes named exports a consumer could drop."""
    return output_format.lower() in ANALYZABLE_FORMATS


def is_bare_specifier(specifier: str) -> bool:
    return not specifier.startswith((".", "/"))


@dataclass(frozen=True)
class ExternalMatcher:
    """Decides which import specifiers stay external."""

    specifiers: FrozenSet[str] = frozenset()
    bare: bool = False

    @classmethod
    def of(cls, specifiers: Iterable[str] = (), bare: bool = False) -> "ExternalMatcher":
        return cls(frozenset(specifiers), bare)

    def __call__(self, specifier: str) -> bool:
        if specifier in self.specifiers:
            return True
        return self.bare and is_bare_specifier(specifier)


@dataclass(frozen=True)
class ProbeModule:
    """A synthetic entry point that imports nothing from the measured module."""

    imported_specifier: str
    target_path: str
    target_code: str
    export_names: FrozenSet[str] = frozenset()
    environment_substitutions: Mapping[str, str] = field(
        default_factory=lambda: dict(PRODUCTION_SUBSTITUTIONS)
    )
    externals: ExternalMatcher = ExternalMatcher()
    graph_sources: Mapping[str, str] = field(default_factory=dict)

    @property
    def entry_source(self) -> str:
        return f"import {{}} from {json.dumps(self.imported_specifier)};\n"

    @property
    def entry_path(self) -> str:
        return posixpath.join(posixpath.dirname(self.target_path), "__size_snapshot_entry__.js")


def collect_export_names(code: str) -> FrozenSet[str]:
    """Names a consumer could import from the module."""
    parsed = parse_source(code)
    names = set()
    for statement in parsed.statements():
        if statement.type != "export_statement":
            continue
        if any(child.type == "default" for child in statement.children):
            names.add("default")
            continue
        declaration = statement.child_by_field_name("declaration")
        if declaration is not None:
            if declaration.type in {"lexical_declaration", "variable_declaration"}:
                for declarator in named_children(declaration):
                    name = declarator.child_by_field_name("name")
                    if name is not None and name.type == "identifier":
                        names.add(parsed.text(name))
            else:
                name = declaration.child_by_field_name("name")
                if name is not None:
                    names.add(parsed.text(name))
            continue
        for child in named_children(statement):
            if child.type == "export_clause":
                for specifier in named_children(child):
                    exported = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
                    if exported is not None:
                        text = parsed.text(exported)
                        names.add(string_value(parsed, exported) if exported.type == "string" else text)
            elif child.type == "namespace_export":
                inner = named_children(child)
                if inner:
                    names.add(parsed.text(inner[0]))
    return frozenset(names)


def build_probe(
    target_path: str,
    code: str,
    externals: Iterable[str] = (),
    *,
    bare_externals: bool = False,
    graph_sources: Optional[Mapping[str, str]] = None,
) -> ProbeModule:
    """Create a probe for the output file at ``target_path`` (relative, forward slashes).

    ``graph_sources`` carries sibling chunks of a multi-chunk build so the
    module-graph pipeline can follow imports between them.
    """
    target = "/" + target_path.lstrip("/")
    probe = ProbeModule(
        imported_specifier="./" + posixpath.basename(target),
        target_path=target,
        target_code=code,
        export_names=collect_export_names(code),
        externals=ExternalMatcher.of(externals, bare_externals),
        graph_sources={
            "/" + path.lstrip("/"): source
            for path, source in (graph_sources or {}).items()
            if "/" + path.lstrip("/") != target
        },
    )
    logger.debug(
        "Built probe for %s exposing %d export(s)", target_path, len(probe.export_names)
    )
    return probe


def probe_sources(probe: ProbeModule) -> Tuple[Tuple[str, str], ...]:
    """Every file a bundler may load for this probe: entry, target, siblings."""
    return (
        (probe.entry_path, probe.entry_source),
        (probe.target_path, probe.target_code),
        *sorted(probe.graph_sources.items()),
    )
