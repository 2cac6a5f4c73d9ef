"""Shared pieces of the treeshaking pipelines.

A pipeline takes a ProbeModule and reports how many minified bytes remain
once everything the probe does not need has been dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Set, runtime_checkable

from tree_sitter import Node

from size_snapshot.schemas.snapshot import PipelineResult
from size_snapshot.services.probe import ProbeModule
from size_snapshot.utils.js_syntax import (
    DECLARATION_TYPES,
    ParsedSource,
    named_children,
    string_value,
    substituted_text,
    walk,
)

DEFAULT_EXPORT_LOCAL = "*default*"


@runtime_checkable
class ProbeBundler(Protocol):
    """A bundling pipeline able to treeshake a probe module."""

    key: str
    label: str

    def bundle_probe(self, probe: ProbeModule) -> PipelineResult: ...


@dataclass
class ImportBinding:
    local: str
    imported: str  # export name, "default" or "*"


@dataclass
class ModuleImport:
    """An import or re-export declaration of one module."""

    specifier: str
    node: Node
    bindings: List[ImportBinding] = field(default_factory=list)
    # exported name -> imported name, for `export {a as b} from "x"`
    reexports: Dict[str, str] = field(default_factory=dict)
    star_reexport: bool = False


@dataclass
class ModuleStatement:
    """A top-level statement with the export keyword peeled off."""

    node: Node
    declared: Set[str] = field(default_factory=set)
    exported: Dict[str, str] = field(default_factory=dict)  # exported name -> local name
    is_default_expression: bool = False


@dataclass
class ModuleAnalysis:
    parsed: ParsedSource
    imports: List[ModuleImport] = field(default_factory=list)
    statements: List[ModuleStatement] = field(default_factory=list)
    # `export {a as b}` without a declaration: exported name -> local name
    local_exports: Dict[str, str] = field(default_factory=dict)

    def declarations(self) -> Dict[str, int]:
        """Declared name -> index of the declaring statement."""
        index: Dict[str, int] = {}
        for position, statement in enumerate(self.statements):
            for name in statement.declared:
                index.setdefault(name, position)
        return index

    def export_locals(self) -> Dict[str, str]:
        exports = dict(self.local_exports)
        for statement in self.statements:
            exports.update(statement.exported)
        return exports


def declared_names(parsed: ParsedSource, declaration: Node) -> Set[str]:
    """Names bound by a function, class or variable declaration."""
    if declaration.type in {"lexical_declaration", "variable_declaration"}:
        names: Set[str] = set()
        for declarator in named_children(declaration):
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is None:
                continue
            if name.type == "identifier":
                names.add(parsed.text(name))
            else:
                for part in walk(name):
                    if part.type in {"identifier", "shorthand_property_identifier_pattern"}:
                        names.add(parsed.text(part))
        return names
    name = declaration.child_by_field_name("name")
    return {parsed.text(name)} if name is not None else set()


def _import_bindings(parsed: ParsedSource, clause: Node) -> List[ImportBinding]:
    bindings: List[ImportBinding] = []
    for part in named_children(clause):
        if part.type == "identifier":
            bindings.append(ImportBinding(local=parsed.text(part), imported="default"))
        elif part.type == "namespace_import":
            inner = named_children(part)
            if inner:
                bindings.append(ImportBinding(local=parsed.text(inner[0]), imported="*"))
        elif part.type == "named_imports":
            for specifier in named_children(part):
                name = specifier.child_by_field_name("name")
                alias = specifier.child_by_field_name("alias")
                if name is None:
                    continue
                imported = string_value(parsed, name) if name.type == "string" else parsed.text(name)
                local = parsed.text(alias) if alias is not None else imported
                bindings.append(ImportBinding(local=local, imported=imported))
    return bindings


def analyze_module(parsed: ParsedSource) -> ModuleAnalysis:
    """Split a module into imports, re-exports and plain statements."""
    analysis = ModuleAnalysis(parsed=parsed)
    for node in parsed.statements():
        if node.type == "import_statement":
            source = node.child_by_field_name("source")
            if source is None:
                continue
            module_import = ModuleImport(specifier=string_value(parsed, source), node=node)
            for child in named_children(node):
                if child.type == "import_clause":
                    module_import.bindings = _import_bindings(parsed, child)
            analysis.imports.append(module_import)
        elif node.type == "export_statement":
            _analyze_export(parsed, node, analysis)
        else:
            analysis.statements.append(
                ModuleStatement(node=node, declared=_statement_declares(parsed, node))
            )
    return analysis


def _statement_declares(parsed: ParsedSource, node: Node) -> Set[str]:
    if node.type in DECLARATION_TYPES:
        return declared_names(parsed, node)
    return set()


def _analyze_export(parsed: ParsedSource, node: Node, analysis: ModuleAnalysis) -> None:
    source = node.child_by_field_name("source")
    is_default = any(child.type == "default" for child in node.children)
    declaration = node.child_by_field_name("declaration")
    value = node.child_by_field_name("value")

    if source is not None:
        module_import = ModuleImport(specifier=string_value(parsed, source), node=node)
        for child in named_children(node):
            if child.type == "export_clause":
                for specifier in named_children(child):
                    name = specifier.child_by_field_name("name")
                    alias = specifier.child_by_field_name("alias")
                    if name is None:
                        continue
                    imported = parsed.text(name)
                    exported = parsed.text(alias) if alias is not None else imported
                    module_import.reexports[exported] = imported
            elif child.type == "namespace_export":
                inner = named_children(child)
                if inner:
                    module_import.reexports[parsed.text(inner[0])] = "*"
        if not module_import.reexports:
            module_import.star_reexport = True
        analysis.imports.append(module_import)
        return

    if declaration is not None:
        names = declared_names(parsed, declaration)
        if is_default:
            exported = {"default": next(iter(names))} if names else {}
        else:
            exported = {name: name for name in names}
        analysis.statements.append(
            ModuleStatement(node=declaration, declared=names, exported=exported)
        )
        return

    if value is not None:
        analysis.statements.append(
            ModuleStatement(
                node=value,
                declared={DEFAULT_EXPORT_LOCAL},
                exported={"default": DEFAULT_EXPORT_LOCAL},
                is_default_expression=True,
            )
        )
        return

    for child in named_children(node):
        if child.type == "export_clause":
            for specifier in named_children(child):
                name = specifier.child_by_field_name("name")
                alias = specifier.child_by_field_name("alias")
                if name is None:
                    continue
                local = parsed.text(name)
                exported = parsed.text(alias) if alias is not None else local
                analysis.local_exports[exported] = local


def statement_code(
    parsed: ParsedSource,
    statement: ModuleStatement,
    substitutions: Optional[Mapping[str, str]] = None,
) -> str:
    """Source text of a statement, ready to be emitted on its own.

    ``substitutions`` replaces whole expressions found in the syntax tree.
    """
    text = substituted_text(parsed, statement.node, substitutions or {}).strip()
    if statement.is_default_expression:
        text = text.rstrip(";")
        if statement.node.type in {"function", "function_expression", "class", "object"}:
            text = f"({text})"
        return text + ";"
    return text


def strip_semicolon(code: str) -> str:
    return code.rstrip().rstrip(";").rstrip()
