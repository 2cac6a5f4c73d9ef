"""Production-style compression passes over the tree-sitter syntax tree.

``fold_dead_code`` drops branches guarded by a side-effect-free constant
and statements that follow an unconditional jump. ``mangle_locals`` gives
every name bound inside a function the shortest free identifier. Names
bound at the top level are kept, they may be exported or read as globals.
Whitespace and comments are left for the final rjsmin pass.
"""

from __future__ import annotations

import itertools
import string
from typing import Dict, Iterator, List, Optional, Set

from tree_sitter import Node

from size_snapshot.logging_config import get_logger
from size_snapshot.services.side_effects import UNKNOWN, SideEffectAnalyzer, truthy
from size_snapshot.utils.js_syntax import (
    FUNCTION_EXPRESSION_TYPES,
    Edit,
    ParsedSource,
    apply_edits,
    named_children,
    parse_source,
    walk,
)

logger = get_logger(__name__)

FUNCTION_TYPES = FUNCTION_EXPRESSION_TYPES | {
    "function_declaration",
    "generator_function_declaration",
    "method_definition",
}
NAMED_EXPRESSION_TYPES = {"function", "function_expression", "generator_function"}
STATEMENT_LIST_TYPES = {"program", "statement_block", "switch_case", "switch_default"}
JUMP_TYPES = {"return_statement", "throw_statement", "break_statement", "continue_statement"}
# Hoisted, so they survive even when unreachable.
HOISTED_TYPES = {"function_declaration", "generator_function_declaration", "variable_declaration"}
BLOCK_SCOPED_TYPES = {
    "lexical_declaration",
    "class_declaration",
    "function_declaration",
    "generator_function_declaration",
}
SHORTHAND_TYPES = {"shorthand_property_identifier", "shorthand_property_identifier_pattern"}

MAX_FOLD_PASSES = 8

RESERVED_NAMES = frozenset(
    """
    arguments await break case catch class const continue debugger default delete do
    else enum eval export extends false finally for function if implements import in
    instanceof interface let new null of package private protected public return static
    super switch this throw true try typeof undefined var void while with yield
    NaN Infinity
    """.split()
)

_NAME_HEAD = string.ascii_lowercase + string.ascii_uppercase + "$_"
_NAME_TAIL = _NAME_HEAD + string.digits


def compress(code: str) -> str:
    return mangle_locals(fold_dead_code(code))


# ---------------------------------------------------------------------------
# Dead code folding
# ---------------------------------------------------------------------------


def fold_dead_code(code: str) -> str:
    """Remove branches that can never run, until nothing changes."""
    for _ in range(MAX_FOLD_PASSES):
        parsed = parse_source(code)
        edits: List[Edit] = []
        _collect_folds(parsed, SideEffectAnalyzer(parsed), parsed.root, edits)
        if not edits:
            break
        code = apply_edits(parsed.source, edits)
    return code


def _collect_folds(
    parsed: ParsedSource, analyzer: SideEffectAnalyzer, node: Node, edits: List[Edit]
) -> None:
    children = named_children(node)
    unreachable: Set[int] = set()
    if node.type in STATEMENT_LIST_TYPES:
        unreachable = _unreachable_positions(children)
    for position, child in enumerate(children):
        if position in unreachable:
            edits.append((child.start_byte, child.end_byte, ""))
            continue
        edit = _fold(parsed, analyzer, child)
        if edit is not None:
            edits.append(edit)
        else:
            _collect_folds(parsed, analyzer, child, edits)


def _unreachable_positions(statements: List[Node]) -> Set[int]:
    for position, statement in enumerate(statements):
        if statement.type in JUMP_TYPES:
            return {
                later
                for later in range(position + 1, len(statements))
                if statements[later].type not in HOISTED_TYPES
            }
    return set()


def _constant_test(analyzer: SideEffectAnalyzer, condition: Optional[Node]):
    if condition is None or analyzer.has_side_effects(condition):
        return UNKNOWN
    return analyzer.evaluate(condition)


def _fold(parsed: ParsedSource, analyzer: SideEffectAnalyzer, node: Node) -> Optional[Edit]:
    if node.type == "if_statement":
        value = _constant_test(analyzer, node.child_by_field_name("condition"))
        if value is UNKNOWN:
            return None
        if truthy(value):
            branch = node.child_by_field_name("consequence")
        else:
            alternative = node.child_by_field_name("alternative")
            branch = named_children(alternative)[0] if alternative is not None else None
        return (node.start_byte, node.end_byte, _branch_text(parsed, node, branch))

    if node.type == "ternary_expression":
        value = _constant_test(analyzer, node.child_by_field_name("condition"))
        if value is UNKNOWN:
            return None
        kept = node.child_by_field_name("consequence" if truthy(value) else "alternative")
        return (node.start_byte, node.end_byte, f"({parsed.text(kept)})")

    return None


def _branch_text(parsed: ParsedSource, statement: Node, branch: Optional[Node]) -> str:
    """Replacement for a folded ``if`` that keeps only ``branch``."""
    parent = statement.parent
    in_list = parent is not None and parent.type in STATEMENT_LIST_TYPES
    if branch is None:
        return "" if in_list else ";"
    text = parsed.text(branch)
    if in_list and branch.type == "statement_block":
        if not any(inner.type in BLOCK_SCOPED_TYPES for inner in named_children(branch)):
            text = text[1:-1]
            # Keep the previous statement from swallowing the spliced one.
            head = parsed.source[: statement.start_byte].rstrip()
            if head and head[-1:] not in (b";", b"}", b"{"):
                text = ";" + text
    return text


# ---------------------------------------------------------------------------
# Local name mangling
# ---------------------------------------------------------------------------


def mangle_locals(code: str) -> str:
    parsed = parse_source(code)
    mangler = _Mangler(parsed)
    mangler.visit(parsed.root, {})
    if not mangler.edits:
        return code
    logger.debug("Mangled %d identifier occurrence(s)", len(mangler.edits))
    return apply_edits(parsed.source, mangler.edits)


class _Mangler:
    def __init__(self, parsed: ParsedSource):
        self.parsed = parsed
        self.edits: List[Edit] = []

    def visit(self, node: Node, env: Dict[str, str]) -> None:
        kind = node.type
        if kind in FUNCTION_TYPES:
            self._visit_function(node, env)
            return
        if kind == "identifier":
            renamed = env.get(self.parsed.text(node))
            if renamed is not None and renamed != self.parsed.text(node):
                self.edits.append((node.start_byte, node.end_byte, renamed))
            return
        if kind in SHORTHAND_TYPES:
            name = self.parsed.text(node)
            renamed = env.get(name)
            if renamed is not None and renamed != name:
                self.edits.append((node.start_byte, node.end_byte, f"{name}:{renamed}"))
            return
        if kind == "class":
            # A named class expression binds its name inside its own body.
            name = node.child_by_field_name("name")
            if name is not None:
                env = {key: value for key, value in env.items() if key != self.parsed.text(name)}
        for child in node.named_children:
            self.visit(child, env)

    def _visit_function(self, node: Node, env: Dict[str, str]) -> None:
        parsed = self.parsed
        name = node.child_by_field_name("name")
        self_named = node.type in NAMED_EXPRESSION_TYPES and name is not None

        bindings = function_bindings(parsed, node)
        if self_named:
            own = parsed.text(name)
            bindings = [own] + [binding for binding in bindings if binding != own]

        inner = {key: value for key, value in env.items() if key not in bindings}
        if bindings and not _uses_dynamic_scope(parsed, node):
            bound = set(bindings)
            taken = {
                inner.get(text, text)
                for text in _identifier_texts(parsed, node)
                if text not in bound
            }
            inner.update(zip(bindings, short_names(taken)))

        for child in node.named_children:
            is_declared_name = (
                name is not None
                and not self_named
                and child.start_byte == name.start_byte
                and child.type == name.type
            )
            self.visit(child, env if is_declared_name else inner)


def short_names(taken: Set[str]) -> Iterator[str]:
    """Shortest identifiers first, skipping ``taken`` and reserved words."""
    for length in itertools.count(1):
        for head in _NAME_HEAD:
            for tail in itertools.product(_NAME_TAIL, repeat=length - 1):
                candidate = head + "".join(tail)
                if candidate not in taken and candidate not in RESERVED_NAMES:
                    yield candidate


def function_bindings(parsed: ParsedSource, node: Node) -> List[str]:
    """Names a function binds: parameters first, then declarations in its body."""
    names: List[str] = []

    def add(found: List[str]) -> None:
        for name in found:
            if name not in names:
                names.append(name)

    parameters = node.child_by_field_name("parameters")
    if parameters is None:
        parameters = node.child_by_field_name("parameter")
    if parameters is not None:
        add(pattern_names(parsed, parameters))

    body = node.child_by_field_name("body")
    stack = [body] if body is not None else []
    while stack:
        current = stack.pop()
        kind = current.type
        if kind in {"function_declaration", "generator_function_declaration"}:
            add(pattern_names(parsed, current.child_by_field_name("name")))
            continue
        if kind in FUNCTION_TYPES:
            continue
        if kind == "class_declaration":
            add(pattern_names(parsed, current.child_by_field_name("name")))
        elif kind == "variable_declarator":
            add(pattern_names(parsed, current.child_by_field_name("name")))
        elif kind == "catch_clause":
            add(pattern_names(parsed, current.child_by_field_name("parameter")))
        elif kind == "for_in_statement" and current.child_by_field_name("kind") is not None:
            add(pattern_names(parsed, current.child_by_field_name("left")))
        stack.extend(reversed(current.named_children))
    return names


def pattern_names(parsed: ParsedSource, node: Optional[Node]) -> List[str]:
    """Names bound by a binding pattern; default values are not bindings."""
    if node is None:
        return []
    kind = node.type
    if kind in {"identifier", "shorthand_property_identifier_pattern"}:
        return [parsed.text(node)]
    if kind in {"assignment_pattern", "object_assignment_pattern"}:
        return pattern_names(parsed, node.child_by_field_name("left"))
    if kind == "pair_pattern":
        return pattern_names(parsed, node.child_by_field_name("value"))
    if kind in {"object_pattern", "array_pattern", "formal_parameters", "rest_pattern"}:
        names: List[str] = []
        for child in node.named_children:
            names.extend(pattern_names(parsed, child))
        return names
    return []


def _identifier_texts(parsed: ParsedSource, node: Node) -> Set[str]:
    return {
        parsed.text(candidate)
        for candidate in walk(node)
        if candidate.type == "identifier" or candidate.type in SHORTHAND_TYPES
    }


def _uses_dynamic_scope(parsed: ParsedSource, node: Node) -> bool:
    """``eval`` and ``with`` can reach names by their source spelling."""
    for candidate in walk(node):
        if candidate.type == "with_statement":
            return True
        if candidate.type == "call_expression":
            callee = candidate.child_by_field_name("function")
            if callee is not None and callee.type == "identifier" and parsed.text(callee) == "eval":
                return True
    return False
