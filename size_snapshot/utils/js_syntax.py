"""Thin helpers around the tree-sitter JavaScript grammar."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Mapping, Optional, Tuple

import tree_sitter_javascript
from tree_sitter import Language, Node, Parser, Tree

JS_LANGUAGE = Language(tree_sitter_javascript.language())

COMMENT_TYPES = {"comment", "html_comment", "hash_bang_line"}

# Older grammar releases call function expressions plain "function".
FUNCTION_EXPRESSION_TYPES = {
    "function",
    "function_expression",
    "generator_function",
    "arrow_function",
}

DECLARATION_TYPES = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "lexical_declaration",
    "variable_declaration",
}

# Expressions a define-style substitution may replace as a whole.
SUBSTITUTABLE_TYPES = {"member_expression", "identifier"}

# (start_byte, end_byte, replacement)
Edit = Tuple[int, int, str]


@dataclass
class ParsedSource:
    """Source bytes paired with their syntax tree."""

    source: bytes
    tree: Tree

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8")

    def statements(self) -> List[Node]:
        """Top-level statements, comments excluded."""
        return named_children(self.root)

    def syntax_error(self) -> Optional[Node]:
        if not self.root.has_error:
            return None
        return find_error_node(self.root)

    def preceded_by_pure_annotation(self, node: Node) -> bool:
        """True when ``/*#__PURE__*/`` (or ``@__PURE__``) sits right before the node."""
        head = self.source[: node.start_byte].rstrip()
        return bool(_PURE_ANNOTATION.search(head[-64:]))


_PURE_ANNOTATION = re.compile(rb"/\*\s*[#@]__PURE__\s*\*/$")


def parse_source(code: str) -> ParsedSource:
    # Parsers are not thread-safe; build one per call.
    parser = Parser(JS_LANGUAGE)
    source = code.encode("utf-8")
    return ParsedSource(source=source, tree=parser.parse(source))


def named_children(node: Node) -> List[Node]:
    return [child for child in node.named_children if child.type not in COMMENT_TYPES]


def find_error_node(node: Node) -> Optional[Node]:
    for candidate in walk(node):
        if candidate.type == "ERROR" or candidate.is_missing:
            return candidate
    return None


def walk(node: Node) -> Iterator[Node]:
    """Depth-first pre-order traversal."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def string_value(parsed: ParsedSource, node: Node) -> str:
    """Value of a string literal node (quotes stripped, escapes left as written)."""
    return parsed.text(node)[1:-1]


def referenced_names(node: Node, parsed: ParsedSource) -> set[str]:
    """Identifiers mentioned anywhere under ``node``, bindings included."""
    names = set()
    for candidate in walk(node):
        if candidate.type in {"identifier", "shorthand_property_identifier"}:
            names.add(parsed.text(candidate))
    return names


def substitution_pattern(substitutions: Mapping[str, str]) -> Optional[re.Pattern[str]]:
    """Regex matching whole occurrences of the substituted expressions."""
    if not substitutions:
        return None
    keys = sorted(substitutions, key=len, reverse=True)
    alternatives = "|".join(re.escape(key) for key in keys)
    return re.compile(rf"(?<![\w$.])(?:{alternatives})(?![\w$])")


def replace_substitutions(code: str, substitutions: Mapping[str, str]) -> str:
    pattern = substitution_pattern(substitutions)
    if pattern is None:
        return code
    return pattern.sub(lambda match: substitutions[match.group(0)], code)


def apply_edits(source: bytes, edits: Iterable[Edit], start: int = 0, end: Optional[int] = None) -> str:
    """Splice non-overlapping byte-range replacements into ``source[start:end]``."""
    end = len(source) if end is None else end
    pieces = []
    cursor = start
    for edit_start, edit_end, replacement in sorted(edits):
        pieces.append(source[cursor:edit_start])
        pieces.append(replacement.encode("utf-8"))
        cursor = edit_end
    pieces.append(source[cursor:end])
    return b"".join(pieces).decode("utf-8")


def substituted_text(parsed: ParsedSource, node: Node, substitutions: Mapping[str, str]) -> str:
    """Source of ``node`` with whole expressions from ``substitutions`` replaced.

    Only member expressions and identifiers are candidates, so occurrences
    inside string literals, template text or comments stay untouched.
    """
    if not substitutions:
        return parsed.text(node)
    edits: List[Edit] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type in SUBSTITUTABLE_TYPES:
            text = parsed.text(current)
            if text in substitutions:
                edits.append((current.start_byte, current.end_byte, substitutions[text]))
                continue
        stack.extend(current.children)
    return apply_edits(parsed.source, edits, node.start_byte, node.end_byte)
