"""Static side-effect analysis over tree-sitter JavaScript syntax trees.

Both treeshaking pipelines ask the same question of every top-level
statement: can it be dropped without changing what the program does?
The answer is conservative: anything not recognized is assumed to have
side effects.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from tree_sitter import Node

from size_snapshot.utils.js_syntax import (
    COMMENT_TYPES,
    FUNCTION_EXPRESSION_TYPES,
    ParsedSource,
    named_children,
)

UNKNOWN: Any = object()
UNDEFINED: Any = object()

PURE_LEAF_TYPES = {
    "identifier",
    "number",
    "string",
    "true",
    "false",
    "null",
    "undefined",
    "regex",
    "this",
    "super",
    "meta_property",
    "property_identifier",
    "private_property_identifier",
    "shorthand_property_identifier",
    "optional_chain",
    "string_fragment",
    "escape_sequence",
}

CONTAINER_TYPES = {
    "parenthesized_expression",
    "sequence_expression",
    "array",
    "arguments",
    "template_substitution",
    "computed_property_name",
    "spread_element",
    "member_expression",
    "subscript_expression",
    "pair",
}

KNOWN_PURE_CALLS = frozenset(
    {
        "Array.isArray",
        "Boolean",
        "Date.now",
        "JSON.stringify",
        "Math.abs",
        "Math.ceil",
        "Math.floor",
        "Math.max",
        "Math.min",
        "Math.random",
        "Math.round",
        "Number",
        "Object.assign",
        "Object.create",
        "Object.freeze",
        "Object.keys",
        "Object.values",
        "String",
        "Symbol",
        "Symbol.for",
        "isNaN",
        "parseFloat",
        "parseInt",
    }
)

KNOWN_PURE_CONSTRUCTORS = frozenset(
    {"Array", "Date", "Error", "Map", "Object", "RangeError", "RegExp", "Set", "TypeError", "WeakMap", "WeakSet"}
)


@dataclass(frozen=True)
class PurityPolicy:
    """Which purity heuristics a pipeline trusts."""

    pure_iife: bool = True
    local_function_calls: bool = True
    known_globals: bool = True


def truthy(value: Any) -> bool:
    if value is None or value is UNDEFINED:
        return False
    if isinstance(value, float):
        return value != 0 and not math.isnan(value)
    return bool(value)


def _nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def _typeof(value: Any) -> Any:
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    return UNKNOWN


def _strict_equal(left: Any, right: Any) -> Any:
    if left is UNDEFINED or right is UNDEFINED:
        return left is right
    if type(left) is not type(right):
        return False
    return left == right


def _loose_equal(left: Any, right: Any) -> Any:
    if _nullish(left) or _nullish(right):
        return _nullish(left) and _nullish(right)
    if type(left) is not type(right):
        return UNKNOWN
    return left == right


def _parse_number(text: str) -> Any:
    cleaned = text.replace("_", "")
    try:
        if cleaned[:2].lower() in {"0x", "0o", "0b"}:
            return float(int(cleaned, 0))
        return float(cleaned)
    except ValueError:
        return UNKNOWN


def _literal_value(text: str) -> Any:
    try:
        value = json.loads(text)
    except ValueError:
        return UNKNOWN
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, (str, bool)) or value is None:
        return value
    return UNKNOWN


class SideEffectAnalyzer:
    """Decides whether expressions and statements of one module are droppable."""

    def __init__(
        self,
        parsed: ParsedSource,
        *,
        policy: PurityPolicy = PurityPolicy(),
        substitutions: Optional[Mapping[str, str]] = None,
        local_functions: Optional[Mapping[str, Node]] = None,
    ):
        self.parsed = parsed
        self.policy = policy
        self._substitutions = {
            key: _literal_value(value) for key, value in (substitutions or {}).items()
        }
        self._functions: Dict[str, Node] = dict(local_functions or {})
        self._pure_functions: Dict[str, bool] = {}

    @staticmethod
    def collect_local_functions(parsed: ParsedSource, statements) -> Dict[str, Node]:
        """Map top-level function names to their function nodes."""
        functions: Dict[str, Node] = {}
        for statement in statements:
            if statement.type in {"function_declaration", "generator_function_declaration"}:
                name = statement.child_by_field_name("name")
                if name is not None:
                    functions[parsed.text(name)] = statement
            elif statement.type in {"lexical_declaration", "variable_declaration"}:
                for declarator in named_children(statement):
                    if declarator.type != "variable_declarator":
                        continue
                    name = declarator.child_by_field_name("name")
                    value = declarator.child_by_field_name("value")
                    if (
                        name is not None
                        and name.type == "identifier"
                        and value is not None
                        and value.type in FUNCTION_EXPRESSION_TYPES
                    ):
                        functions[parsed.text(name)] = value
        return functions

    # Constant folding

    def evaluate(self, node: Node) -> Any:
        """Fold a literal expression to a Python value, or return UNKNOWN."""
        kind = node.type
        text = self.parsed.text(node)
        if text in self._substitutions and kind in {"member_expression", "identifier"}:
            return self._substitutions[text]
        if kind == "parenthesized_expression":
            inner = named_children(node)
            return self.evaluate(inner[0]) if len(inner) == 1 else UNKNOWN
        if kind == "string":
            body = text[1:-1]
            return UNKNOWN if "\\" in body else body
        if kind == "template_string":
            if any(child.type == "template_substitution" for child in node.named_children):
                return UNKNOWN
            body = text[1:-1]
            return UNKNOWN if "\\" in body else body
        if kind == "number":
            return _parse_number(text)
        if kind == "true":
            return True
        if kind == "false":
            return False
        if kind == "null":
            return None
        if kind == "undefined":
            return UNDEFINED
        if kind == "unary_expression":
            return self._evaluate_unary(node)
        if kind == "binary_expression":
            return self._evaluate_binary(node)
        return UNKNOWN

    def _evaluate_unary(self, node: Node) -> Any:
        operator = node.child_by_field_name("operator")
        argument = node.child_by_field_name("argument")
        if operator is None or argument is None:
            return UNKNOWN
        op = operator.type
        if op == "void":
            return UNDEFINED
        value = self.evaluate(argument)
        if value is UNKNOWN:
            return UNKNOWN
        if op == "!":
            return not truthy(value)
        if op == "typeof":
            return _typeof(value)
        if op == "-" and isinstance(value, float):
            return -value
        if op == "+" and isinstance(value, float):
            return value
        return UNKNOWN

    def _evaluate_binary(self, node: Node) -> Any:
        operator = node.child_by_field_name("operator")
        left_node = node.child_by_field_name("left")
        right_node = node.child_by_field_name("right")
        if operator is None or left_node is None or right_node is None:
            return UNKNOWN
        op = operator.type
        left = self.evaluate(left_node)
        if op == "&&":
            if left is UNKNOWN:
                return UNKNOWN
            return left if not truthy(left) else self.evaluate(right_node)
        if op == "||":
            if left is UNKNOWN:
                return UNKNOWN
            return left if truthy(left) else self.evaluate(right_node)
        if op == "??":
            if left is UNKNOWN:
                return UNKNOWN
            return self.evaluate(right_node) if _nullish(left) else left
        right = self.evaluate(right_node)
        if left is UNKNOWN or right is UNKNOWN:
            return UNKNOWN
        if op == "===":
            return _strict_equal(left, right)
        if op == "!==":
            return not _strict_equal(left, right)
        if op in {"==", "!="}:
            equal = _loose_equal(left, right)
            if equal is UNKNOWN:
                return UNKNOWN
            return equal if op == "==" else not equal
        return UNKNOWN

    # Side effects

    def has_side_effects(self, node: Node) -> bool:
        kind = node.type
        if kind in COMMENT_TYPES or kind in PURE_LEAF_TYPES:
            return False
        if kind in FUNCTION_EXPRESSION_TYPES:
            return False
        if kind in {"class", "class_declaration"}:
            return self._class_has_side_effects(node)
        if kind in CONTAINER_TYPES:
            return any(self.has_side_effects(child) for child in named_children(node))
        if kind == "template_string":
            return any(
                self.has_side_effects(child)
                for child in node.named_children
                if child.type == "template_substitution"
            )
        if kind == "object":
            return self._object_has_side_effects(node)
        if kind == "unary_expression":
            operator = node.child_by_field_name("operator")
            if operator is not None and operator.type == "delete":
                return True
            argument = node.child_by_field_name("argument")
            return argument is not None and self.has_side_effects(argument)
        if kind == "binary_expression":
            return self._binary_has_side_effects(node)
        if kind == "ternary_expression":
            return self._ternary_has_side_effects(node)
        if kind == "call_expression":
            return self._call_has_side_effects(node)
        if kind == "new_expression":
            return self._new_has_side_effects(node)
        # Assignments, updates, await, yield, dynamic import and anything unknown.
        return True

    def _object_has_side_effects(self, node: Node) -> bool:
        for member in named_children(node):
            if member.type == "method_definition":
                name = member.child_by_field_name("name")
                if name is not None and name.type == "computed_property_name":
                    if self.has_side_effects(name):
                        return True
            elif self.has_side_effects(member):
                return True
        return False

    def _binary_has_side_effects(self, node: Node) -> bool:
        operator = node.child_by_field_name("operator")
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is None or right is None:
            return True
        if self.has_side_effects(left):
            return True
        op = operator.type if operator is not None else ""
        if op in {"&&", "||", "??"}:
            value = self.evaluate(left)
            if value is not UNKNOWN:
                skipped = (
                    (op == "&&" and not truthy(value))
                    or (op == "||" and truthy(value))
                    or (op == "??" and not _nullish(value))
                )
                if skipped:
                    return False
        return self.has_side_effects(right)

    def _ternary_has_side_effects(self, node: Node) -> bool:
        condition = node.child_by_field_name("condition")
        consequence = node.child_by_field_name("consequence")
        alternative = node.child_by_field_name("alternative")
        if condition is None or consequence is None or alternative is None:
            return True
        if self.has_side_effects(condition):
            return True
        value = self.evaluate(condition)
        if value is not UNKNOWN:
            return self.has_side_effects(consequence if truthy(value) else alternative)
        return self.has_side_effects(consequence) or self.has_side_effects(alternative)

    def _call_has_side_effects(self, node: Node) -> bool:
        arguments = node.child_by_field_name("arguments")
        if arguments is not None and self.has_side_effects(arguments):
            return True
        if self.parsed.preceded_by_pure_annotation(node):
            return False
        callee = node.child_by_field_name("function")
        if callee is None:
            return True
        target = _unwrap_parens(callee)
        if target.type in FUNCTION_EXPRESSION_TYPES:
            return not (self.policy.pure_iife and self.function_is_pure(target))
        if target.type == "identifier" and self.policy.local_function_calls:
            name = self.parsed.text(target)
            if name in self._functions:
                return not self._local_function_is_pure(name)
        if self.policy.known_globals and self.parsed.text(target) in KNOWN_PURE_CALLS:
            return False
        return True

    def _new_has_side_effects(self, node: Node) -> bool:
        arguments = node.child_by_field_name("arguments")
        if arguments is not None and self.has_side_effects(arguments):
            return True
        if self.parsed.preceded_by_pure_annotation(node):
            return False
        constructor = node.child_by_field_name("constructor")
        if constructor is None:
            return True
        return not (
            self.policy.known_globals
            and self.parsed.text(constructor) in KNOWN_PURE_CONSTRUCTORS
        )

    def _class_has_side_effects(self, node: Node) -> bool:
        for child in named_children(node):
            if child.type == "decorator":
                return True
            if child.type == "class_heritage":
                if any(self.has_side_effects(part) for part in named_children(child)):
                    return True
            elif child.type == "class_body":
                for member in named_children(child):
                    if self._class_member_has_side_effects(member):
                        return True
        return False

    def _class_member_has_side_effects(self, member: Node) -> bool:
        if member.type == "class_static_block":
            return any(self.statement_has_side_effects(part) for part in named_children(member))
        if member.type not in {"field_definition", "method_definition"}:
            return member.type == "decorator"
        key = member.child_by_field_name("property") or member.child_by_field_name("name")
        if key is not None and key.type == "computed_property_name" and self.has_side_effects(key):
            return True
        if member.type == "field_definition" and any(c.type == "static" for c in member.children):
            value = member.child_by_field_name("value")
            return value is not None and self.has_side_effects(value)
        return False

    def function_is_pure(self, function: Node) -> bool:
        """True when calling the function cannot affect anything outside it."""
        body = function.child_by_field_name("body")
        if body is None:
            return False
        if body.type == "statement_block":
            return not any(self.statement_has_side_effects(part) for part in named_children(body))
        return not self.has_side_effects(body)

    def _local_function_is_pure(self, name: str) -> bool:
        cached = self._pure_functions.get(name)
        if cached is not None:
            return cached
        # Recursive calls see the optimistic answer.
        self._pure_functions[name] = True
        result = self.function_is_pure(self._functions[name])
        self._pure_functions[name] = result
        return result

    def statement_has_side_effects(self, statement: Node) -> bool:
        kind = statement.type
        if kind in COMMENT_TYPES or kind == "empty_statement":
            return False
        if kind in {"function_declaration", "generator_function_declaration"}:
            return False
        if kind == "class_declaration":
            return self._class_has_side_effects(statement)
        if kind in {"lexical_declaration", "variable_declaration"}:
            return any(self._declarator_has_side_effects(part) for part in named_children(statement))
        if kind == "expression_statement":
            return any(self.has_side_effects(part) for part in named_children(statement))
        if kind == "if_statement":
            return self._if_has_side_effects(statement)
        if kind in {"statement_block", "else_clause", "class_static_block"}:
            return any(self.statement_has_side_effects(part) for part in named_children(statement))
        if kind == "labeled_statement":
            body = statement.child_by_field_name("body")
            return body is not None and self.statement_has_side_effects(body)
        if kind == "return_statement":
            return any(self.has_side_effects(part) for part in named_children(statement))
        return True

    def _declarator_has_side_effects(self, declarator: Node) -> bool:
        if declarator.type != "variable_declarator":
            return False
        name = declarator.child_by_field_name("name")
        value = declarator.child_by_field_name("value")
        if name is not None and name.type != "identifier" and value is not None:
            if name.type != "object_pattern":
                return True
            if any(part.type in {"assignment_pattern", "object_assignment_pattern"} for part in name.named_children):
                return True
        return value is not None and self.has_side_effects(value)

    def _if_has_side_effects(self, statement: Node) -> bool:
        condition = statement.child_by_field_name("condition")
        consequence = statement.child_by_field_name("consequence")
        alternative = statement.child_by_field_name("alternative")
        if condition is None or consequence is None:
            return True
        if self.has_side_effects(condition):
            return True
        value = self.evaluate(condition)
        if value is not UNKNOWN:
            branch = consequence if truthy(value) else alternative
            return branch is not None and self.statement_has_side_effects(branch)
        if self.statement_has_side_effects(consequence):
            return True
        return alternative is not None and self.statement_has_side_effects(alternative)


def _unwrap_parens(node: Node) -> Node:
    while node.type == "parenthesized_expression":
        inner = named_children(node)
        if len(inner) != 1:
            break
        node = inner[0]
    return node
