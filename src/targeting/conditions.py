"""Audience condition trees.

Datafiles encode conditions as a JSON nested array whose first element is an
operator and whose remaining elements are operands:

  ["and", ["or", {"name": "browser_type", "value": "firefox"}]]

``parse_conditions`` turns that encoding into a tree of typed nodes once, at
config build time. Evaluation afterwards never inspects raw list shapes.

Only equality leaves combined with AND / OR / NOT are supported. NOT takes
exactly one operand; anything else is rejected while parsing.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass

from src.core.errors import ConditionParseError

AND_OPERATOR = "and"
OR_OPERATOR = "or"
NOT_OPERATOR = "not"


class Condition:
    """Base class for condition tree nodes."""

    def evaluate(self, attributes: Mapping) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Leaf(Condition):
    name: str
    value: object
    type: str = "custom_attribute"

    def evaluate(self, attributes: Mapping) -> bool:
        if self.name not in attributes:
            return False
        return _strict_equals(attributes[self.name], self.value)


@dataclass(frozen=True)
class And(Condition):
    children: tuple[Condition, ...] = ()

    def evaluate(self, attributes: Mapping) -> bool:
        return all(child.evaluate(attributes) for child in self.children)


@dataclass(frozen=True)
class Or(Condition):
    children: tuple[Condition, ...] = ()

    def evaluate(self, attributes: Mapping) -> bool:
        return any(child.evaluate(attributes) for child in self.children)


@dataclass(frozen=True)
class Not(Condition):
    child: Condition

    def evaluate(self, attributes: Mapping) -> bool:
        return not self.child.evaluate(attributes)


def evaluate(condition: Condition, attributes: Mapping | None) -> bool:
    """Evaluate a parsed condition tree against a user's attributes."""
    return condition.evaluate(attributes or {})


def parse_conditions(raw) -> Condition:
    """Build a condition tree from its JSON string or decoded form."""
    if isinstance(raw, Condition):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ConditionParseError(f"Audience conditions are not valid JSON: {exc}") from exc
    return _parse_node(raw)


def _parse_node(node) -> Condition:
    if isinstance(node, Mapping):
        return _parse_leaf(node)
    if not isinstance(node, list) or not node:
        raise ConditionParseError(f"Cannot parse condition node {node!r}")

    operator, operands = node[0], node[1:]
    if operator == AND_OPERATOR:
        return And(tuple(_parse_node(o) for o in operands))
    if operator == OR_OPERATOR:
        return Or(tuple(_parse_node(o) for o in operands))
    if operator == NOT_OPERATOR:
        if len(operands) != 1:
            raise ConditionParseError(
                f"'not' takes exactly one operand, got {len(operands)}"
            )
        return Not(_parse_node(operands[0]))
    raise ConditionParseError(f"Unknown condition operator {operator!r}")


def _parse_leaf(node: Mapping) -> Leaf:
    name = node.get("name")
    if not isinstance(name, str) or not name:
        raise ConditionParseError(f"Condition leaf has no attribute name: {dict(node)!r}")
    if "value" not in node:
        raise ConditionParseError(f"Condition leaf {name!r} has no value")
    return Leaf(name=name, value=node["value"], type=node.get("type", "custom_attribute"))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equals(actual, expected) -> bool:
    # True == 1 in Python; attribute matching must not treat them as equal
    if _is_number(actual) and _is_number(expected):
        return actual == expected
    return type(actual) is type(expected) and actual == expected
