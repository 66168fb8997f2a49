"""Condition trees for matching rules.

A rule's conditions are stored as JSON and interpreted at evaluation time:

    {"operator": "AND", "rules": [
        {"field": "description", "matchType": "contains", "value": "rent"},
        {"field": "amount", "matchType": "greaterThan", "value": 0}
    ]}

Children of a group may themselves be groups. Evaluation never raises: an
unknown field, match type or operator simply does not match, so one
malformed or newer rule cannot break a batch.
"""

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from rentbook.domain.errors import ConditionParseError, ValidationError

# Condition field name -> BankTransaction attribute
STRING_FIELDS = {
    "description": "description",
    "counterpartyName": "counterparty_name",
    "reference": "reference",
    "merchant": "merchant",
}
NUMERIC_FIELDS = {
    "amount": "amount",
}

STRING_MATCH_TYPES = ("equals", "contains", "startsWith", "endsWith")
NUMERIC_MATCH_TYPES = ("greaterThan", "lessThan")
OPERATORS = ("AND", "OR")
MAX_DEPTH = 32


@dataclass(frozen=True)
class ConditionLeaf:
    """Single comparison against one transaction field."""

    field: Any
    match_type: Any
    value: Any
    case_sensitive: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = {"field": self.field, "matchType": self.match_type, "value": self.value}
        if self.case_sensitive:
            data["caseSensitive"] = True
        return data


@dataclass(frozen=True)
class ConditionGroup:
    """Boolean combination of child conditions."""

    operator: Any
    children: tuple = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "operator": self.operator,
            "rules": [child.to_dict() for child in self.children],
        }


Condition = Union[ConditionLeaf, ConditionGroup]


def parse_conditions(raw: Union[str, dict, Condition]) -> Condition:
    """Deserialize a condition tree.

    Args:
        raw: JSON text, an already-decoded dict, or a condition node

    Returns:
        Root condition node

    Raises:
        ConditionParseError: If the input is not JSON or not shaped like a
            condition tree, or nested more than MAX_DEPTH levels. Unknown
            field names and match types are kept;
            they are rejected by evaluation, not parsing.
    """
    if isinstance(raw, (ConditionLeaf, ConditionGroup)):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except RecursionError:
            raise ConditionParseError(f"Conditions are nested more than {MAX_DEPTH} levels deep")
        except (TypeError, ValueError) as e:
            raise ConditionParseError(f"Conditions are not valid JSON: {e}")
    return _parse_node(raw, 0)


def _parse_node(data: Any, depth: int) -> Condition:
    if depth > MAX_DEPTH:
        raise ConditionParseError(f"Conditions are nested more than {MAX_DEPTH} levels deep")
    if not isinstance(data, dict):
        raise ConditionParseError(f"Condition must be an object, got {type(data).__name__}")

    if "rules" in data or "operator" in data:
        children = data.get("rules", [])
        if children is None:
            children = []
        if not isinstance(children, list):
            raise ConditionParseError("Condition group 'rules' must be a list")
        return ConditionGroup(
            operator=data.get("operator") or "AND",
            children=tuple(_parse_node(child, depth + 1) for child in children),
        )

    return ConditionLeaf(
        field=data.get("field"),
        match_type=data.get("matchType"),
        value=data.get("value"),
        case_sensitive=data.get("caseSensitive") is True,
    )


def serialize_conditions(condition: Union[str, dict, Condition]) -> str:
    """Serialize a condition tree to the stored JSON form."""
    if isinstance(condition, (ConditionLeaf, ConditionGroup)):
        return json.dumps(condition.to_dict())
    if isinstance(condition, dict):
        return json.dumps(condition)
    return condition


def validate_conditions(raw: Union[str, dict, Condition]) -> Condition:
    """Strictly validate a condition tree being authored.

    Unlike evaluation, authoring rejects unknown operators, fields and match
    types so that mistakes surface when a rule is saved.

    Raises:
        ValidationError: With one detail entry per problem found
    """
    root = parse_conditions(raw)
    if not isinstance(root, ConditionGroup):
        raise ValidationError("Conditions must be a group with 'operator' and 'rules'")

    problems: list[dict[str, Any]] = []
    _collect_problems(root, "rules", problems)
    if problems:
        raise ValidationError(
            "Invalid conditions: " + "; ".join(p["reason"] for p in problems),
            details=problems,
        )
    return root


def _collect_problems(node: Condition, path: str, problems: list[dict[str, Any]]) -> None:
    if isinstance(node, ConditionGroup):
        if node.operator not in OPERATORS:
            problems.append({"path": path, "reason": f"unknown operator '{node.operator}'"})
        for index, child in enumerate(node.children):
            _collect_problems(child, f"{path}[{index}]", problems)
        return

    if node.field in STRING_FIELDS:
        if node.match_type not in STRING_MATCH_TYPES:
            problems.append(
                {"path": path, "reason": f"match type '{node.match_type}' is not valid for '{node.field}'"}
            )
        elif not isinstance(node.value, (str, int, float)) or isinstance(node.value, bool):
            problems.append({"path": path, "reason": f"value for '{node.field}' must be text"})
    elif node.field in NUMERIC_FIELDS:
        if node.match_type not in NUMERIC_MATCH_TYPES:
            problems.append(
                {"path": path, "reason": f"match type '{node.match_type}' is not valid for '{node.field}'"}
            )
        elif _to_decimal(node.value) is None:
            problems.append({"path": path, "reason": f"value for '{node.field}' must be a number"})
    else:
        problems.append({"path": path, "reason": f"unknown field '{node.field}'"})


def matches(transaction: Any, condition: Condition) -> bool:
    """Evaluate a condition tree against a transaction.

    ``transaction`` is anything exposing the BankTransaction field
    attributes (description, counterparty_name, reference, merchant, amount).
    """
    if isinstance(condition, ConditionGroup):
        return _matches_group(transaction, condition)
    if isinstance(condition, ConditionLeaf):
        return _matches_leaf(transaction, condition)
    return False


def _matches_group(transaction: Any, group: ConditionGroup) -> bool:
    if group.operator == "AND":
        return all(matches(transaction, child) for child in group.children)
    if group.operator == "OR":
        return any(matches(transaction, child) for child in group.children)
    return False


def _matches_leaf(transaction: Any, leaf: ConditionLeaf) -> bool:
    if leaf.value is None:
        return False

    if leaf.field in STRING_FIELDS:
        field_value = getattr(transaction, STRING_FIELDS[leaf.field], None)
        if field_value is None:
            return False
        return _matches_string(str(field_value), str(leaf.value), leaf.match_type, leaf.case_sensitive)

    if leaf.field in NUMERIC_FIELDS:
        field_value = getattr(transaction, NUMERIC_FIELDS[leaf.field], None)
        if field_value is None:
            return False
        return _matches_number(field_value, leaf.value, leaf.match_type)

    return False


def _matches_string(field_value: str, rule_value: str, match_type: Any, case_sensitive: bool) -> bool:
    if not case_sensitive:
        field_value = field_value.lower()
        rule_value = rule_value.lower()

    if match_type == "equals":
        return field_value == rule_value
    if match_type == "contains":
        return rule_value in field_value
    if match_type == "startsWith":
        return field_value.startswith(rule_value)
    if match_type == "endsWith":
        return field_value.endswith(rule_value)
    return False


def _matches_number(field_value: Any, rule_value: Any, match_type: Any) -> bool:
    left = _to_decimal(field_value)
    right = _to_decimal(rule_value)
    if left is None or right is None:
        return False

    if match_type == "greaterThan":
        return left > right
    if match_type == "lessThan":
        return left < right
    return False


def _to_decimal(value: Any):
    """Convert to Decimal, or None when the value is not a finite number."""
    if isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result
