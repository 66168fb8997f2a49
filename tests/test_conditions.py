"""Tests for condition tree parsing and evaluation."""

import json
from datetime import datetime
from decimal import Decimal

import pytest

from rentbook.domain.conditions import (
    ConditionGroup,
    MAX_DEPTH,
    ConditionLeaf,
    matches,
    parse_conditions,
    serialize_conditions,
    validate_conditions,
)
from rentbook.domain.entities import BankTransaction
from rentbook.domain.errors import ConditionParseError, ValidationError


def make_txn(**overrides):
    """Build a bank transaction with sensible defaults."""
    fields = dict(
        id=1,
        bank_account_id=1,
        external_id="tx_1",
        amount=Decimal("1500.00"),
        currency="GBP",
        description="Rent Payment March",
        counterparty_name="J Smith",
        reference="FLAT1",
        merchant=None,
        provider_category="general",
        transaction_date=datetime(2024, 3, 1),
        settled_date=None,
        imported_at=datetime(2024, 3, 1),
    )
    fields.update(overrides)
    return BankTransaction(**fields)


def leaf(field, match_type, value, case_sensitive=False):
    return ConditionLeaf(field=field, match_type=match_type, value=value, case_sensitive=case_sensitive)


def nested_groups(depth):
    """Build a chain of groups whose innermost empty group sits at the given depth."""
    node = {"rules": []}
    for _ in range(depth):
        node = {"operator": "AND", "rules": [node]}
    return node


class TestStringConditions:
    """Tests for string field comparisons."""

    def test_contains_is_case_insensitive_by_default(self):
        assert matches(make_txn(), leaf("description", "contains", "RENT"))

    def test_case_sensitive_contains(self):
        assert not matches(make_txn(), leaf("description", "contains", "rent", case_sensitive=True))
        assert matches(make_txn(), leaf("description", "contains", "Rent", case_sensitive=True))

    def test_equals(self):
        assert matches(make_txn(), leaf("reference", "equals", "flat1"))
        assert not matches(make_txn(), leaf("reference", "equals", "flat"))

    def test_starts_and_ends_with(self):
        assert matches(make_txn(), leaf("description", "startsWith", "rent"))
        assert matches(make_txn(), leaf("description", "endsWith", "march"))
        assert not matches(make_txn(), leaf("description", "endsWith", "rent"))

    def test_counterparty_name_field(self):
        assert matches(make_txn(), leaf("counterpartyName", "contains", "smith"))

    def test_null_field_never_matches(self):
        txn = make_txn(merchant=None)
        assert not matches(txn, leaf("merchant", "contains", ""))
        assert not matches(txn, leaf("merchant", "equals", "anything"))

    def test_numeric_match_type_on_string_field_is_false(self):
        assert not matches(make_txn(), leaf("description", "greaterThan", 0))


class TestNumericConditions:
    """Tests for amount comparisons."""

    def test_greater_than(self):
        assert matches(make_txn(), leaf("amount", "greaterThan", 0))
        assert matches(make_txn(), leaf("amount", "greaterThan", "1499.99"))

    def test_comparisons_are_strict(self):
        assert not matches(make_txn(), leaf("amount", "greaterThan", 1500))
        assert not matches(make_txn(), leaf("amount", "lessThan", 1500))

    def test_less_than_negative_amount(self):
        assert matches(make_txn(amount=Decimal("-45.50")), leaf("amount", "lessThan", 0))

    def test_non_numeric_value_is_false(self):
        assert not matches(make_txn(), leaf("amount", "greaterThan", "lots"))

    def test_string_match_type_on_amount_is_false(self):
        assert not matches(make_txn(), leaf("amount", "equals", "1500"))


class TestGroups:
    """Tests for AND/OR groups."""

    def test_and_over_empty_children_is_true(self):
        assert matches(make_txn(), ConditionGroup(operator="AND", children=()))

    def test_or_over_empty_children_is_false(self):
        assert not matches(make_txn(), ConditionGroup(operator="OR", children=()))

    def test_and_requires_all(self):
        group = ConditionGroup(
            operator="AND",
            children=(leaf("description", "contains", "rent"), leaf("amount", "lessThan", 0)),
        )
        assert not matches(make_txn(), group)

    def test_or_requires_any(self):
        group = ConditionGroup(
            operator="OR",
            children=(leaf("description", "contains", "deposit"), leaf("amount", "greaterThan", 0)),
        )
        assert matches(make_txn(), group)

    def test_nested_groups(self):
        group = ConditionGroup(
            operator="AND",
            children=(
                leaf("amount", "greaterThan", 0),
                ConditionGroup(
                    operator="OR",
                    children=(leaf("reference", "equals", "FLAT2"), leaf("reference", "equals", "FLAT1")),
                ),
            ),
        )
        assert matches(make_txn(), group)

    def test_unknown_operator_is_false(self):
        assert not matches(make_txn(), ConditionGroup(operator="XOR", children=()))

    def test_unknown_field_is_false(self):
        assert not matches(make_txn(), leaf("payee", "contains", "smith"))


class TestParsing:
    """Tests for deserializing stored condition trees."""

    def test_parse_json_text(self):
        condition = parse_conditions(
            '{"operator": "OR", "rules": [{"field": "description", "matchType": "contains", "value": "rent"}]}'
        )
        assert isinstance(condition, ConditionGroup)
        assert condition.operator == "OR"
        assert condition.children == (leaf("description", "contains", "rent"),)

    def test_missing_operator_defaults_to_and(self):
        condition = parse_conditions({"rules": []})
        assert condition.operator == "AND"

    def test_case_sensitive_flag(self):
        condition = parse_conditions(
            {"rules": [{"field": "description", "matchType": "equals", "value": "X", "caseSensitive": True}]}
        )
        assert condition.children[0].case_sensitive is True

    def test_unknown_names_survive_parsing(self):
        condition = parse_conditions({"rules": [{"field": "payee", "matchType": "fuzzy", "value": "x"}]})
        assert condition.children[0].field == "payee"

    def test_invalid_json_raises(self):
        with pytest.raises(ConditionParseError):
            parse_conditions("{not json")

    def test_non_list_rules_raises(self):
        with pytest.raises(ConditionParseError):
            parse_conditions({"operator": "AND", "rules": "description"})

    def test_non_object_child_raises(self):
        with pytest.raises(ConditionParseError):
            parse_conditions({"operator": "AND", "rules": ["description"]})

    def test_deep_nesting_raises(self):
        with pytest.raises(ConditionParseError):
            parse_conditions(nested_groups(MAX_DEPTH + 1))

    def test_nesting_beyond_json_recursion_limit_raises(self):
        with pytest.raises(ConditionParseError):
            parse_conditions('{"rules": [' * 100000 + "]}" * 100000)

    def test_nesting_at_limit_is_accepted(self):
        assert isinstance(parse_conditions(nested_groups(MAX_DEPTH)), ConditionGroup)

    def test_serialize_keeps_stored_shape(self):
        condition = ConditionGroup(
            operator="AND", children=(leaf("description", "contains", "rent", case_sensitive=True),)
        )
        data = json.loads(serialize_conditions(condition))
        assert data == {
            "operator": "AND",
            "rules": [{"field": "description", "matchType": "contains", "value": "rent", "caseSensitive": True}],
        }


class TestValidation:
    """Tests for strict validation of authored condition trees."""

    def test_valid_tree(self):
        condition = validate_conditions(
            {
                "operator": "AND",
                "rules": [
                    {"field": "description", "matchType": "contains", "value": "rent"},
                    {"field": "amount", "matchType": "greaterThan", "value": "0"},
                ],
            }
        )
        assert len(condition.children) == 2

    def test_unknown_field_rejected_with_details(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_conditions({"rules": [{"field": "payee", "matchType": "contains", "value": "x"}]})
        assert exc_info.value.details[0]["path"] == "rules[0]"
        assert "payee" in exc_info.value.details[0]["reason"]

    def test_wrong_match_type_for_field_rejected(self):
        with pytest.raises(ValidationError):
            validate_conditions({"rules": [{"field": "amount", "matchType": "contains", "value": "1"}]})

    def test_non_numeric_amount_rejected(self):
        with pytest.raises(ValidationError):
            validate_conditions({"rules": [{"field": "amount", "matchType": "lessThan", "value": "abc"}]})

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            validate_conditions({"operator": "NOT", "rules": []})

    def test_leaf_root_rejected(self):
        with pytest.raises(ValidationError):
            validate_conditions({"field": "description", "matchType": "contains", "value": "x"})

    def test_malformed_json_is_validation_error(self):
        with pytest.raises(ValidationError):
            validate_conditions("[")

    def test_deep_nesting_is_validation_error(self):
        with pytest.raises(ValidationError):
            validate_conditions(nested_groups(MAX_DEPTH + 1))
