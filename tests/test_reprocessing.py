"""Tests for ReprocessingService."""

import json
from decimal import Decimal

import pytest

from rentbook.domain.categories import TransactionType
from rentbook.domain.errors import NotFoundError
from rentbook.domain.reprocessing import AUTO_REVIEWER, ReprocessingService, ledger_amount


def contains(value):
    return json.dumps({"operator": "AND", "rules": [{"field": "description", "matchType": "contains", "value": value}]})


@pytest.fixture
def ingested(ingestion_service, sample_account, make_record):
    """Ingest a rent payment and an expense with no rules defined."""
    ingestion_service.ingest(
        [
            make_record("tx_rent", 1500, "Rent Payment Flat 1"),
            make_record("tx_repair", -45.5, "Boiler repair"),
        ],
        sample_account.id,
    )


def pending_by_description(db, text):
    return next(p for p in db.list_pending_transactions(reviewed=None) if text in p.description)


class TestReprocess:
    """Tests for full recomputation of pending transactions."""

    def test_no_rules_leaves_everything_pending(self, reprocessing_service, ingested):
        result = reprocessing_service.reprocess()

        assert result == {"processed": 2, "approved": 0, "failed": 0}

    def test_full_match_is_promoted(self, reprocessing_service, temp_db, sample_property, ingested):
        temp_db.create_matching_rule(
            name="Repairs",
            conditions=contains("repair"),
            priority=0,
            property_id=sample_property.id,
            type=TransactionType.EXPENSE,
            category="Repair",
        )

        result = reprocessing_service.reprocess()

        assert result == {"processed": 2, "approved": 1, "failed": 0}
        ledger = temp_db.list_ledger_transactions(property_id=sample_property.id)
        assert len(ledger) == 1
        assert ledger[0].amount == Decimal("45.50")
        assert ledger[0].type == TransactionType.EXPENSE
        assert ledger[0].category == "Repair"
        assert ledger[0].description == "Boiler repair"
        assert temp_db.count_pending_transactions(reviewed=None) == 1

    def test_partial_match_stores_fields(self, reprocessing_service, temp_db, ingested):
        temp_db.create_matching_rule(name="Rent", conditions=contains("rent"), priority=0, category="Rent")

        result = reprocessing_service.reprocess()

        assert result["approved"] == 0
        assert pending_by_description(temp_db, "Rent").category == "Rent"
        assert pending_by_description(temp_db, "repair").category is None

    def test_field_cleared_when_rule_removed(self, reprocessing_service, temp_db, ingested):
        rule_id = temp_db.create_matching_rule(name="Rent", conditions=contains("rent"), priority=0, category="Rent")
        reprocessing_service.reprocess()
        assert pending_by_description(temp_db, "Rent").category == "Rent"

        temp_db.delete_matching_rule(rule_id)
        reprocessing_service.reprocess()

        assert pending_by_description(temp_db, "Rent").category is None

    def test_illegal_combination_is_not_promoted(self, reprocessing_service, temp_db, sample_property, ingested):
        temp_db.create_matching_rule(
            name="Wrong",
            conditions=contains("rent"),
            priority=0,
            property_id=sample_property.id,
            type=TransactionType.INCOME,
            category="Repair",
        )

        result = reprocessing_service.reprocess()

        assert result == {"processed": 2, "approved": 0, "failed": 0}
        pending = pending_by_description(temp_db, "Rent")
        assert pending.category == "Repair"
        assert pending.type == TransactionType.INCOME
        assert temp_db.list_ledger_transactions() == []

    def test_zero_amount_is_not_promoted(self, reprocessing_service, temp_db, sample_account, sample_property, ingestion_service, make_record):
        ingestion_service.ingest([make_record("tx_zero", 0, "Rent adjustment")], sample_account.id)
        temp_db.create_matching_rule(
            name="Rent",
            conditions=contains("rent"),
            priority=0,
            property_id=sample_property.id,
            type=TransactionType.INCOME,
            category="Rent",
        )

        result = reprocessing_service.reprocess()

        assert result["approved"] == 0
        assert temp_db.list_ledger_transactions() == []

    def test_outgoing_payment_is_not_booked_as_income(
        self, reprocessing_service, temp_db, sample_account, sample_property, ingestion_service, make_record
    ):
        temp_db.create_matching_rule(
            name="Rent",
            conditions=contains("rent"),
            priority=0,
            property_id=sample_property.id,
            type=TransactionType.INCOME,
            category="Rent",
        )

        result = ingestion_service.ingest([make_record("tx_refund", -1500, "Rent refund to tenant")], sample_account.id)

        assert result["auto_approved"] == 0
        assert temp_db.list_ledger_transactions() == []
        pending = pending_by_description(temp_db, "refund")
        assert pending.type == TransactionType.INCOME
        assert pending.reviewed_at is None
        assert reprocessing_service.reprocess()["approved"] == 0

    def test_unexpected_error_counts_as_failed(self, reprocessing_service, temp_db, ingested, monkeypatch):
        def boom(bank_transaction_id):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(temp_db, "get_bank_transaction", boom)

        result = reprocessing_service.reprocess()

        assert result == {"processed": 0, "approved": 0, "failed": 2}

    def test_rerun_is_safe(self, reprocessing_service, temp_db, sample_property, ingested):
        temp_db.create_matching_rule(
            name="Rent",
            conditions=contains("rent"),
            priority=0,
            property_id=sample_property.id,
            type="INCOME",
            category="Rent",
        )

        first = reprocessing_service.reprocess()
        second = reprocessing_service.reprocess()

        assert first["approved"] == 1
        assert second == {"processed": 1, "approved": 0, "failed": 0}
        assert len(temp_db.list_ledger_transactions()) == 1


class TestScope:
    """Tests for account scoping and rule ordering."""

    def test_reprocess_single_account(
        self, reprocessing_service, temp_db, account_service, sample_account, ingestion_service, make_record, ingested
    ):
        other_id = account_service.create_bank_account(name="Other Account")
        ingestion_service.ingest([make_record("tx_other", 900, "Rent Flat 9")], other_id)
        temp_db.create_matching_rule(name="Rent", conditions=contains("rent"), priority=0, category="Rent")

        result = reprocessing_service.reprocess(bank_account_id=other_id)

        assert result["processed"] == 1
        assert pending_by_description(temp_db, "Flat 9").category == "Rent"
        assert pending_by_description(temp_db, "Flat 1").category is None

    def test_unknown_account_raises(self, reprocessing_service):
        with pytest.raises(NotFoundError):
            reprocessing_service.reprocess(bank_account_id=999)

    def test_account_rule_wins_tie_with_global_rule(self, reprocessing_service, temp_db, sample_account, ingested):
        temp_db.create_matching_rule(name="Global", conditions=contains("rent"), priority=0, category="Late Fee")
        temp_db.create_matching_rule(
            name="Account", conditions=contains("rent"), priority=0, category="Rent", bank_account_id=sample_account.id
        )

        reprocessing_service.reprocess()

        assert pending_by_description(temp_db, "Rent").category == "Rent"


class TestPromotionChecks:
    """Tests for promotion preconditions."""

    def test_valid(self, reprocessing_service, sample_property):
        problems = reprocessing_service.check_promotion(sample_property.id, "Income", "Rent", Decimal("10"))
        assert problems == []

    def test_collects_every_problem(self, reprocessing_service):
        problems = reprocessing_service.check_promotion(999, "Income", "Repair", Decimal("0"))

        assert len(problems) == 3
        assert "Property 999 not found" in problems

    def test_missing_fields(self, reprocessing_service):
        problems = reprocessing_service.check_promotion(None, None, None, Decimal("10"))

        assert problems == ["property_id is required", "type is required", "category is required"]

    def test_income_must_be_money_received(self, reprocessing_service, sample_property):
        problems = reprocessing_service.check_promotion(sample_property.id, "Income", "Rent", Decimal("-1500"))

        assert problems == ["Income must be money received, got -1500"]

    def test_expense_must_be_money_paid_out(self, reprocessing_service, sample_property):
        problems = reprocessing_service.check_promotion(sample_property.id, "Expense", "Repair", Decimal("45.50"))

        assert problems == ["Expense must be money paid out, got 45.50"]
        assert reprocessing_service.check_promotion(sample_property.id, "Expense", "Repair", Decimal("-45.50")) == []

    def test_ledger_amount_is_unsigned(self):
        assert ledger_amount(Decimal("-45.50")) == Decimal("45.50")


def test_custom_category_table(temp_db, sample_account, sample_property, ingestion_service, make_record):
    """Rules A, B and C together promote a rent payment into a custom category."""
    table = {TransactionType.INCOME: ("rent_received",), TransactionType.EXPENSE: ()}
    service = ReprocessingService(temp_db, category_table=table)
    ingestion_service.ingest([make_record("tx_1", 1500, "Rent Payment")], sample_account.id)
    temp_db.create_matching_rule(name="A", conditions=contains("rent"), priority=0, property_id=sample_property.id)
    temp_db.create_matching_rule(
        name="B",
        conditions=json.dumps({"rules": [{"field": "amount", "matchType": "greaterThan", "value": 0}]}),
        priority=1,
        type="INCOME",
    )
    temp_db.create_matching_rule(name="C", conditions=contains("payment"), priority=2, category="rent_received")

    result = service.reprocess()

    assert result["approved"] == 1
    ledger = temp_db.list_ledger_transactions()[0]
    assert ledger.property_id == sample_property.id
    assert ledger.type == TransactionType.INCOME
    assert ledger.category == "rent_received"


def test_auto_reviewer_recorded(temp_db, sample_property, reprocessing_service, ingested):
    """Promoting a single pending transaction removes it from the pool."""
    assert AUTO_REVIEWER == "rule-engine"
    temp_db.create_matching_rule(
        name="Rent",
        conditions=contains("rent"),
        priority=0,
        property_id=sample_property.id,
        type="INCOME",
        category="Rent",
    )
    pending_id = pending_by_description(temp_db, "Rent").id

    assert reprocessing_service.process_pending(pending_id) is True
    assert temp_db.get_pending_transaction(pending_id) is None
