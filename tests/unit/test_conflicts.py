from datetime import date
from decimal import Decimal

import pytest

from cashbook.models.ledger import Direction, LedgerRemoval
from cashbook.schemas.conflict import ConflictPolicy
from cashbook.schemas.ledger import LedgerEntryCreate
from cashbook.services.conflict_detector import ConflictDetector
from cashbook.services.conflict_resolver import ConflictResolver


def add(store, reference_id, reference_type, description, amount="500.00", day=date(2024, 1, 10),
        direction=Direction.expense):
    return store.append(LedgerEntryCreate(
        date=day,
        direction=direction,
        amount=Decimal(amount),
        description=description,
        reference_id=reference_id,
        reference_type=reference_type,
    ))


@pytest.fixture
def detector(store):
    return ConflictDetector(store)


@pytest.fixture
def resolver(store, detector, storage):
    return ConflictResolver(store, detector, storage)


def test_same_amount_and_similar_description_is_a_conflict(store, detector):
    add(store, "CSH-1", "manual", "[الصندوق] إيجار يناير", day=date(2024, 1, 10))
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير", day=date(2024, 1, 11))

    conflicts = detector.find_conflicts()

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.type == "potential_duplicate"
    assert conflict.manual_reference_id == "CSH-1"
    assert [m.reference_id for m in conflict.matches] == ["EXP-1"]
    assert conflict.matches[0].reference_type == "expense_system"
    assert conflict.suggestions


def test_same_amount_and_same_date_is_a_conflict(store, detector):
    add(store, "CSH-1", "manual", "[الصندوق] paid the landlord")
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير")

    assert len(detector.find_conflicts()) == 1


def test_amount_alone_never_matches(store, detector):
    add(store, "CSH-1", "manual", "[الصندوق] stationery", day=date(2024, 1, 1))
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير", day=date(2024, 1, 11))

    assert detector.find_conflicts() == []


def test_amounts_one_cent_apart_do_not_match(store, detector):
    add(store, "CSH-1", "manual", "[الصندوق] إيجار يناير", amount="500.00")
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير", amount="500.01")

    assert detector.find_conflicts() == []


def test_income_entries_are_not_compared(store, detector):
    add(store, "CSH-1", "manual", "[الصندوق] counter sale", direction=Direction.income)
    add(store, "INV-1", "sales_system", "[المبيعات] counter sale", direction=Direction.income)

    assert detector.find_conflicts() == []


def test_detection_does_not_modify_the_ledger(store, detector):
    add(store, "CSH-1", "manual", "[الصندوق] إيجار يناير")
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير")

    detector.find_conflicts()

    assert len(store.list_all()) == 2


def test_has_manual_match(store, detector):
    add(store, "CSH-1", "manual", "[الصندوق] إيجار يناير")
    draft = LedgerEntryCreate(
        date=date(2024, 1, 10), direction=Direction.expense, amount=Decimal("500.00"),
        description="[نظام المصروفات] إيجار يناير", reference_id="EXP-1", reference_type="expense_system",
    )

    assert detector.has_manual_match(draft) is True
    assert detector.has_manual_match(draft.model_copy(update={"amount": Decimal("20.00")})) is False
    assert detector.has_manual_match(draft.model_copy(update={"reference_type": "manual"})) is False


def test_keep_system_removes_manual_duplicates(store, resolver, storage, db):
    storage.set("cash_register", [{"id": "CSH-1", "amount": "500.00"}, {"id": "CSH-2", "amount": "5.00"}])
    add(store, "CSH-1", "manual", "[الصندوق] إيجار يناير")
    add(store, "CSH-2", "manual", "[الصندوق] tea", amount="5.00", day=date(2024, 1, 3))
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير")

    assert resolver.resolve(ConflictPolicy.keep_system) is True

    assert store.get_by_provenance("CSH-1", "manual") is None
    assert store.get_by_provenance("CSH-2", "manual") is not None
    assert store.get_by_provenance("EXP-1", "expense_system") is not None
    assert db.query(LedgerRemoval).one().reason == "conflict_keep_system"
    assert [r["id"] for r in storage.get_collection("cash_register")] == ["CSH-2"]
    retired = storage.get_collection("deleted_cash_register")
    assert [r["id"] for r in retired] == ["CSH-1"]
    assert retired[0]["deleted_reason"] == "conflict_keep_system"


def test_keep_system_twice_equals_once(store, resolver):
    add(store, "CSH-1", "manual", "[الصندوق] إيجار يناير")
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير")

    assert resolver.resolve(ConflictPolicy.keep_system) is True
    after_first = sorted(e.id for e in store.list_all())
    assert resolver.resolve(ConflictPolicy.keep_system) is True

    assert sorted(e.id for e in store.list_all()) == after_first


@pytest.mark.parametrize("policy", [ConflictPolicy.merge, ConflictPolicy.keep_manual])
def test_non_destructive_policies_delete_nothing(store, resolver, policy):
    add(store, "CSH-1", "manual", "[الصندوق] إيجار يناير")
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير")

    assert resolver.resolve(policy) is True

    assert len(store.list_all()) == 2
    assert resolver.current_policy() == policy


def test_policy_defaults_and_persists(resolver, storage):
    assert resolver.current_policy() == ConflictPolicy.merge

    resolver.resolve(ConflictPolicy.keep_manual)

    assert storage.get("conflict_policy") == "keep_manual"


def test_unknown_stored_policy_falls_back_to_default(resolver, storage):
    storage.set("conflict_policy", "keep_everything")

    assert resolver.current_policy() == ConflictPolicy.merge


def test_failed_removal_rolls_back_and_returns_false(store, resolver, monkeypatch):
    from sqlalchemy.exc import SQLAlchemyError

    add(store, "CSH-1", "manual", "[الصندوق] إيجار يناير")
    add(store, "EXP-1", "expense_system", "[نظام المصروفات] إيجار يناير")

    def broken_commit():
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(store.db, "commit", broken_commit)

    assert resolver.resolve(ConflictPolicy.keep_system, remember=False) is False
    monkeypatch.undo()
    assert store.get_by_provenance("CSH-1", "manual") is not None
