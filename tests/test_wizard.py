from __future__ import annotations

from decimal import Decimal

import pytest

from ledger_import.models import Category, Transaction
from ledger_import.wizard import (
    Abandon,
    ApplyCategory,
    AssignCategory,
    AssignSelected,
    CancelCreate,
    CategoryCreated,
    Collect,
    EditName,
    InvalidTransition,
    MoveSelection,
    PersistCategory,
    PersistRule,
    Phase,
    SkipAll,
    SkipOne,
    StartCreate,
    SubmitNewCategory,
    WizardState,
    apply_category,
    collect_uncategorized,
    new_wizard,
    start_wizard,
    transition,
)

CATS = (Category(1, "Coffee Shops"), Category(2, "Groceries"), Category(3, "Income"))


def _tx(desc: str, category_id: int | None = None) -> Transaction:
    return Transaction(
        account_id=1,
        date="2024-01-15",
        description=desc,
        original_description=desc,
        amount=Decimal("-1.00"),
        category_id=category_id,
    )


def _batch() -> list[Transaction]:
    return [
        _tx("STARBUCKS STORE 12345"),
        _tx("SAFEWAY #1234"),
        _tx("STARBUCKS STORE 12345"),
        _tx("PAYROLL", category_id=3),
        _tx("SAFEWAY #1234"),
        _tx("NETFLIX.COM"),
    ]


def test_collect_is_unique_in_first_seen_order_with_counts():
    pending = collect_uncategorized(_batch())
    assert [(p.description, p.count) for p in pending] == [
        ("STARBUCKS STORE 12345", 2),
        ("SAFEWAY #1234", 2),
        ("NETFLIX.COM", 1),
    ]


def test_nothing_to_categorize_starts_done():
    state = start_wizard([_tx("X", category_id=1)], CATS)
    assert state.phase is Phase.DONE
    assert state.current is None


def test_assign_emits_apply_and_rule_then_advances():
    state = start_wizard(_batch(), CATS)
    assert state.phase is Phase.PICKING
    assert state.suggested_pattern == "starbucks store"

    state, effects = transition(state, AssignCategory(1))
    assert effects == [
        ApplyCategory("STARBUCKS STORE 12345", 1),
        PersistRule("starbucks store", 1),
    ]
    assert state.cursor == 1
    assert state.current is not None and state.current.description == "SAFEWAY #1234"
    assert state.assigned == (("STARBUCKS STORE 12345", 1),)


def test_move_selection_is_clamped_and_assign_selected_uses_it():
    state = start_wizard(_batch(), CATS)
    state, _ = transition(state, MoveSelection(-5))
    assert state.selection == 0
    state, _ = transition(state, MoveSelection(10))
    assert state.selected_category == Category(3, "Income")
    state, effects = transition(state, AssignSelected())
    assert effects[0] == ApplyCategory("STARBUCKS STORE 12345", 3)


def test_every_description_is_visited_then_done():
    state = start_wizard(_batch(), CATS)
    state, _ = transition(state, AssignCategory(1))
    state, _ = transition(state, SkipOne())
    assert state.remaining == 1
    state, _ = transition(state, AssignCategory(2))
    assert state.phase is Phase.DONE
    assert state.skipped == ("SAFEWAY #1234",)
    assert [d for d, _ in state.assigned] == ["STARBUCKS STORE 12345", "NETFLIX.COM"]


def test_skip_all_marks_the_rest_skipped():
    state = start_wizard(_batch(), CATS)
    state, _ = transition(state, AssignCategory(1))
    state, effects = transition(state, SkipAll())
    assert effects == []
    assert state.phase is Phase.DONE
    assert state.skipped == ("SAFEWAY #1234", "NETFLIX.COM")


def test_abandon_keeps_prior_assignments():
    state = start_wizard(_batch(), CATS)
    state, _ = transition(state, AssignCategory(1))
    state, effects = transition(state, Abandon())
    assert effects == []
    assert state.phase is Phase.DONE
    assert state.abandoned
    assert state.assigned == (("STARBUCKS STORE 12345", 1),)


def test_create_flow_requests_persistence_then_assigns():
    state = start_wizard(_batch(), CATS)
    state, _ = transition(state, StartCreate("Cof"))
    assert state.phase is Phase.CREATING and state.new_name == "Cof"
    state, _ = transition(state, EditName("  Coffee   Beans "))
    state, effects = transition(state, SubmitNewCategory())
    assert effects == [PersistCategory("Coffee Beans")]
    assert state.awaiting_category == "Coffee Beans"

    with pytest.raises(InvalidTransition):
        transition(state, EditName("again"))

    state, effects = transition(state, CategoryCreated(Category(10, "Coffee Beans")))
    assert effects == [
        ApplyCategory("STARBUCKS STORE 12345", 10),
        PersistRule("starbucks store", 10),
    ]
    assert Category(10, "Coffee Beans") in state.categories
    assert state.phase is Phase.PICKING and state.cursor == 1


def test_create_with_existing_name_assigns_without_persisting():
    state = start_wizard(_batch(), CATS)
    state, _ = transition(state, StartCreate())
    state, _ = transition(state, EditName("groceries"))
    state, effects = transition(state, SubmitNewCategory())
    assert effects == [
        ApplyCategory("STARBUCKS STORE 12345", 2),
        PersistRule("starbucks store", 2),
    ]


def test_invalid_new_name_sets_error_and_stays_creating():
    state = start_wizard(_batch(), CATS)
    state, _ = transition(state, StartCreate())
    state, _ = transition(state, EditName("Bad!Name"))
    state, effects = transition(state, SubmitNewCategory())
    assert effects == []
    assert state.phase is Phase.CREATING
    assert state.error is not None
    state, _ = transition(state, CancelCreate())
    assert state.phase is Phase.PICKING and state.error is None and state.cursor == 0


def test_creation_disabled():
    state = start_wizard(_batch(), CATS, allow_create=False)
    with pytest.raises(InvalidTransition):
        transition(state, StartCreate())


@pytest.mark.parametrize(
    "event",
    [SubmitNewCategory(), EditName("x"), CancelCreate(), CategoryCreated(Category(9, "X"))],
)
def test_creation_events_rejected_while_picking(event):
    state = start_wizard(_batch(), CATS)
    with pytest.raises(InvalidTransition):
        transition(state, event)


def test_events_rejected_when_done():
    state = start_wizard([], CATS)
    for event in (AssignCategory(1), SkipOne(), SkipAll(), Abandon()):
        with pytest.raises(InvalidTransition):
            transition(state, event)


def test_unknown_category_id_rejected():
    state = start_wizard(_batch(), CATS)
    with pytest.raises(InvalidTransition):
        transition(state, AssignCategory(99))


def test_apply_category_only_touches_exact_uncategorized_matches():
    txs = _batch()
    txs.append(_tx("STARBUCKS STORE 12345", category_id=2))
    n = apply_category(txs, "STARBUCKS STORE 12345", 1)
    assert n == 2
    assert [t.category_id for t in txs if t.original_description.startswith("STARBUCKS")] == [
        1,
        1,
        2,
    ]


def test_new_wizard_collects_before_picking():
    state = new_wizard(CATS)
    assert state.phase is Phase.COLLECTING
    assert state.current is None
    for event in (AssignCategory(1), SkipOne(), StartCreate(), Abandon()):
        with pytest.raises(InvalidTransition):
            transition(state, event)

    state, effects = transition(state, Collect(tuple(_batch())))
    assert effects == []
    assert state.phase is Phase.PICKING
    assert [p.description for p in state.pending] == [
        "STARBUCKS STORE 12345",
        "SAFEWAY #1234",
        "NETFLIX.COM",
    ]
    with pytest.raises(InvalidTransition):
        transition(state, Collect(()))


def test_collect_empty_batch_is_done():
    state, _ = transition(new_wizard(CATS), Collect(()))
    assert state.phase is Phase.DONE
    assert state.pending == ()


def test_picking_without_a_current_description_is_rejected():
    state = WizardState(phase=Phase.PICKING, pending=(), categories=CATS)
    for event in (SkipOne(), AssignCategory(1)):
        with pytest.raises(InvalidTransition):
            transition(state, event)
