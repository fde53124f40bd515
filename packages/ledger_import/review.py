"""Interactive categorization wizard driver.

This module runs the pure state machine in :mod:`ledger_import.wizard` against
a terminal (or an injected selector in tests) and executes its effects:
categories are applied to the in-memory batch, learned rules and new
categories go to a :class:`~ledger_import.persistence.LedgerStore`.

Rule persistence is best effort: a failed save is logged and the wizard keeps
going, since the category is already applied to the batch being imported.
"""

from __future__ import annotations

import builtins
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .logging_setup import get_logger
from .models import Category, ImportRule, Transaction, find_category_by_name
from .persistence import LedgerStore
from .term_ui import (
    SKIP_ALL_SENTINEL,
    SKIP_SENTINEL,
    CreateCategoryRequest,
    Selection,
    prompt_new_category_name,
)
from .term_ui import (
    select_category_or_create as _select_category_or_create,
)
from .wizard import (
    Abandon,
    ApplyCategory,
    AssignCategory,
    CancelCreate,
    CategoryCreated,
    EditName,
    InvalidTransition,
    PersistCategory,
    PersistRule,
    Phase,
    SkipAll,
    SkipOne,
    StartCreate,
    SubmitNewCategory,
    WizardEffect,
    WizardEvent,
    WizardState,
    apply_category,
    start_wizard,
    transition,
)

logger = get_logger("ledger_import.review")

type Selector = Callable[[Sequence[str], str], Selection]
type NamePrompt = Callable[[str], str | None]


@dataclass(slots=True)
class WizardOutcome:
    """What a wizard session did to the batch and to storage."""

    assigned: dict[str, int] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    created_categories: list[Category] = field(default_factory=list)
    created_rules: list[ImportRule] = field(default_factory=list)
    failed_rules: list[str] = field(default_factory=list)
    applied: int = 0
    abandoned: bool = False


# ----------------------------------------------------------------------------
# Presentation helpers
# ----------------------------------------------------------------------------


def _render_current(state: WizardState, *, print_fn: Callable[..., None]) -> None:
    cur = state.current
    if cur is None:
        return
    position = state.cursor + 1
    total = len(state.pending)
    noun = "transaction" if cur.count == 1 else "transactions"
    print_fn(f"[{position}/{total}] {cur.description} ({cur.count} {noun})")
    print_fn(f"Suggested rule: contains '{state.suggested_pattern}'")


def _invoke_category_selector(
    *,
    selector: Selector | None,
    names: list[str],
    allow_create: bool,
) -> Selection:
    """Invoke either the injected selector or the interactive prompt."""

    if selector is not None:
        resp = selector(names, "")
        if resp is not None and not isinstance(resp, (str, CreateCategoryRequest)):
            raise TypeError(
                f"selector must return a string or CreateCategoryRequest; got {type(resp).__name__}"
            )
        return resp.strip() if isinstance(resp, str) else resp
    return _select_category_or_create(names, default="", allow_create=allow_create)


# ----------------------------------------------------------------------------
# Effect execution
# ----------------------------------------------------------------------------


def _run_effects(
    effects: Sequence[WizardEffect],
    *,
    transactions: Sequence[Transaction],
    store: LedgerStore,
    state: WizardState,
    outcome: WizardOutcome,
    print_fn: Callable[..., None],
) -> None:
    names = {c.id: c.name for c in state.categories}
    for effect in effects:
        match effect:
            case ApplyCategory(description=description, category_id=category_id):
                n = apply_category(transactions, description, category_id)
                outcome.applied += n
                outcome.assigned[description] = category_id
                print_fn(f"Applied '{names.get(category_id, category_id)}' to {n} transaction(s).")
            case PersistRule(pattern=pattern, category_id=category_id):
                try:
                    saved = store.add_import_rule(ImportRule.contains(pattern, category_id))
                except Exception as e:
                    logger.warning("Could not save rule %r: %s", pattern, e)
                    outcome.failed_rules.append(pattern)
                else:
                    outcome.created_rules.append(saved)
            case PersistCategory():
                # Persisted by the creation flow, which needs the new id.
                raise InvalidTransition("PersistCategory must be handled by the creation flow")


def _step(
    state: WizardState,
    event: WizardEvent,
    *,
    transactions: Sequence[Transaction],
    store: LedgerStore,
    outcome: WizardOutcome,
    print_fn: Callable[..., None],
) -> WizardState:
    new_state, effects = transition(state, event)
    _run_effects(
        effects,
        transactions=transactions,
        store=store,
        state=new_state,
        outcome=outcome,
        print_fn=print_fn,
    )
    return new_state


def _create_and_assign(
    state: WizardState,
    request: CreateCategoryRequest,
    *,
    name_prompt: NamePrompt,
    transactions: Sequence[Transaction],
    store: LedgerStore,
    outcome: WizardOutcome,
    print_fn: Callable[..., None],
) -> WizardState:
    """Creation sub-flow: name prompt, persist, then assign like a pick.

    Returns to picking (same description) when the operator cancels or the
    name is rejected.
    """

    state, _ = transition(state, StartCreate(initial=request.name))
    name = name_prompt(state.new_name)
    if name is None:
        state, _ = transition(state, CancelCreate())
        return state

    state, _ = transition(state, EditName(name))
    state, effects = transition(state, SubmitNewCategory())
    if state.error is not None:
        print_fn(state.error)
        state, _ = transition(state, CancelCreate())
        return state

    pending = [e for e in effects if isinstance(e, PersistCategory)]
    if not pending:
        # Name matched an existing category; already assigned.
        _run_effects(
            effects,
            transactions=transactions,
            store=store,
            state=state,
            outcome=outcome,
            print_fn=print_fn,
        )
        print_fn("Already exists; selected it.")
        return state

    try:
        category = store.create_category(pending[0].name)
    except ValueError as e:
        print_fn(str(e))
        state, _ = transition(state, CancelCreate())
        return state

    outcome.created_categories.append(category)
    print_fn(f"Created '{category.name}'. Selected.")
    return _step(
        state,
        CategoryCreated(category),
        transactions=transactions,
        store=store,
        outcome=outcome,
        print_fn=print_fn,
    )


# ----------------------------------------------------------------------------
# Orchestration
# ----------------------------------------------------------------------------


def run_categorization_wizard(
    transactions: Sequence[Transaction],
    store: LedgerStore,
    *,
    categories: Sequence[Category] | None = None,
    allow_create: bool = True,
    selector: Selector | None = None,
    name_prompt: NamePrompt | None = None,
    print_fn: Callable[..., None] = builtins.print,
) -> WizardOutcome:
    """Walk the unique uncategorized descriptions of ``transactions``.

    For each description the operator picks an existing category, creates a
    new one, skips it, skips everything left, or stops (Esc). A pick applies
    the category to every uncategorized transaction with exactly that
    ``original_description`` and saves a ``contains`` rule derived from it.

    Parameters
    ----------
    categories:
        Category snapshot to offer; loaded from ``store`` when ``None``.
    selector:
        Optional injection point for unit tests; receives
        ``(category_names, default)`` and returns a category name, a
        ``term_ui`` skip sentinel, a ``CreateCategoryRequest`` or ``None``
        (stop).
    name_prompt:
        Optional injection point for the new-category name prompt; receives
        the initial text and returns the name or ``None`` (cancel).
    """

    cats = list(categories) if categories is not None else list(store.load_categories())
    outcome = WizardOutcome()
    state = start_wizard(transactions, cats, allow_create=allow_create)
    if state.phase is Phase.DONE:
        print_fn("Nothing left to categorize.")
        return outcome

    if name_prompt is None:

        def name_prompt(initial: str) -> str | None:
            return prompt_new_category_name(initial=initial)

    print_fn(f"{len(state.pending)} unique description(s) need a category.")
    steps = {"transactions": transactions, "store": store, "outcome": outcome, "print_fn": print_fn}

    while state.phase is not Phase.DONE:
        _render_current(state, print_fn=print_fn)
        names = [c.name for c in state.categories]
        choice = _invoke_category_selector(
            selector=selector, names=names, allow_create=state.allow_create
        )

        if choice is None:
            state = _step(state, Abandon(), **steps)
        elif choice == SKIP_SENTINEL:
            state = _step(state, SkipOne(), **steps)
        elif choice == SKIP_ALL_SENTINEL:
            state = _step(state, SkipAll(), **steps)
        elif isinstance(choice, CreateCategoryRequest):
            if not state.allow_create:
                print_fn("Category creation is disabled.")
                continue
            state = _create_and_assign(state, choice, name_prompt=name_prompt, **steps)
        else:
            category = find_category_by_name(state.categories, choice)
            if category is None:
                print_fn("Invalid category. Enter one of: " + ", ".join(names))
                continue
            state = _step(state, AssignCategory(category.id), **steps)
        print_fn("")

    outcome.skipped = list(state.skipped)
    outcome.abandoned = state.abandoned
    return outcome


__all__ = ["NamePrompt", "Selector", "WizardOutcome", "run_categorization_wizard"]
