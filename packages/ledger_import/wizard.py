"""Categorization wizard as an explicit state machine.

The wizard walks the *unique* descriptions left uncategorized after bulk rule
matching and lets the operator assign, create or skip a category for each.
It holds no I/O: :func:`transition` maps ``(state, event)`` to
``(new_state, effects)`` and the caller executes the effects (apply a
category to the batch, persist a learned rule, persist a new category).

Phases::

    COLLECTING -> PICKING <-> CREATING
                     |           |
                     +--> DONE <-+

``new_wizard`` returns a ``COLLECTING`` state; the ``Collect`` event derives
the pending descriptions and moves to ``PICKING``, or straight to ``DONE``
when nothing is left to categorize. ``start_wizard`` does both.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import StrEnum

from .categories import normalize_name, validate_name
from .categorize import suggest_rule
from .models import Category, Transaction, find_category_by_name


class Phase(StrEnum):
    COLLECTING = "collecting"
    PICKING = "picking"
    CREATING = "creating"
    DONE = "done"


class InvalidTransition(ValueError):
    """An event that the wizard's current phase does not accept."""


# ----------------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Collect:
    """Derive the pending descriptions from a post-categorization batch."""

    transactions: tuple[Transaction, ...]


@dataclass(frozen=True, slots=True)
class MoveSelection:
    delta: int


@dataclass(frozen=True, slots=True)
class AssignSelected:
    pass


@dataclass(frozen=True, slots=True)
class AssignCategory:
    category_id: int


@dataclass(frozen=True, slots=True)
class StartCreate:
    initial: str = ""


@dataclass(frozen=True, slots=True)
class EditName:
    text: str


@dataclass(frozen=True, slots=True)
class SubmitNewCategory:
    pass


@dataclass(frozen=True, slots=True)
class CancelCreate:
    pass


@dataclass(frozen=True, slots=True)
class CategoryCreated:
    """Storage confirmed the category requested by ``PersistCategory``."""

    category: Category


@dataclass(frozen=True, slots=True)
class SkipOne:
    pass


@dataclass(frozen=True, slots=True)
class SkipAll:
    pass


@dataclass(frozen=True, slots=True)
class Abandon:
    pass


type WizardEvent = (
    Collect
    | MoveSelection
    | AssignSelected
    | AssignCategory
    | StartCreate
    | EditName
    | SubmitNewCategory
    | CancelCreate
    | CategoryCreated
    | SkipOne
    | SkipAll
    | Abandon
)


# ----------------------------------------------------------------------------
# Effects
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ApplyCategory:
    description: str
    category_id: int


@dataclass(frozen=True, slots=True)
class PersistRule:
    pattern: str
    category_id: int


@dataclass(frozen=True, slots=True)
class PersistCategory:
    name: str


type WizardEffect = ApplyCategory | PersistRule | PersistCategory


# ----------------------------------------------------------------------------
# State
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PendingDescription:
    description: str
    count: int


@dataclass(frozen=True, slots=True)
class WizardState:
    phase: Phase
    pending: tuple[PendingDescription, ...]
    categories: tuple[Category, ...]
    cursor: int = 0
    selection: int = 0
    new_name: str = ""
    awaiting_category: str | None = None
    error: str | None = None
    skipped: tuple[str, ...] = ()
    assigned: tuple[tuple[str, int], ...] = ()
    abandoned: bool = False
    allow_create: bool = True

    @property
    def current(self) -> PendingDescription | None:
        if self.phase in (Phase.PICKING, Phase.CREATING) and self.cursor < len(self.pending):
            return self.pending[self.cursor]
        return None

    @property
    def selected_category(self) -> Category | None:
        if not self.categories:
            return None
        return self.categories[self.selection]

    @property
    def remaining(self) -> int:
        return max(0, len(self.pending) - self.cursor)

    @property
    def suggested_pattern(self) -> str | None:
        cur = self.current
        return suggest_rule(cur.description) if cur is not None else None


# ----------------------------------------------------------------------------
# Collecting
# ----------------------------------------------------------------------------


def collect_uncategorized(transactions: Iterable[Transaction]) -> list[PendingDescription]:
    """Unique uncategorized descriptions with their counts, in first-seen order."""

    counts: dict[str, int] = {}
    for tx in transactions:
        if tx.category_id is None:
            counts[tx.original_description] = counts.get(tx.original_description, 0) + 1
    return [PendingDescription(d, n) for d, n in counts.items()]


def new_wizard(categories: Iterable[Category], *, allow_create: bool = True) -> WizardState:
    return WizardState(
        phase=Phase.COLLECTING,
        pending=(),
        categories=tuple(categories),
        allow_create=allow_create,
    )


def start_wizard(
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
    *,
    allow_create: bool = True,
) -> WizardState:
    """Build the wizard state for a post-categorization batch."""

    state, _ = transition(
        new_wizard(categories, allow_create=allow_create), Collect(tuple(transactions))
    )
    return state


def apply_category(
    transactions: Iterable[Transaction],
    description: str,
    category_id: int,
) -> int:
    """Set ``category_id`` on every uncategorized exact-description match."""

    applied = 0
    for tx in transactions:
        if tx.category_id is None and tx.original_description == description:
            tx.category_id = category_id
            applied += 1
    return applied


# ----------------------------------------------------------------------------
# Transitions
# ----------------------------------------------------------------------------


def _advance(state: WizardState, **changes) -> WizardState:
    nxt = state.cursor + 1
    phase = Phase.DONE if nxt >= len(state.pending) else Phase.PICKING
    return replace(
        state,
        phase=phase,
        cursor=nxt,
        new_name="",
        awaiting_category=None,
        error=None,
        **changes,
    )


def _assign(state: WizardState, category: Category) -> tuple[WizardState, list[WizardEffect]]:
    cur = state.current
    if cur is None:
        raise InvalidTransition("No description is being reviewed")
    effects: list[WizardEffect] = [
        ApplyCategory(cur.description, category.id),
        PersistRule(suggest_rule(cur.description), category.id),
    ]
    return _advance(state, assigned=(*state.assigned, (cur.description, category.id))), effects


def _require(state: WizardState, *phases: Phase, event: object) -> None:
    if state.phase not in phases:
        raise InvalidTransition(
            f"{type(event).__name__} is not valid while the wizard is {state.phase.value}"
        )


def transition(
    state: WizardState, event: WizardEvent
) -> tuple[WizardState, list[WizardEffect]]:
    """Apply ``event`` to ``state``; returns the new state and effects to run."""

    match event:
        case Collect(transactions=transactions):
            _require(state, Phase.COLLECTING, event=event)
            pending = tuple(collect_uncategorized(transactions))
            return (
                replace(state, phase=Phase.PICKING if pending else Phase.DONE, pending=pending),
                [],
            )

        case MoveSelection(delta=delta):
            _require(state, Phase.PICKING, event=event)
            if not state.categories:
                return state, []
            sel = min(max(state.selection + delta, 0), len(state.categories) - 1)
            return replace(state, selection=sel, error=None), []

        case AssignSelected():
            _require(state, Phase.PICKING, event=event)
            category = state.selected_category
            if category is None:
                raise InvalidTransition("No categories to choose from")
            return _assign(state, category)

        case AssignCategory(category_id=category_id):
            _require(state, Phase.PICKING, event=event)
            category = next((c for c in state.categories if c.id == category_id), None)
            if category is None:
                raise InvalidTransition(f"Unknown category id: {category_id}")
            return _assign(state, category)

        case StartCreate(initial=initial):
            _require(state, Phase.PICKING, event=event)
            if not state.allow_create:
                raise InvalidTransition("Category creation is disabled")
            return replace(state, phase=Phase.CREATING, new_name=initial, error=None), []

        case EditName(text=text):
            _require(state, Phase.CREATING, event=event)
            if state.awaiting_category is not None:
                raise InvalidTransition("A new category is already being saved")
            return replace(state, new_name=text, error=None), []

        case SubmitNewCategory():
            _require(state, Phase.CREATING, event=event)
            if state.awaiting_category is not None:
                raise InvalidTransition("A new category is already being saved")
            name = normalize_name(state.new_name)
            check = validate_name(name)
            if not check.ok:
                return replace(state, error=check.reason), []
            existing = find_category_by_name(state.categories, name)
            if existing is not None:
                return _assign(state, existing)
            return replace(state, awaiting_category=name, error=None), [PersistCategory(name)]

        case CategoryCreated(category=category):
            _require(state, Phase.CREATING, event=event)
            if state.awaiting_category is None:
                raise InvalidTransition("No new category was requested")
            categories = state.categories
            if all(c.id != category.id for c in categories):
                categories = (*categories, category)
            return _assign(replace(state, categories=categories), category)

        case CancelCreate():
            _require(state, Phase.CREATING, event=event)
            return (
                replace(state, phase=Phase.PICKING, new_name="", awaiting_category=None, error=None),
                [],
            )

        case SkipOne():
            _require(state, Phase.PICKING, event=event)
            cur = state.current
            if cur is None:
                raise InvalidTransition("No description is being reviewed")
            return _advance(state, skipped=(*state.skipped, cur.description)), []

        case SkipAll():
            _require(state, Phase.PICKING, Phase.CREATING, event=event)
            rest = tuple(p.description for p in state.pending[state.cursor :])
            return (
                replace(
                    state,
                    phase=Phase.DONE,
                    cursor=len(state.pending),
                    new_name="",
                    awaiting_category=None,
                    error=None,
                    skipped=(*state.skipped, *rest),
                ),
                [],
            )

        case Abandon():
            _require(state, Phase.PICKING, Phase.CREATING, event=event)
            return (
                replace(
                    state,
                    phase=Phase.DONE,
                    new_name="",
                    awaiting_category=None,
                    error=None,
                    abandoned=True,
                ),
                [],
            )

    raise InvalidTransition(f"Unsupported event: {event!r}")


__all__ = [
    "Abandon",
    "ApplyCategory",
    "AssignCategory",
    "AssignSelected",
    "CancelCreate",
    "CategoryCreated",
    "Collect",
    "EditName",
    "InvalidTransition",
    "MoveSelection",
    "PendingDescription",
    "PersistCategory",
    "PersistRule",
    "Phase",
    "SkipAll",
    "SkipOne",
    "StartCreate",
    "SubmitNewCategory",
    "WizardEffect",
    "WizardEvent",
    "WizardState",
    "apply_category",
    "collect_uncategorized",
    "new_wizard",
    "start_wizard",
    "transition",
]
