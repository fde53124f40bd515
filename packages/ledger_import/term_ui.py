"""Tiny terminal UI helpers (prompt_toolkit-based).

Small, focused prompts for the categorization wizard, kept apart from the
wizard's state machine and driver so they can be tested in isolation with a
pipe input.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .categories import validate_name as _validate_name

CREATE_SENTINEL = "+ Create new category..."
SKIP_SENTINEL = "- Skip this description"
SKIP_ALL_SENTINEL = "- Skip all remaining"

_CREATE_HINT_PREFIX = "  [Create "
_STYLE = Style.from_dict({"auto-suggestion": "fg:#888888"})


class CreateCategoryRequest:
    """Return type for the creation path: carries the typed candidate name.

    The wizard driver opens a mini-prompt to confirm/adjust and then persists.
    """

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CreateCategoryRequest) and other.name == self.name

    def __hash__(self) -> int:
        return hash(("CreateCategoryRequest", self.name))

    def __repr__(self) -> str:  # pragma: no cover - trivial repr
        return f"CreateCategoryRequest(name={self.name!r})"


type Selection = str | CreateCategoryRequest | None


def _session_for(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    """A fresh session with ``kb``, reusing the I/O of ``session`` when given."""

    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def _to_line_start(b) -> None:
    b.cursor_position += b.document.get_start_of_line_position()


def _to_line_end(b) -> None:
    b.cursor_position += b.document.get_end_of_line_position()


class _SuggestOrCreate(AutoSuggest):
    """Grey inline completion for known names; a creation hint otherwise."""

    def __init__(self, vocab: Sequence[str], allow_create: bool) -> None:
        self._vocab = list(vocab)
        self._allow_create = allow_create

    def get_suggestion(self, buffer, document):
        text = document.text
        if not text:
            return None
        lower = text.lower()
        if any(w.lower() == lower for w in self._vocab):
            return None
        for w in self._vocab:
            if w.lower().startswith(lower):
                remainder = w[len(text) :]
                return Suggestion(remainder) if remainder else None
        if self._allow_create:
            return Suggestion(f"{_CREATE_HINT_PREFIX}'{text}'?]")
        return None


def select_category_or_create(
    categories: Sequence[str] | Iterable[str],
    *,
    default: str = "",
    message: str = "Category (Enter on empty skips • Esc to stop): ",
    session: PromptSession | None = None,
    allow_create: bool = True,
) -> Selection:
    """Prompt for a category for one description.

    Returns one of:

    - an existing category name (matched case-insensitively, returned in its
      canonical spelling);
    - ``SKIP_SENTINEL`` or ``SKIP_ALL_SENTINEL`` (an empty answer skips);
    - a ``CreateCategoryRequest`` when creation is allowed and the operator
      typed an unknown name or picked the "+ Create new category..." option;
    - ``None`` when the operator pressed Esc to stop the wizard.
    """

    names = list(categories)
    canonical = {n.lower(): n for n in names}
    words = [*names, SKIP_SENTINEL, SKIP_ALL_SENTINEL]
    if allow_create:
        words.append(CREATE_SENTINEL)
    options = {w.lower(): w for w in words}

    completer = WordCompleter(words, ignore_case=True, match_middle=True, sentence=False)
    auto_suggest = _SuggestOrCreate(names, allow_create)

    kb = KeyBindings()
    menu = {"opened": False, "index": 0}
    # First printable keystroke replaces a pre-filled default wholesale.
    replace_mode = bool(default)

    def _best_prefix_match(text: str) -> str | None:
        if not text:
            return None
        lower = text.lower()
        for w in words:
            wl = w.lower()
            if wl == lower:
                return None
            if wl.startswith(lower):
                return w
        return None

    def _open_or_cycle_menu(b) -> None:
        if b.complete_state is None:
            b.start_completion(select_first=True)
            menu["index"] = 0
        else:
            b.complete_next()
            menu["index"] += 1
        menu["opened"] = True

    def _visible_suggestion(b) -> str | None:
        s = getattr(b, "suggestion", None)
        text = getattr(s, "text", None)
        if text and text.startswith(_CREATE_HINT_PREFIX):
            return None
        if not text:
            cand = _best_prefix_match(b.document.text)
            if cand:
                text = cand[len(b.document.text) :]
        return text or None

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    @kb.add("down", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        nonlocal replace_mode
        replace_mode = False
        _open_or_cycle_menu(event.app.current_buffer)

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover
        nonlocal replace_mode
        replace_mode = False
        b = event.app.current_buffer
        suggestion = _visible_suggestion(b)
        if suggestion:
            b.insert_text(suggestion)
        else:
            _open_or_cycle_menu(b)

    @kb.add("enter", eager=True)
    def _(event) -> None:  # pragma: no cover
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        else:
            suggestion = _visible_suggestion(b)
            if suggestion:
                b.insert_text(suggestion)
            elif menu["opened"] and not b.document.text:
                b.insert_text(words[max(0, min(menu["index"], len(words) - 1))])
        b.validate_and_handle()

    @kb.add("backspace", eager=True)
    def _(event) -> None:  # pragma: no cover
        nonlocal replace_mode
        event.app.current_buffer.delete_before_cursor(1)
        replace_mode = False

    # Navigation/editing keys end replace mode and keep their usual action.
    _nav_actions = {
        "left": lambda b: b.cursor_left(1),
        "right": lambda b: b.cursor_right(1),
        "home": lambda b: _to_line_start(b),
        "end": lambda b: _to_line_end(b),
        "delete": lambda b: b.delete(1),
        "c-a": lambda b: _to_line_start(b),
        "c-e": lambda b: _to_line_end(b),
    }
    for key, action in _nav_actions.items():

        @kb.add(key, eager=True)
        def _(event, _action=action) -> None:  # pragma: no cover
            nonlocal replace_mode
            replace_mode = False
            _action(event.app.current_buffer)

    @kb.add(Keys.Any, filter=Condition(lambda: replace_mode), eager=True)
    def _(event) -> None:  # pragma: no cover
        nonlocal replace_mode
        data = getattr(event, "data", "") or ""
        if not data or not data.isprintable():
            return
        b = event.app.current_buffer
        if data != " ":
            b.delete_before_cursor(len(b.document.text_before_cursor))
            b.delete(len(b.document.text_after_cursor))
        b.insert_text(data)
        replace_mode = False

    sess = _session_for(session, kb)
    prompt_kwargs: dict[str, Any] = {
        "message": message,
        "completer": completer,
        "default": default,
        "key_bindings": kb,
        "auto_suggest": auto_suggest,
        "style": _STYLE,
    }
    result = sess.prompt(**prompt_kwargs)
    if result is None:
        return None

    answer = result.strip() or default.strip()
    if not answer:
        return SKIP_SENTINEL
    lowered = answer.lower()
    if lowered in canonical:
        return canonical[lowered]
    if lowered in options:
        picked = options[lowered]
        if picked == CREATE_SENTINEL:
            return CreateCategoryRequest("")
        return picked
    if allow_create:
        return CreateCategoryRequest(answer)
    return answer


def prompt_new_category_name(
    *,
    initial: str = "",
    session: PromptSession | None = None,
    message: str = "New category name (Enter to save • Esc or Ctrl+C to cancel): ",
    error_prefix: str = "",
) -> str | None:
    """Collect a new category name with inline validation.

    Returns the saved name, or ``None`` when canceled via Esc or Ctrl+C.
    """

    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    @kb.add("c-c", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    class _V(Validator):
        def validate(self, document) -> None:
            v = _validate_name(document.text)
            if not v.ok:
                raise ValidationError(message=(error_prefix + (v.reason or "Invalid name")))

    return _session_for(session, kb).prompt(
        message,
        default=initial,
        validator=_V(),
        validate_while_typing=False,
        key_bindings=kb,
    )


__all__ = [
    "CREATE_SENTINEL",
    "SKIP_ALL_SENTINEL",
    "SKIP_SENTINEL",
    "CreateCategoryRequest",
    "Selection",
    "prompt_new_category_name",
    "select_category_or_create",
]
