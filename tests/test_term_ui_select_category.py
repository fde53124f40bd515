import contextlib

from ledger_import.persistence import DEFAULT_CATEGORIES
from ledger_import.term_ui import (
    SKIP_ALL_SENTINEL,
    SKIP_SENTINEL,
    CreateCategoryRequest,
    prompt_new_category_name,
    select_category_or_create,
)
from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

CATEGORIES = list(DEFAULT_CATEGORIES)


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_exact_category_enter_returns_exact_value():
    with pipe_session() as (pipe, sess):
        pipe.send_text("Coffee Shops\r")
        result = select_category_or_create(CATEGORIES, session=sess, allow_create=False)
        assert result == "Coffee Shops"


def test_name_is_matched_case_insensitively_and_returned_canonical():
    with pipe_session() as (pipe, sess):
        pipe.send_text("groceries\r")
        result = select_category_or_create(CATEGORIES, session=sess)
        assert result == "Groceries"


def test_inline_suggestion_tab_autocompletes_prefix():
    # Typing a strict prefix shows greyed suggestion; Tab completes it.
    with pipe_session() as (pipe, sess):
        pipe.send_text("Groc\t\r")
        result = select_category_or_create(CATEGORIES, session=sess, allow_create=False)
        assert result == "Groceries"


def test_inline_suggestion_enter_commits_prefix_completion():
    # When a suggestion is visible, Enter should apply it and accept.
    with pipe_session() as (pipe, sess):
        pipe.send_text("Restau\r")
        result = select_category_or_create(CATEGORIES, session=sess, allow_create=False)
        assert result == "Restaurants"


def test_empty_answer_skips_the_description():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        result = select_category_or_create(CATEGORIES, session=sess)
        assert result == SKIP_SENTINEL


def test_skip_all_option_can_be_typed():
    with pipe_session() as (pipe, sess):
        pipe.send_text(SKIP_ALL_SENTINEL + "\r")
        result = select_category_or_create(CATEGORIES, session=sess)
        assert result == SKIP_ALL_SENTINEL


def test_unknown_name_requests_creation_when_allowed():
    with pipe_session() as (pipe, sess):
        pipe.send_text("Zoo Tickets\r")
        result = select_category_or_create(CATEGORIES, session=sess, allow_create=True)
        assert result == CreateCategoryRequest("Zoo Tickets")


def test_unknown_name_is_returned_raw_when_creation_disabled():
    with pipe_session() as (pipe, sess):
        pipe.send_text("Zoo Tickets\r")
        result = select_category_or_create(CATEGORIES, session=sess, allow_create=False)
        assert result == "Zoo Tickets"


def test_prefilled_default_is_accepted_with_enter():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        result = select_category_or_create(
            CATEGORIES, default="Groceries", session=sess, allow_create=False
        )
        assert result == "Groceries"


def test_new_category_name_prompt_returns_entry():
    with pipe_session() as (pipe, sess):
        pipe.send_text("Pet Supplies\r")
        assert prompt_new_category_name(session=sess) == "Pet Supplies"


def test_new_category_name_prompt_keeps_initial_text():
    with pipe_session() as (pipe, sess):
        pipe.send_text(" Supplies\r")
        assert prompt_new_category_name(initial="Pet", session=sess) == "Pet Supplies"


def test_new_category_name_prompt_ctrl_c_cancels():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x03")
        assert prompt_new_category_name(initial="Pets", session=sess) is None
