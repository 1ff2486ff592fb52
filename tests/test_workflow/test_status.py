"""Tests for the 13-code status taxonomy."""

import pytest

from gatepass.workflow.errors import UnknownStatus
from gatepass.workflow.status import (
    RETURN_WINDOW,
    Category,
    Outcome,
    Stage,
    Status,
    approved_status,
    category,
    describe,
    is_terminal,
    label_of,
    next_stage,
    pending_status,
    rejected_status,
)


@pytest.mark.parametrize(
    "code, stage_name, outcome",
    [
        (1, "Executive", Outcome.PENDING),
        (2, "Executive", Outcome.APPROVED),
        (3, "Executive", Outcome.REJECTED),
        (4, "Verify", Outcome.PENDING),
        (6, "Verify", Outcome.REJECTED),
        (8, "Dispatch", Outcome.APPROVED),
        (10, "Receive", Outcome.PENDING),
        (11, "Receive", Outcome.APPROVED),
        (12, "Receive", Outcome.REJECTED),
        (13, "Executive", Outcome.CANCELED),
    ],
)
def test_label_of_matches_wire_codes(code, stage_name, outcome):
    assert label_of(code) == (stage_name, outcome)


def test_categories():
    assert category(1) is Category.PENDING
    assert category(5) is Category.APPROVED
    assert category(9) is Category.REJECTED
    assert category(13) is Category.TERMINAL


@pytest.mark.parametrize("code", [0, -1, 14, 99])
def test_unknown_codes_raise(code):
    with pytest.raises(UnknownStatus):
        label_of(code)
    with pytest.raises(UnknownStatus):
        category(code)


@pytest.mark.parametrize("code", [True, "1", 1.0, None])
def test_non_integer_codes_raise(code):
    with pytest.raises(UnknownStatus):
        describe(code)


def test_unknown_status_is_a_value_error():
    with pytest.raises(ValueError):
        describe(0)


def test_terminal_set():
    terminal = {code for code in range(1, 14) if is_terminal(code)}
    assert terminal == {3, 6, 9, 11, 12, 13}


def test_every_code_has_exactly_one_label():
    texts = [describe(code).text for code in Status]
    assert len(texts) == len(set(texts)) == 13
    assert describe(13).text == "Canceled"
    assert describe(7).text == "Dispatch Pending"


def test_stage_arithmetic():
    assert [pending_status(s) for s in Stage] == [1, 4, 7, 10]
    assert [approved_status(s) for s in Stage] == [2, 5, 8, 11]
    assert [rejected_status(s) for s in Stage] == [3, 6, 9, 12]
    assert next_stage(Stage.EXECUTIVE) is Stage.VERIFY
    assert next_stage(Stage.RECEIVE) is None


def test_return_window_is_receive_stage():
    assert RETURN_WINDOW == {Status.RECEIVE_PENDING, Status.RECEIVE_APPROVED}
