"""
Status taxonomy: integer status code -> (stage, outcome, category).

The 13 codes are a wire format shared with the store and every client, so
the numbers below must never be renumbered.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from .errors import InvalidRequest, UnknownStatus


class Stage(IntEnum):
    """Approval stages, valued by their position in the pipeline."""

    EXECUTIVE = 1
    VERIFY = 2
    DISPATCH = 3
    RECEIVE = 4

    @property
    def title(self) -> str:
        return self.name.capitalize()


class Outcome(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELED = "Canceled"


class Category(str, Enum):
    """Display category of a status code."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    TERMINAL = "Terminal"


class Status(IntEnum):
    EXECUTIVE_PENDING = 1
    EXECUTIVE_APPROVED = 2
    EXECUTIVE_REJECTED = 3
    VERIFY_PENDING = 4
    VERIFY_APPROVED = 5
    VERIFY_REJECTED = 6
    DISPATCH_PENDING = 7
    DISPATCH_APPROVED = 8
    DISPATCH_REJECTED = 9
    RECEIVE_PENDING = 10
    RECEIVE_APPROVED = 11
    RECEIVE_REJECTED = 12
    CANCELED = 13


@dataclass(frozen=True)
class StatusLabel:
    code: int
    stage: Stage
    outcome: Outcome
    category: Category

    @property
    def stage_name(self) -> str:
        return self.stage.title

    @property
    def text(self) -> str:
        if self.outcome is Outcome.CANCELED:
            return "Canceled"
        return f"{self.stage_name} {self.outcome.value}"


def _build_table() -> dict[int, StatusLabel]:
    table: dict[int, StatusLabel] = {}
    for stage in Stage:
        base = (stage.value - 1) * 3
        table[base + 1] = StatusLabel(base + 1, stage, Outcome.PENDING, Category.PENDING)
        table[base + 2] = StatusLabel(base + 2, stage, Outcome.APPROVED, Category.APPROVED)
        table[base + 3] = StatusLabel(base + 3, stage, Outcome.REJECTED, Category.REJECTED)
    # Canceled belongs to the Executive stage: it is only reachable from code 1.
    table[Status.CANCELED] = StatusLabel(int(Status.CANCELED), Stage.EXECUTIVE, Outcome.CANCELED, Category.TERMINAL)
    return table


_LABELS = _build_table()

TERMINAL_STATUSES: frozenset[int] = frozenset(
    {
        Status.EXECUTIVE_REJECTED,
        Status.VERIFY_REJECTED,
        Status.DISPATCH_REJECTED,
        Status.RECEIVE_REJECTED,
        Status.RECEIVE_APPROVED,
        Status.CANCELED,
    }
)

# Statuses at which returnable items may be handed back.
RETURN_WINDOW: frozenset[int] = frozenset({Status.RECEIVE_PENDING, Status.RECEIVE_APPROVED})


def describe(code: int) -> StatusLabel:
    """Return the full label for a status code; raise UnknownStatus otherwise."""
    # bool is an int subclass; True/False are never status codes.
    if isinstance(code, bool) or not isinstance(code, int):
        raise UnknownStatus(code)
    label = _LABELS.get(int(code))
    if label is None:
        raise UnknownStatus(code)
    return label


def label_of(code: int) -> tuple[str, Outcome]:
    label = describe(code)
    return label.stage_name, label.outcome


def category(code: int) -> Category:
    return describe(code).category


def is_terminal(code: int) -> bool:
    describe(code)
    return code in TERMINAL_STATUSES


def pending_status(stage: Stage) -> Status:
    return Status((stage.value - 1) * 3 + 1)


def approved_status(stage: Stage) -> Status:
    return Status((stage.value - 1) * 3 + 2)


def rejected_status(stage: Stage) -> Status:
    return Status((stage.value - 1) * 3 + 3)


def next_stage(stage: Stage) -> Stage | None:
    if stage is Stage.RECEIVE:
        return None
    return Stage(stage.value + 1)


def parse_stage(value: Stage | str) -> Stage:
    """Accept a Stage, its name or its title, case-insensitively."""
    if isinstance(value, Stage):
        return value
    try:
        return Stage[str(value).strip().upper()]
    except KeyError:
        raise InvalidRequest(f"Unknown stage: {value!r}") from None
