"""Sheet ("folha") numbering for detail records.

Numbering is a fold over the sorted records. Each step looks only at the
previous state and the facility+competency context of the next record:

* first record: sheet 1, sequence 1;
* context change: numbering restarts at sheet 1 and the finished context's
  sheet count is added to the running total;
* sheet full (``LINES_PER_SHEET`` records): next sheet, sequence 1;
* otherwise: same sheet, next sequence.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from dataclasses import dataclass

LINES_PER_SHEET = 20


@dataclass(frozen=True)
class PaginationState:
    sheet: int = 0
    sequence: int = 0
    max_sheet_in_context: int = 0
    total_sheets: int = 0
    context: Hashable | None = None

    @property
    def started(self) -> bool:
        return self.context is not None

    @property
    def sheet_full(self) -> bool:
        return self.sequence >= LINES_PER_SHEET


def advance(state: PaginationState, context: Hashable) -> PaginationState:
    if not state.started:
        return PaginationState(
            sheet=1,
            sequence=1,
            max_sheet_in_context=1,
            total_sheets=state.total_sheets,
            context=context,
        )

    if context != state.context:
        return PaginationState(
            sheet=1,
            sequence=1,
            max_sheet_in_context=1,
            total_sheets=state.total_sheets + state.max_sheet_in_context,
            context=context,
        )

    if state.sheet_full:
        next_sheet = state.sheet + 1
        return PaginationState(
            sheet=next_sheet,
            sequence=1,
            max_sheet_in_context=max(state.max_sheet_in_context, next_sheet),
            total_sheets=state.total_sheets,
            context=context,
        )

    return PaginationState(
        sheet=state.sheet,
        sequence=state.sequence + 1,
        max_sheet_in_context=state.max_sheet_in_context,
        total_sheets=state.total_sheets,
        context=context,
    )


def finish(state: PaginationState) -> int:
    """Total sheets once the last record has been placed."""

    return state.total_sheets + state.max_sheet_in_context


def paginate(contexts: Iterable[Hashable]) -> tuple[list[tuple[int, int]], int]:
    """Return ``(sheet, sequence)`` per context in order, and the total sheet count."""

    state = PaginationState()
    positions: list[tuple[int, int]] = []
    for context in contexts:
        state = advance(state, context)
        positions.append((state.sheet, state.sequence))
    return positions, finish(state)
