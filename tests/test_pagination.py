from __future__ import annotations

from bpa_export.pagination import LINES_PER_SHEET, PaginationState, advance, finish, paginate


def test_sheet_holds_twenty_lines() -> None:
    positions, total = paginate(["A"] * 25)

    assert positions[0] == (1, 1)
    assert positions[LINES_PER_SHEET - 1] == (1, 20)
    assert positions[LINES_PER_SHEET] == (2, 1)
    assert positions[-1] == (2, 5)
    assert total == 2


def test_context_change_restarts_numbering_and_accumulates_total() -> None:
    positions, total = paginate(["A"] * 45 + ["B"] * 3)

    assert positions[44] == (3, 5)
    assert positions[45:] == [(1, 1), (1, 2), (1, 3)]
    assert total == 4


def test_sheets_are_contiguous_per_context() -> None:
    contexts = ["A"] * 41 + ["B"] * 20 + ["C"]
    positions, total = paginate(contexts)

    sheets: dict[str, set[int]] = {}
    for context, (sheet, sequence) in zip(contexts, positions, strict=True):
        assert 1 <= sequence <= LINES_PER_SHEET
        sheets.setdefault(context, set()).add(sheet)

    for numbers in sheets.values():
        assert numbers == set(range(1, len(numbers) + 1))
    assert total == 3 + 1 + 1


def test_empty_input_has_no_sheets() -> None:
    assert paginate([]) == ([], 0)


def test_advance_is_a_pure_transition() -> None:
    start = PaginationState()
    first = advance(start, ("1234567", "202309"))

    assert start == PaginationState()
    assert (first.sheet, first.sequence, first.total_sheets) == (1, 1, 0)
    assert finish(first) == 1

    other = advance(first, ("7654321", "202309"))
    assert (other.sheet, other.sequence, other.total_sheets) == (1, 1, 1)
    assert finish(other) == 2
