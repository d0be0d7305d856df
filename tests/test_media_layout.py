"""Unit tests for the post media grid arrangement."""
from __future__ import annotations

import pytest

from kinship.services.media_layout import (
    GRID_2X2,
    ONE_LARGE_TWO_STACKED,
    PAIR,
    SINGLE,
    TWO_ROWS,
    select_media_grid,
)


def _urls(count: int) -> list[str]:
    return [f"https://cdn.example.test/{index}.jpg" for index in range(count)]


def test_no_media_means_no_grid() -> None:
    assert select_media_grid([]) is None
    assert select_media_grid(None) is None
    assert select_media_grid(["", "   "]) is None


@pytest.mark.parametrize(
    ("count", "layout", "rows"),
    [(1, SINGLE, 1), (2, PAIR, 1), (3, ONE_LARGE_TWO_STACKED, 2), (4, GRID_2X2, 2), (5, TWO_ROWS, 2)],
)
def test_layout_depends_only_on_count(count: int, layout: str, rows: int) -> None:
    grid = select_media_grid(_urls(count))
    assert grid is not None
    assert grid.layout == layout
    assert grid.rows == rows
    assert len(grid.cells) == count
    assert grid.hidden_count == 0
    assert all(cell.overlay is None for cell in grid.cells)


def test_three_items_put_the_first_in_a_tall_cell() -> None:
    grid = select_media_grid(_urls(3))
    assert grid is not None
    first, second, third = grid.cells
    assert (first.row, first.column, first.row_span) == (0, 0, 2)
    assert (second.row, second.column) == (0, 1)
    assert (third.row, third.column) == (1, 1)


def test_overflow_shows_five_and_counts_the_rest() -> None:
    urls = _urls(7)
    grid = select_media_grid(urls)
    assert grid is not None
    assert grid.layout == TWO_ROWS
    assert [cell.url for cell in grid.cells] == urls[:5]
    assert grid.hidden_count == 2
    assert grid.cells[-1].overlay == "+2"
    assert all(cell.overlay is None for cell in grid.cells[:-1])
    top, bottom = grid.cells[:2], grid.cells[2:]
    assert all(cell.row == 0 and cell.column_span == 3 for cell in top)
    assert all(cell.row == 1 and cell.column_span == 2 for cell in bottom)
