"""Grid arrangement for the media attached to a post.

The arrangement depends only on how many items there are:

=====  ========================  ==============================================
count  layout                    cells
=====  ========================  ==============================================
0      (none)                    no grid
1      ``single``                one full-width cell
2      ``pair``                  two side by side
3      ``one-large-two-stacked`` one tall cell on the left, two stacked right
4      ``grid-2x2``              two rows of two
5+     ``two-rows``              two on top, three below; ``+K`` on the last
                                 visible cell when K = count - 5 > 0
=====  ========================  ==============================================
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

SINGLE = "single"
PAIR = "pair"
ONE_LARGE_TWO_STACKED = "one-large-two-stacked"
GRID_2X2 = "grid-2x2"
TWO_ROWS = "two-rows"

MAX_VISIBLE = 5


@dataclass(frozen=True, slots=True)
class MediaCell:
    url: str
    row: int
    column: int
    row_span: int = 1
    column_span: int = 1
    overlay: str | None = None


@dataclass(frozen=True, slots=True)
class MediaGrid:
    layout: str
    columns: int
    cells: tuple[MediaCell, ...]
    hidden_count: int = 0

    @property
    def rows(self) -> int:
        return max(cell.row + cell.row_span for cell in self.cells)


# (row, column, row_span, column_span) per visible item
_PLACEMENTS: dict[str, tuple[int, tuple[tuple[int, int, int, int], ...]]] = {
    SINGLE: (1, ((0, 0, 1, 1),)),
    PAIR: (2, ((0, 0, 1, 1), (0, 1, 1, 1))),
    ONE_LARGE_TWO_STACKED: (2, ((0, 0, 2, 1), (0, 1, 1, 1), (1, 1, 1, 1))),
    GRID_2X2: (2, ((0, 0, 1, 1), (0, 1, 1, 1), (1, 0, 1, 1), (1, 1, 1, 1))),
    # six columns so the top pair spans three each and the bottom trio two each
    TWO_ROWS: (6, ((0, 0, 1, 3), (0, 3, 1, 3), (1, 0, 1, 2), (1, 2, 1, 2), (1, 4, 1, 2))),
}

_LAYOUT_BY_COUNT = {1: SINGLE, 2: PAIR, 3: ONE_LARGE_TWO_STACKED, 4: GRID_2X2}


def select_media_grid(media_urls: Iterable[str | None] | None) -> MediaGrid | None:
    """Choose the grid for ``media_urls``; blank entries are ignored."""

    urls = [url.strip() for url in media_urls or () if url and url.strip()]
    if not urls:
        return None

    layout = _LAYOUT_BY_COUNT.get(len(urls), TWO_ROWS)
    columns, placements = _PLACEMENTS[layout]
    visible = urls[:MAX_VISIBLE]
    hidden = len(urls) - len(visible)

    cells = []
    for index, (url, (row, column, row_span, column_span)) in enumerate(zip(visible, placements)):
        overlay = f"+{hidden}" if hidden and index == len(visible) - 1 else None
        cells.append(MediaCell(url, row, column, row_span, column_span, overlay))
    return MediaGrid(layout=layout, columns=columns, cells=tuple(cells), hidden_count=hidden)


__all__ = [
    "SINGLE",
    "PAIR",
    "ONE_LARGE_TWO_STACKED",
    "GRID_2X2",
    "TWO_ROWS",
    "MediaCell",
    "MediaGrid",
    "select_media_grid",
]
