# rollmap/kernel/iterator.py
from typing import TYPE_CHECKING

from ..types import GridPosition
from ..errors import WindowMovedError

if TYPE_CHECKING:
    from .grid import Cell, GridLayer


class GridIterator:
    """
    Single-pass, row-major cursor over a rectangle of a GridLayer.

    The requested [low, high] rectangle (inclusive) is clipped per axis to the
    window [offset, offset + extent] at construction. The cursor starts at the
    clipped low corner, so exactly the cells of the intersection are visited,
    each once: y ascending outer, x ascending inner. An empty intersection
    yields nothing.

    Yields Cell handles. Re-anchoring the grid while the iterator is live makes
    the next step raise WindowMovedError.
    """

    def __init__(self, grid: "GridLayer", low: GridPosition, high: GridPosition):
        wl = grid.window_low
        wh = grid.window_high
        self._grid = grid
        self._generation = grid.generation
        self.low = GridPosition(max(low.x, wl.x), max(low.y, wl.y))
        self.high = GridPosition(min(high.x, wh.x), min(high.y, wh.y))
        self.x = self.low.x
        self.y = self.low.y
        if self.low.x > self.high.x:
            # No column survives clipping: start exhausted
            self.y = self.high.y + 1

    def __iter__(self) -> "GridIterator":
        return self

    def __next__(self) -> "Cell":
        self._grid._check_alive()
        if self.y > self.high.y:
            raise StopIteration
        if self._grid.generation != self._generation:
            raise WindowMovedError("grid window moved during iteration")

        cell = self._grid._cell(GridPosition(self.x, self.y))

        if self.x >= self.high.x:
            self.x = self.low.x
            self.y += 1
        else:
            self.x += 1

        return cell

    def __length_hint__(self) -> int:
        if self.y > self.high.y:
            return 0
        row = self.high.x - self.low.x + 1
        return (self.high.y - self.y) * row + (self.high.x - self.x + 1)
