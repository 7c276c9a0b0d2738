"""
WO-03 Test Suite: Window Iterator
Focus: BUG-CATCHING (no fluff tests)

Critical bugs to catch:
1. Wrong traversal order (must be row-major: y outer, x inner)
2. Start cursor not clipped (cells outside the window visited)
3. Extra cell per row past the clipped high x
4. Empty intersections yielding cells
5. Iterating on after the window moved or the grid was freed
"""

import operator
import pytest
import numpy as np

from rollmap.types import GridPosition
from rollmap.kernel.grid import GridLayer
from rollmap.errors import LayerFreedError, WindowMovedError


@pytest.fixture
def g():
    """5 wide, 4 high: window x in [-2, 3], y in [-2, 2]"""
    return GridLayer(5, 4)


def _positions(it):
    return [(c.position.x, c.position.y) for c in it]


# ========== ORDER / COVERAGE ==========

def test_row_major_order(g):
    assert _positions(g.square_iterator((0, 0), (1, 1))) == [(0, 0), (1, 0), (0, 1), (1, 1)]


def test_single_cell(g):
    assert _positions(g.square_iterator((1, -1), (1, -1))) == [(1, -1)]


def test_clips_low_and_high(g):
    """CRITICAL: cursor starts at the clipped low corner"""
    got = _positions(g.square_iterator((-10, -10), (0, -1)))
    assert got == [(-2, -2), (-1, -2), (0, -2), (-2, -1), (-1, -1), (0, -1)]
    for x, y in got:
        assert g.is_valid((x, y))


def test_clips_to_inclusive_window(g):
    got = _positions(g.square_iterator((-100, -100), (100, 100)))
    assert len(got) == 6 * 5
    assert got[0] == (-2, -2)
    assert got[-1] == (3, 2)


def test_no_extra_cell_per_row(g):
    """Bug: yielding high.x + 1 before wrapping"""
    got = _positions(g.square_iterator((-1, 0), (1, 0)))
    assert got == [(-1, 0), (0, 0), (1, 0)]


@pytest.mark.parametrize("low,high", [
    ((10, 0), (12, 1)),    # right of the window
    ((0, 5), (1, 6)),      # above the window
    ((1, 0), (0, 1)),      # inverted x
    ((0, 1), (1, 0)),      # inverted y
])
def test_empty_intersection(g, low, high):
    assert _positions(g.square_iterator(low, high)) == []


def test_marks_exactly_intersection(g):
    """CRITICAL: writing through the iterator touches only the intersection"""
    g.fill(0.0)
    for cell in g.square_iterator((-1, -5), (1, 0)):
        cell.value = 1.0
    # First width x height positions of the window: each physical cell once
    for x in range(-2, 3):
        for y in range(-2, 2):
            expected = 1.0 if (-1 <= x <= 1 and -2 <= y <= 0) else 0.0
            assert g.get_value((x, y)).value == expected, f"({x},{y})"


def test_upper_edge_marks_alias(g):
    """Reaching the inclusive upper column also marks its alias at the lower edge"""
    g.fill(0.0)
    for cell in g.square_iterator((3, 0), (3, 0)):
        cell.value = 1.0
    assert g.get_value((3, 0)).value == 1.0
    assert g.get_value((-2, 0)).value == 1.0
    assert g.data.sum() == 1.0


def test_iterator_after_reposition_uses_new_window(g):
    g.reposition((10, 10))
    got = _positions(g.square_iterator((0, 0), (11, 10)))
    assert got == [(10, 10), (11, 10)]


# ========== PROTOCOL ==========

def test_single_pass(g):
    it = g.square_iterator((0, 0), (1, 0))
    assert iter(it) is it
    assert len(list(it)) == 2
    assert list(it) == []


def test_length_hint(g):
    it = g.square_iterator((0, 0), (1, 1))
    assert operator.length_hint(it) == 4
    next(it)
    assert operator.length_hint(it) == 3
    next(it)
    next(it)
    assert operator.length_hint(it) == 1
    next(it)
    assert operator.length_hint(it) == 0


def test_cells_are_live_handles(g):
    cells = list(g.square_iterator((0, 0), (1, 0)))
    cells[1].value = 8.0
    assert g.get_value((1, 0)).value == 8.0


# ========== OWNERSHIP ==========

def test_window_moved_during_iteration(g):
    """CRITICAL: cursor bounds belong to the old window"""
    it = g.square_iterator((0, 0), (1, 1))
    next(it)
    g.reposition((0, 0))
    with pytest.raises(WindowMovedError):
        next(it)


def test_freed_during_iteration(g):
    it = g.square_iterator((0, 0), (1, 1))
    next(it)
    g.free()
    with pytest.raises(LayerFreedError):
        next(it)


def test_square_iterator_on_freed_grid(g):
    g.free()
    with pytest.raises(LayerFreedError):
        g.square_iterator((0, 0), (1, 1))
