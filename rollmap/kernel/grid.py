# rollmap/kernel/grid.py
import logging
from typing import Callable, Optional
import numpy as np

from ..types import Buffer, GridPosition, GridLike, as_grid_position
from ..config import DEFAULT_DTYPE
from ..errors import (
    AllocationError, InvalidParameterError, LayerFreedError, StaleCellError,
    SizeMismatchError, PositionMismatchError,
)
from .iterator import GridIterator

logger = logging.getLogger(__name__)

# ========== allocation ==========

def _check_dims(width, height) -> None:
    for name, v in (("width", width), ("height", height)):
        if isinstance(v, bool) or not isinstance(v, (int, np.integer)):
            raise InvalidParameterError(f"grid {name} must be an int, got {type(v).__name__}")
        if v < 1:
            raise InvalidParameterError(f"grid {name} must be >= 1, got {v}")


def _unset_for(dtype: np.dtype, unset):
    """
    Resolve the unset sentinel for dtype.
    Floating dtypes default to NaN; any other dtype needs an explicit value.
    """
    if unset is None:
        if not np.issubdtype(dtype, np.floating):
            raise InvalidParameterError(f"dtype {dtype} has no NaN; pass an explicit unset value")
        return dtype.type(np.nan)
    try:
        return np.asarray(unset, dtype=dtype)[()]
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidParameterError(f"unset value {unset!r} not representable as {dtype}") from exc


def _allocate(n: int, dtype: np.dtype, fill_value) -> Buffer:
    """
    Allocate n cells of dtype set to fill_value.
    Raises AllocationError instead of returning a partial buffer.
    """
    try:
        return np.full(n, fill_value, dtype=dtype)
    except (MemoryError, ValueError, OverflowError) as exc:
        raise AllocationError(f"could not allocate {n} cells of {dtype}") from exc


def _apply_pointwise(op: Callable, vectorized: bool, dtype: np.dtype, *arrays: Buffer) -> Buffer:
    """
    Apply op over equally shaped buffers, returning a fresh buffer of dtype.
    vectorized=True: op receives whole arrays (ufuncs, arithmetic lambdas).
    vectorized=False: op receives scalars (wrapped with np.vectorize).
    The result never shares memory with any input.
    """
    fn = op if vectorized else np.vectorize(op, otypes=[dtype])
    try:
        out = np.asarray(fn(*arrays), dtype=dtype)
    except MemoryError as exc:
        raise AllocationError(f"could not allocate result of {arrays[0].size} cells") from exc

    shape = arrays[0].shape
    if out.shape != shape:
        if out.ndim != 0:
            raise ValueError(f"op returned shape {out.shape}, expected {shape}")
        out = _allocate(arrays[0].size, dtype, out[()])
    elif any(np.may_share_memory(out, a) for a in arrays):
        out = out.copy()
    return out


# ========== cell handles ==========

class Cell:
    """
    Index handle to one cell of a GridLayer.

    Holds (grid, physical index, window generation) instead of a reference
    into the buffer. Reading or writing raises StaleCellError once the window
    has been re-anchored, and LayerFreedError once the grid is freed.
    """
    __slots__ = ("_grid", "index", "position", "_generation")

    def __init__(self, grid: "GridLayer", index: int, position: GridPosition):
        self._grid = grid
        self.index = index
        self.position = position
        self._generation = grid.generation

    def _check(self) -> None:
        self._grid._check_alive()
        if self._generation != self._grid.generation:
            raise StaleCellError(
                f"cell {self.position} minted at generation {self._generation}, "
                f"window is now at generation {self._grid.generation}"
            )

    @property
    def value(self):
        self._check()
        return self._grid.data[self.index].item()

    @value.setter
    def value(self, v) -> None:
        self._check()
        self._grid.data[self.index] = v

    def is_unset(self) -> bool:
        self._check()
        return bool(self._grid._unset_mask(self._grid.data[self.index]))

    def __repr__(self) -> str:
        return f"Cell(position={self.position}, index={self.index})"


# ========== toroidal grid ==========

class GridLayer:
    """
    Fixed-capacity dense buffer addressed through a re-anchorable window.

    Physical storage never moves: grid position (x, y) lives at
      (y mod height) * width + (x mod width)
    and moving the window only changes (offset_x, offset_y), then resets the
    cells that left it.

    Window membership is inclusive on both ends:
      0 <= x - offset_x <= width  and  0 <= y - offset_y <= height
    so the window admits (width+1) x (height+1) positions and its last
    column/row aliases its first.
    """

    def __init__(self, width: int, height: int, dtype=DEFAULT_DTYPE, unset=None):
        _check_dims(width, height)
        self.dtype = np.dtype(dtype)
        self.unset = _unset_for(self.dtype, unset)
        self.width = int(width)
        self.height = int(height)
        self.data: Optional[Buffer] = _allocate(self.width * self.height, self.dtype, self.unset)
        self.offset_x = -(self.width // 2)
        self.offset_y = -(self.height // 2)
        self.generation = 0
        logger.debug("grid created %dx%d dtype=%s offset=(%d,%d)",
                     self.width, self.height, self.dtype, self.offset_x, self.offset_y)

    @classmethod
    def create(cls, width: int, height: int, dtype=DEFAULT_DTYPE, unset=None) -> "GridLayer":
        return cls(width, height, dtype=dtype, unset=unset)

    @classmethod
    def _from_buffer(cls, like: "GridLayer", data: Buffer) -> "GridLayer":
        """New grid owning data, with the shape, offset and sentinel of like."""
        g = cls.__new__(cls)
        g.dtype = like.dtype
        g.unset = like.unset
        g.width = like.width
        g.height = like.height
        g.data = data
        g.offset_x = like.offset_x
        g.offset_y = like.offset_y
        g.generation = 0
        return g

    # ---------- ownership ----------

    @property
    def freed(self) -> bool:
        return self.data is None

    def _check_alive(self) -> None:
        if self.data is None:
            raise LayerFreedError("grid buffer has been freed")

    def free(self) -> None:
        """Release the buffer. Every later access raises LayerFreedError."""
        self._check_alive()
        self.data = None
        self.generation += 1
        logger.debug("grid freed %dx%d", self.width, self.height)

    # ---------- geometry ----------

    @property
    def capacity(self) -> int:
        return self.width * self.height

    @property
    def offset(self) -> GridPosition:
        return GridPosition(self.offset_x, self.offset_y)

    @property
    def window_low(self) -> GridPosition:
        return GridPosition(self.offset_x, self.offset_y)

    @property
    def window_high(self) -> GridPosition:
        """Inclusive upper corner of the window."""
        return GridPosition(self.offset_x + self.width, self.offset_y + self.height)

    def is_valid(self, pos: GridLike) -> bool:
        self._check_alive()
        p = as_grid_position(pos)
        dx = p.x - self.offset_x
        dy = p.y - self.offset_y
        return 0 <= dx <= self.width and 0 <= dy <= self.height

    def get_index(self, pos: GridLike) -> int:
        """
        Toroidal physical index of pos. No bounds check; pair with is_valid.
        Python's % is already Euclidean for a positive modulus.
        """
        self._check_alive()
        p = as_grid_position(pos)
        return (p.y % self.height) * self.width + (p.x % self.width)

    def _indices(self, low: GridPosition) -> np.ndarray:
        """
        (height+1, width+1) physical indices of the window anchored at low.
        Built from the residues of low, so any integer anchor works.
        """
        cols = (low.x % self.width + np.arange(self.width + 1)) % self.width
        rows = (low.y % self.height + np.arange(self.height + 1)) % self.height
        return rows[:, None] * self.width + cols[None, :]

    def _unset_mask(self, values) -> np.ndarray:
        if np.issubdtype(self.dtype, np.floating) and np.isnan(self.unset):
            return np.isnan(values)
        return values == self.unset

    # ---------- access ----------

    def _cell(self, pos: GridPosition) -> Cell:
        return Cell(self, self.get_index(pos), pos)

    def get_value(self, pos: GridLike) -> Optional[Cell]:
        """
        Cell handle for pos, or None if pos is outside the current window.
        """
        self._check_alive()
        p = as_grid_position(pos)
        if not self.is_valid(p):
            return None
        return self._cell(p)

    def fill(self, value) -> None:
        """Overwrite the whole physical buffer, regardless of the window."""
        self._check_alive()
        self.data.fill(value)

    def reposition(self, offset: GridLike) -> None:
        """
        Re-anchor the window at offset without moving any data.

        Every position of the old window that is not valid under the new one
        is reset to the unset sentinel, and so is every physical cell it
        aliases. Positions valid under both windows keep their values, except
        where the inclusive upper edge shares a cell with a departed
        column or row: that cell is reset too.

        Vectorized over the old window: O(window), no per-cell Python loop.
        Masks are built from the relative shift, so offsets of any magnitude
        work. The offset only changes once the sweep has been applied.
        """
        self._check_alive()
        new = as_grid_position(offset)
        old = self.offset
        if new == old:
            return

        # Shift clamped to one past the window: anything further keeps nothing
        dx = max(-(self.width + 1), min(self.width + 1, new.x - old.x))
        dy = max(-(self.height + 1), min(self.height + 1, new.y - old.y))
        i = np.arange(self.width + 1)
        j = np.arange(self.height + 1)
        keep_x = (i >= dx) & (i <= dx + self.width)
        keep_y = (j >= dy) & (j <= dy + self.height)
        stale = ~(keep_y[:, None] & keep_x[None, :])
        n_stale = int(stale.sum())
        if n_stale:
            self.data[self._indices(old)[stale]] = self.unset

        self.offset_x, self.offset_y = new.x, new.y
        self.generation += 1

        logger.debug("grid repositioned (%d,%d) -> (%d,%d), %d positions reset",
                     old.x, old.y, new.x, new.y, n_stale)

    def square_iterator(self, low: GridLike, high: GridLike) -> GridIterator:
        """
        Row-major iterator of Cells over [low, high] (inclusive) clipped to
        the current window. y ascending outer, x ascending inner.
        """
        self._check_alive()
        return GridIterator(self, as_grid_position(low), as_grid_position(high))

    def window_array(self) -> np.ndarray:
        """
        Copy of the window in logical order: out[j, i] is position
        (offset_x + i, offset_y + j). Shape (height+1, width+1).
        """
        self._check_alive()
        return self.data[self._indices(self.offset)]

    # ---------- derivation ----------

    def copy(self) -> "GridLayer":
        self._check_alive()
        return GridLayer._from_buffer(self, self.data.copy())

    def binary_op(self, other: "GridLayer", op: Callable, vectorized: bool = True) -> "GridLayer":
        """
        New grid with op applied pointwise to (self, other).

        Requires identical width/height (SizeMismatchError) and identical
        offsets (PositionMismatchError). Neither input is mutated.
        """
        self._check_alive()
        other._check_alive()
        if self.width != other.width or self.height != other.height:
            raise SizeMismatchError(
                f"grid size mismatch: {self.width}x{self.height} vs {other.width}x{other.height}"
            )
        if self.offset_x != other.offset_x or self.offset_y != other.offset_y:
            raise PositionMismatchError(
                f"grid offset mismatch: ({self.offset_x},{self.offset_y}) "
                f"vs ({other.offset_x},{other.offset_y})"
            )
        out = _apply_pointwise(op, vectorized, self.dtype, self.data, other.data)
        return GridLayer._from_buffer(self, out)

    def unary_op(self, op: Callable, vectorized: bool = True) -> "GridLayer":
        """New grid of identical shape and offset with op applied pointwise."""
        self._check_alive()
        out = _apply_pointwise(op, vectorized, self.dtype, self.data)
        return GridLayer._from_buffer(self, out)

    def __repr__(self) -> str:
        state = "freed" if self.data is None else f"offset=({self.offset_x},{self.offset_y})"
        return f"GridLayer({self.width}x{self.height}, {state})"
