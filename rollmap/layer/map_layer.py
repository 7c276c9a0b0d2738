# rollmap/layer/map_layer.py
import logging
import math
from typing import Callable, Optional, Tuple
import numpy as np

from ..types import (
    Extent, GridPosition, MapPosition,
    ExtentLike, GridLike, MapLike, as_grid_position, as_map_position,
)
from ..config import DEFAULT_DTYPE, LayerConfig, check_dtype, check_extent, check_resolution
from ..errors import (
    InvalidParameterError, SizeMismatchError, PositionMismatchError, ResolutionMismatchError,
)
from ..kernel.grid import Cell, GridLayer
from ..kernel.iterator import GridIterator

logger = logging.getLogger(__name__)


def grid_dims(extent: Extent, resolution: float) -> Tuple[int, int]:
    """
    Cell counts covering extent at resolution: floor(extent / resolution) + 1
    per axis, so the window always spans at least the requested extent.
    """
    cells_x = extent.width / resolution
    cells_y = extent.height / resolution
    if not (math.isfinite(cells_x) and math.isfinite(cells_y)):
        raise InvalidParameterError(f"extent {extent} at resolution {resolution} is not a finite cell count")
    return (
        int(math.floor(cells_x)) + 1,
        int(math.floor(cells_y)) + 1,
    )


class MapLayer:
    """
    Continuous-coordinate view over a GridLayer.

    Map space -> grid space: truncate((m + resolution/2) / resolution)
    Grid space -> map space: g * resolution
    The two are not exact inverses; every other method goes through
    map_to_grid, there is no separate map-space bounds logic.
    """

    def __init__(self, extent: ExtentLike, resolution: float, dtype=DEFAULT_DTYPE):
        self.extent = check_extent(extent)
        self.resolution = check_resolution(resolution)
        width, height = grid_dims(self.extent, self.resolution)
        self.center = MapPosition(0.0, 0.0)
        self.grid = GridLayer(width, height, dtype=check_dtype(dtype))
        logger.debug("layer created extent=(%g,%g) resolution=%g grid=%dx%d",
                     self.extent.width, self.extent.height, self.resolution, width, height)

    @classmethod
    def create(cls, extent: ExtentLike, resolution: float, dtype=DEFAULT_DTYPE) -> "MapLayer":
        return cls(extent, resolution, dtype=dtype)

    @classmethod
    def from_config(cls, config: LayerConfig) -> "MapLayer":
        """Create from a LayerConfig and recenter to its center."""
        layer = cls(config.extent, config.resolution, dtype=config.dtype)
        layer.recenter(config.center)
        return layer

    @classmethod
    def _wrap(cls, like: "MapLayer", grid: GridLayer) -> "MapLayer":
        layer = cls.__new__(cls)
        layer.extent = like.extent
        layer.resolution = like.resolution
        layer.center = like.center
        layer.grid = grid
        return layer

    # ---------- ownership ----------

    @property
    def freed(self) -> bool:
        return self.grid.freed

    def free(self) -> None:
        self.grid.free()

    # ---------- coordinates ----------

    @property
    def grid_shape(self) -> Tuple[int, int]:
        """(width, height) in cells."""
        return self.grid.width, self.grid.height

    def _grid_or_none(self, pos: MapLike) -> Optional[GridPosition]:
        """map_to_grid, or None when pos has no grid cell (non-finite after scaling)."""
        p = as_map_position(pos)
        half = self.resolution / 2
        gx = (p.x + half) / self.resolution
        gy = (p.y + half) / self.resolution
        if not (math.isfinite(gx) and math.isfinite(gy)):
            return None
        return GridPosition(int(gx), int(gy))

    def map_to_grid(self, pos: MapLike) -> GridPosition:
        g = self._grid_or_none(pos)
        if g is None:
            raise InvalidParameterError(f"map position {as_map_position(pos)} has no grid cell")
        return g

    def grid_to_map(self, pos: GridLike) -> MapPosition:
        g = as_grid_position(pos)
        return MapPosition(g.x * self.resolution, g.y * self.resolution)

    def recenter(self, center: MapLike) -> None:
        """
        Move the window so it is centred on center.
        offset = floor(center / resolution) - grid_dim // 2 per axis.
        No data is copied; cells leaving the window are reset.
        """
        c = as_map_position(center)
        cx = c.x / self.resolution
        cy = c.y / self.resolution
        if not (math.isfinite(cx) and math.isfinite(cy)):
            raise InvalidParameterError(f"center {c} has no grid cell at resolution {self.resolution}")
        offset_x = math.floor(cx) - self.grid.width // 2
        offset_y = math.floor(cy) - self.grid.height // 2
        self.grid.reposition(GridPosition(offset_x, offset_y))
        self.center = c

    # ---------- access ----------

    def is_valid(self, pos: MapLike) -> bool:
        """False for positions outside the window, including non-finite ones."""
        self.grid._check_alive()
        g = self._grid_or_none(pos)
        return g is not None and self.grid.is_valid(g)

    def get_index(self, pos: MapLike) -> int:
        return self.grid.get_index(self.map_to_grid(pos))

    def get_value(self, pos: MapLike) -> Optional[Cell]:
        self.grid._check_alive()
        g = self._grid_or_none(pos)
        if g is None:
            return None
        return self.grid.get_value(g)

    def fill(self, value) -> None:
        self.grid.fill(value)

    def square_iterator(self, low: MapLike, high: MapLike) -> GridIterator:
        return self.grid.square_iterator(self.map_to_grid(low), self.map_to_grid(high))

    def window_array(self) -> np.ndarray:
        return self.grid.window_array()

    # ---------- derivation ----------

    def _check_compatible(self, other: "MapLayer") -> None:
        if self.extent != other.extent:
            raise SizeMismatchError(
                f"layer extent mismatch: ({self.extent.width},{self.extent.height}) "
                f"vs ({other.extent.width},{other.extent.height})"
            )
        if self.center != other.center:
            raise PositionMismatchError(
                f"layer center mismatch: ({self.center.x},{self.center.y}) "
                f"vs ({other.center.x},{other.center.y})"
            )
        if self.resolution != other.resolution:
            raise ResolutionMismatchError(
                f"layer resolution mismatch: {self.resolution} vs {other.resolution}"
            )

    def binary_op(self, other: "MapLayer", op: Callable, vectorized: bool = True) -> "MapLayer":
        """
        New layer with op applied pointwise. Operands must share extent
        (SizeMismatchError), center (PositionMismatchError) and resolution
        (ResolutionMismatchError), checked in that order.
        """
        self._check_compatible(other)
        grid = self.grid.binary_op(other.grid, op, vectorized=vectorized)
        return MapLayer._wrap(self, grid)

    def unary_op(self, op: Callable, vectorized: bool = True) -> "MapLayer":
        return MapLayer._wrap(self, self.grid.unary_op(op, vectorized=vectorized))

    def copy(self) -> "MapLayer":
        return MapLayer._wrap(self, self.grid.copy())

    def __repr__(self) -> str:
        return (f"MapLayer(extent=({self.extent.width},{self.extent.height}), "
                f"resolution={self.resolution}, center=({self.center.x},{self.center.y}), "
                f"grid={self.grid!r})")
