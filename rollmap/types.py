# rollmap/types.py
from dataclasses import dataclass
from typing import Tuple, Union
import numpy as np

# ========== Cell buffer ==========
Buffer = np.ndarray  # 1D, length width*height, exclusively owned by one GridLayer

# ========== Grid space ==========
@dataclass(frozen=True)
class GridPosition:
    """
    Integer (x, y) in grid space. Unbounded: any integer pair is a legal
    position, the window decides whether it is addressable.
    """
    x: int
    y: int

    def __iter__(self):
        yield self.x
        yield self.y

# ========== Map space ==========
@dataclass(frozen=True)
class MapPosition:
    """
    Real-valued (x, y) in map (world) space.
    """
    x: float
    y: float

    def __iter__(self):
        yield self.x
        yield self.y

@dataclass(frozen=True)
class Extent:
    """
    Physical (width, height) of a layer in map units.
    """
    width: float
    height: float

    def __iter__(self):
        yield self.width
        yield self.height

GridLike = Union[GridPosition, Tuple[int, int]]
MapLike = Union[MapPosition, Tuple[float, float]]
ExtentLike = Union[Extent, Tuple[float, float]]


def as_grid_position(p: GridLike) -> GridPosition:
    """Accept a GridPosition or an (x, y) pair of ints."""
    if isinstance(p, GridPosition):
        return p
    x, y = p
    return GridPosition(int(x), int(y))


def as_map_position(p: MapLike) -> MapPosition:
    """Accept a MapPosition or an (x, y) pair of floats."""
    if isinstance(p, MapPosition):
        return p
    x, y = p
    return MapPosition(float(x), float(y))


def as_extent(e: ExtentLike) -> Extent:
    if isinstance(e, Extent):
        return e
    w, h = e
    return Extent(float(w), float(h))
