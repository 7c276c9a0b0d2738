# rollmap/host/handles.py
"""
Handle-based surface for a host process.

Mirrors the export contract of a native binding:
  create(width, height, center_x, center_y, resolution) -> handle | None
  free(handle)
  read(handle, x, y) -> Cell | None
  derive(handle, transform) -> handle
Every numeric argument crosses the boundary as a 32-bit float. Handles are
plain ints; the registry is the single owner of every layer it hands out.
"""
import itertools
import logging
from typing import Callable, Dict, Optional
import numpy as np

from ..config import DEFAULT_DTYPE
from ..errors import AllocationError, InvalidParameterError
from ..kernel.grid import Cell
from ..layer.map_layer import MapLayer

logger = logging.getLogger(__name__)

_layers: Dict[int, MapLayer] = {}
_next_handle = itertools.count(1)


def _from_f32(v) -> float:
    """
    Narrow v to float32 and return the shortest decimal that round-trips it,
    so 0.05f arrives as 0.05 rather than 0.05000000074505806.
    Magnitudes past float32 range become +-inf, as they would natively.
    """
    with np.errstate(over="ignore"):
        narrowed = np.float32(v)
    return float(np.format_float_positional(narrowed, unique=True, trim="0"))


def create(width, height, center_x, center_y, resolution) -> Optional[int]:
    """
    Create a layer of extent (width, height) centred on (center_x, center_y).
    Returns None on invalid parameters or allocation failure.
    """
    try:
        layer = MapLayer(
            (_from_f32(width), _from_f32(height)),
            _from_f32(resolution),
            dtype=DEFAULT_DTYPE,
        )
        layer.recenter((_from_f32(center_x), _from_f32(center_y)))
    except (InvalidParameterError, AllocationError) as exc:
        logger.warning("create(%r, %r, %r, %r, %r) failed: %s",
                       width, height, center_x, center_y, resolution, exc)
        return None
    handle = next(_next_handle)
    _layers[handle] = layer
    return handle


def get_layer(handle: int) -> MapLayer:
    """Registered layer for handle. Unknown or freed handles raise KeyError."""
    return _layers[handle]


def free(handle: int) -> None:
    """Consume handle and release its layer."""
    layer = _layers.pop(handle)
    layer.free()


def read(handle: int, x, y) -> Optional[Cell]:
    """
    Cell at map position (x, y), or None outside the current window.
    Non-finite positions (including float32 overflow) read as None.
    """
    return _layers[handle].get_value((_from_f32(x), _from_f32(y)))


def derive(handle: int, transform: Callable[[MapLayer], MapLayer]) -> int:
    """
    Apply a Layer -> Layer transform (e.g. a traversal-cost layer) and
    register its result under a new handle. The source layer is untouched.
    """
    source = _layers[handle]
    derived = transform(source)
    if not isinstance(derived, MapLayer):
        raise TypeError(f"transform must return MapLayer, got {type(derived).__name__}")
    if derived is source or derived.grid is source.grid:
        raise ValueError("transform must return an independently owned layer")
    new_handle = next(_next_handle)
    _layers[new_handle] = derived
    return new_handle


def live_handles():
    """Sorted list of handles currently registered."""
    return sorted(_layers.keys())
