# rollmap/config.py
from dataclasses import dataclass, field
import math
from typing import Any, Mapping
import numpy as np

from .types import Extent, MapPosition, as_extent, as_map_position
from .errors import InvalidParameterError

DEFAULT_DTYPE = np.dtype(np.float32)  # host boundary is 32-bit float
UNSET: float = float("nan")           # never written, or invalidated by a window move
DEFAULT_RESOLUTION: float = 0.05
DEFAULT_EXTENT: Extent = Extent(10.0, 5.0)


@dataclass(frozen=True)
class LayerConfig:
    """
    Construction parameters for a MapLayer.
    - extent: physical size in map units
    - resolution: map units per cell, > 0
    - center: initial center the layer is recentered to after creation
    - dtype: cell dtype, must be floating so the NaN sentinel is representable
    """
    extent: Extent = DEFAULT_EXTENT
    resolution: float = DEFAULT_RESOLUTION
    center: MapPosition = MapPosition(0.0, 0.0)
    dtype: np.dtype = field(default=DEFAULT_DTYPE)


def check_resolution(resolution: float) -> float:
    """Return resolution as float or raise InvalidParameterError."""
    try:
        r = float(resolution)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"resolution must be a number, got {resolution!r}") from exc
    if not math.isfinite(r) or r <= 0.0:
        raise InvalidParameterError(f"resolution must be finite and > 0, got {r}")
    return r


def check_extent(extent) -> Extent:
    """Return extent as Extent or raise InvalidParameterError."""
    e = as_extent(extent)
    for name, v in (("width", e.width), ("height", e.height)):
        if not math.isfinite(v):
            raise InvalidParameterError(f"extent {name} must be finite, got {v}")
        if v < 0.0:
            raise InvalidParameterError(f"extent {name} must be >= 0, got {v}")
    return e


def check_dtype(dtype) -> np.dtype:
    dt = np.dtype(dtype)
    if not np.issubdtype(dt, np.floating):
        raise InvalidParameterError(f"cell dtype must be floating (NaN sentinel), got {dt}")
    return dt


def layer_config_from_dict(d: Mapping[str, Any]) -> LayerConfig:
    """
    Build a validated LayerConfig from a plain mapping:
      {"extent": [w, h], "resolution": r, "center": [x, y], "dtype": "float32"}
    Missing keys fall back to module defaults. Unknown keys are rejected.
    """
    known = {"extent", "resolution", "center", "dtype"}
    unknown = set(d) - known
    if unknown:
        raise InvalidParameterError(f"unknown layer config keys: {sorted(unknown)}")

    extent = check_extent(d.get("extent", DEFAULT_EXTENT))
    resolution = check_resolution(d.get("resolution", DEFAULT_RESOLUTION))
    center = as_map_position(d.get("center", (0.0, 0.0)))
    if not (math.isfinite(center.x) and math.isfinite(center.y)):
        raise InvalidParameterError(f"center must be finite, got {center}")
    dtype = check_dtype(d.get("dtype", DEFAULT_DTYPE))

    return LayerConfig(extent=extent, resolution=resolution, center=center, dtype=dtype)
