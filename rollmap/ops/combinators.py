# rollmap/ops/combinators.py
"""
Elementwise combinators over MapLayers.

Every function returns a new, independently owned layer and leaves its
inputs untouched. Binary combinators require matching extent, center and
resolution (see MapLayer.binary_op). Unset cells are NaN and propagate
through arithmetic; use fill_unset to give them a value first.
"""
import logging
import numpy as np

from ..layer.map_layer import MapLayer

logger = logging.getLogger(__name__)

# ========== binary ==========

def add(a: MapLayer, b: MapLayer) -> MapLayer:
    return a.binary_op(b, np.add)


def subtract(a: MapLayer, b: MapLayer) -> MapLayer:
    return a.binary_op(b, np.subtract)


def multiply(a: MapLayer, b: MapLayer) -> MapLayer:
    return a.binary_op(b, np.multiply)


def divide(a: MapLayer, b: MapLayer) -> MapLayer:
    """
    a / b pointwise. Division by zero yields +/-inf (or NaN for 0/0)
    without raising.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return a.binary_op(b, np.divide)


def maximum(a: MapLayer, b: MapLayer) -> MapLayer:
    """Pointwise max; NaN if either side is unset."""
    return a.binary_op(b, np.maximum)


def minimum(a: MapLayer, b: MapLayer) -> MapLayer:
    """Pointwise min; NaN if either side is unset."""
    return a.binary_op(b, np.minimum)


# ========== unary ==========

def negate(layer: MapLayer) -> MapLayer:
    return layer.unary_op(np.negative)


def scale(layer: MapLayer, factor: float) -> MapLayer:
    return layer.unary_op(lambda v: v * factor)


def fill_unset(layer: MapLayer, value: float) -> MapLayer:
    """Copy of layer with every NaN cell replaced by value."""
    out = layer.unary_op(lambda v: np.where(np.isnan(v), value, v))
    logger.debug("fill_unset(%g) over %d cells", value, out.grid.capacity)
    return out


def threshold(layer: MapLayer, level: float) -> MapLayer:
    """
    1.0 where cell >= level, 0.0 where cell < level, NaN where unset.
    """
    def _op(v):
        with np.errstate(invalid="ignore"):
            hit = (v >= level).astype(v.dtype)
        return np.where(np.isnan(v), np.nan, hit)
    return layer.unary_op(_op)
