# rollmap/errors.py
"""
Exception taxonomy.

Out-of-window reads are not errors (get_value returns None); everything here
is either a construction failure, an operand mismatch in a combinator, or a
use of storage that is no longer owned by the caller's view.
"""


class RollmapError(Exception):
    """Base class for every error raised by rollmap."""


# ========== construction ==========

class AllocationError(RollmapError, MemoryError):
    """Cell storage could not be obtained. No object is produced."""


class InvalidParameterError(RollmapError, ValueError):
    """Non-positive resolution, non-finite extent, bad grid dimensions."""


# ========== combinator operands ==========

class LayerMismatchError(RollmapError, ValueError):
    """Two operands cannot be combined pointwise."""


class SizeMismatchError(LayerMismatchError):
    """Grid dimensions (or layer extents) differ."""


class PositionMismatchError(LayerMismatchError):
    """Window offsets (or layer centers) differ."""


class ResolutionMismatchError(LayerMismatchError):
    """Layer resolutions differ."""


# ========== ownership ==========

class LayerFreedError(RollmapError, RuntimeError):
    """The grid's buffer was released; no further access is valid."""


class StaleCellError(RollmapError, RuntimeError):
    """A cell handle was used after the window it was minted in moved."""


class WindowMovedError(RollmapError, RuntimeError):
    """The window was re-anchored while an iterator over it was live."""
