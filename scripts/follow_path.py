#!/usr/bin/env python3
"""
scripts/follow_path.py

Drive a rolling-window layer along a straight path and report which marks
survive. At every step the layer is recentred on the reference point and
the cell under it is set to the step index; at the end each mark is read
back: intact, changed (reset by a window move, or overwritten by a later
step on the same cell), or outside the window.

Usage:
    python scripts/follow_path.py [--extent W H] [--resolution R]
                                  [--start X Y] [--end X Y] [--steps N] [-v] [--log-file PATH]
"""
import sys
import argparse
import logging
from pathlib import Path
from typing import Dict, List, Tuple

# Add repo root to path for imports
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from rollmap.types import Extent, MapPosition
from rollmap.layer.map_layer import MapLayer
from rollmap.logging_config import setup_logging

logger = logging.getLogger("rollmap.scripts.follow_path")


def run_path(
    extent: Extent,
    resolution: float,
    start: MapPosition,
    end: MapPosition,
    steps: int
) -> Dict[str, List[Tuple[int, MapPosition]]]:
    """
    Walk from start to end in `steps` equal moves (steps+1 positions).

    Returns:
        {"intact": [...], "changed": [...], "outside": [...]}, each a list of
        (step, position) in step order.
    """
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")

    layer = MapLayer(extent, resolution)
    marks: List[Tuple[int, MapPosition]] = []
    out: Dict[str, List[Tuple[int, MapPosition]]] = {"intact": [], "changed": [], "outside": []}
    try:
        for i in range(steps + 1):
            t = i / steps
            p = MapPosition(start.x + t * (end.x - start.x), start.y + t * (end.y - start.y))
            layer.recenter(p)
            # recenter floors while map_to_grid truncates: on a one-cell axis
            # a negative non-integral point can miss its own window
            cell = layer.get_value(p)
            if cell is None:
                logger.warning("step %d: (%g, %g) outside its own window", i, p.x, p.y)
                out["outside"].append((i, p))
                continue
            cell.value = float(i)
            marks.append((i, p))

        for i, p in marks:
            cell = layer.get_value(p)
            if cell is None:
                out["outside"].append((i, p))
            elif cell.value == float(i):
                out["intact"].append((i, p))
            else:
                out["changed"].append((i, p))
        out["outside"].sort(key=lambda m: m[0])
        logger.debug("path done: %d intact, %d changed, %d outside",
                     len(out["intact"]), len(out["changed"]), len(out["outside"]))
        return out
    finally:
        layer.free()


def main():
    parser = argparse.ArgumentParser(description="Follow a straight path with a rolling-window layer")
    parser.add_argument("--extent", type=float, nargs=2, default=[10.0, 5.0],
                        metavar=("W", "H"), help="Layer extent in map units")
    parser.add_argument("--resolution", type=float, default=0.05,
                        help="Map units per cell")
    parser.add_argument("--start", type=float, nargs=2, default=[0.0, 0.0],
                        metavar=("X", "Y"), help="Path start")
    parser.add_argument("--end", type=float, nargs=2, default=[20.0, 0.0],
                        metavar=("X", "Y"), help="Path end")
    parser.add_argument("--steps", type=int, default=40,
                        help="Number of moves along the path")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    parser.add_argument("--log-file", default=None,
                        help="Also write the log to this file")

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    result = run_path(
        Extent(*args.extent),
        args.resolution,
        MapPosition(*args.start),
        MapPosition(*args.end),
        args.steps
    )

    print("=" * 60)
    for name in ("intact", "changed", "outside"):
        steps = [i for i, _ in result[name]]
        print(f"{name:8s} {len(steps):4d}  {steps if len(steps) <= 12 else steps[:12] + ['...']}")
    print("=" * 60)


if __name__ == "__main__":
    main()
