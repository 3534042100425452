"""
corrector.py — per-face consistency repair
==========================================

A real face can show at most 9 stickers of a color, but a single capture with
more than 6 of one color is almost always a sampling artifact (a shadow
turning orange into yellow, a reflection turning yellow into white ...).
`correct_face` looks for the recognisable confusion patterns on ONE face and
reassigns labels heuristically:

* excess yellow (> 6) with few orange (< 3): excess yellows, scan order -> orange
* excess orange (> 6) with few red (< 3): excess oranges, scan order -> red
* white center with yellow elsewhere: swap white <-> yellow face-wide
  (centers are the least likely cells to be artifacts)
* both orange and red present, orange > red: edge/corner oranges -> red,
  up to the excess
* yellow > 4 with blue < 2: every edge/corner yellow -> blue;
  blue > 4 with yellow < 2: every middle row/column blue -> yellow

A face whose nine cells all carry the same color is a legitimate solved face
and is left as is (it only gets the low-diversity warning).

The pass is repeated until the grid stops changing, so running the corrector
on its own output is a no-op. Anything still suspicious afterwards is reported
as a warning, never blocked.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from cubescan.app_types import Cell, Color, FaceGrid, grid_positions
from cubescan.config import (
    BLUE_YELLOW_EXCESS,
    BLUE_YELLOW_LOW,
    LOW_COUNT,
    MAX_SAME_COLOR,
    MIN_UNIQUE_COLORS,
)

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

_MAX_PASSES = 16


def is_edge_or_corner(row: int, col: int) -> bool:
    return row in (0, 2) or col in (0, 2)


def is_middle(row: int, col: int) -> bool:
    return row == 1 or col == 1


@dataclass
class CorrectionResult:
    grid: FaceGrid
    corrections: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.corrections)


def _cells_of(grid: FaceGrid, color: Color, where: Optional[Callable[[int, int], bool]] = None) -> List[Cell]:
    return [(r, c) for r, c in grid_positions()
            if grid[r, c] is color and (where is None or where(r, c))]


def _reassign(grid: FaceGrid, cells: List[Cell], color: Color) -> FaceGrid:
    if not cells:
        return grid
    return grid.with_cells({cell: color for cell in cells})


# ---------- individual rules ----------
# Each rule returns (new_grid, description) or (grid, None) when it does not fire.

def _excess_yellow(grid: FaceGrid) -> Tuple[FaceGrid, Optional[str]]:
    counts = grid.counts()
    yellow, orange = counts[Color.YELLOW], counts[Color.ORANGE]
    if yellow > MAX_SAME_COLOR and orange < LOW_COUNT:
        cells = _cells_of(grid, Color.YELLOW)[:yellow - MAX_SAME_COLOR]
        return _reassign(grid, cells, Color.ORANGE), f"excess yellow -> orange at {cells}"
    return grid, None


def _excess_orange(grid: FaceGrid) -> Tuple[FaceGrid, Optional[str]]:
    counts = grid.counts()
    orange, red = counts[Color.ORANGE], counts[Color.RED]
    if orange > MAX_SAME_COLOR and red < LOW_COUNT:
        cells = _cells_of(grid, Color.ORANGE)[:orange - MAX_SAME_COLOR]
        return _reassign(grid, cells, Color.RED), f"excess orange -> red at {cells}"
    return grid, None


def _white_yellow_swap(grid: FaceGrid) -> Tuple[FaceGrid, Optional[str]]:
    if grid.center is not Color.WHITE:
        return grid, None
    if not any(grid[r, c] is Color.YELLOW for r, c in grid_positions() if (r, c) != (1, 1)):
        return grid, None
    swap = {Color.WHITE: Color.YELLOW, Color.YELLOW: Color.WHITE}
    updates = {(r, c): swap[grid[r, c]] for r, c in grid_positions() if grid[r, c] in swap}
    return grid.with_cells(updates), "white center with yellow stickers: swapped white <-> yellow"


def _orange_red(grid: FaceGrid) -> Tuple[FaceGrid, Optional[str]]:
    counts = grid.counts()
    orange, red = counts[Color.ORANGE], counts[Color.RED]
    if orange == 0 or red == 0 or orange <= red:
        return grid, None
    cells = _cells_of(grid, Color.ORANGE, is_edge_or_corner)[:orange - red]
    if not cells:
        return grid, None
    return _reassign(grid, cells, Color.RED), f"orange/red confusion: orange -> red at {cells}"


def _blue_yellow(grid: FaceGrid) -> Tuple[FaceGrid, Optional[str]]:
    counts = grid.counts()
    yellow, blue = counts[Color.YELLOW], counts[Color.BLUE]
    if yellow > BLUE_YELLOW_EXCESS and blue < BLUE_YELLOW_LOW:
        cells = _cells_of(grid, Color.YELLOW, is_edge_or_corner)
        if cells:
            return _reassign(grid, cells, Color.BLUE), f"blue/yellow confusion: yellow -> blue at {cells}"
    elif blue > BLUE_YELLOW_EXCESS and yellow < BLUE_YELLOW_LOW:
        cells = _cells_of(grid, Color.BLUE, is_middle)
        if cells:
            return _reassign(grid, cells, Color.YELLOW), f"blue/yellow confusion: blue -> yellow at {cells}"
    return grid, None


RULES: List[Callable[[FaceGrid], Tuple[FaceGrid, Optional[str]]]] = [
    _excess_yellow,
    _excess_orange,
    _white_yellow_swap,
    _orange_red,
    _blue_yellow,
]


def grid_warnings(grid: FaceGrid) -> List[str]:
    """Suspicious distributions that no rule repaired."""
    counts = grid.counts()
    warnings = [f"{color.value} appears {n} times" for color, n in counts.items() if n > MAX_SAME_COLOR]
    total = sum(counts.values())
    if len(counts) < MIN_UNIQUE_COLORS and total > 5:
        warnings.append(f"only {len(counts)} unique colors detected")
    return warnings


def correct_face(grid: FaceGrid) -> CorrectionResult:
    """
    Apply the correction rules to a single face until nothing changes.
    """
    result = CorrectionResult(grid)
    counts = grid.counts()
    if len(counts) == 1 and sum(counts.values()) == 9:
        logger.debug("[Corrector] %s: uniform face, no correction", grid.face)
        result.warnings = grid_warnings(grid)
        return result

    for _ in range(_MAX_PASSES):
        before = result.grid
        for rule in RULES:
            new_grid, note = rule(result.grid)
            if note and new_grid != result.grid:
                logger.debug("[Corrector] %s: %s", grid.face, note)
                result.corrections.append(note)
                result.grid = new_grid
        if result.grid == before:
            break
    else:
        logger.warning("[Corrector] %s: no stable correction after %d passes", grid.face, _MAX_PASSES)

    result.warnings = grid_warnings(result.grid)
    for w in result.warnings:
        logger.info("[Corrector] %s: %s", grid.face, w)
    return result

