from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from cubescan.config import FACE_NAMES
from cubescan.errors import InvalidFaceError

Rgb = Tuple[int, int, int]
Cell = Tuple[int, int]


class Color(str, Enum):
    WHITE = 'white'
    YELLOW = 'yellow'
    GREEN = 'green'
    BLUE = 'blue'
    RED = 'red'
    ORANGE = 'orange'
    UNKNOWN = 'unknown'

    @classmethod
    def parse(cls, value) -> 'Color':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidFaceError(f"Unknown color name: {value!r}") from None

    @property
    def letter(self) -> str:
        return '?' if self is Color.UNKNOWN else self.value[0].upper()


# The six real sticker colors, unknown excluded.
CUBE_COLORS: Tuple[Color, ...] = tuple(c for c in Color if c is not Color.UNKNOWN)


@dataclass(frozen=True)
class FaceletClassification:
    label: Color
    confidence: float

    @property
    def is_known(self) -> bool:
        return self.label is not Color.UNKNOWN


@dataclass(frozen=True)
class GridBounds:
    """Square pixel region holding the 3x3 face, top-left origin."""
    x: float
    y: float
    width: float
    height: float
    method: str = 'centered-grid'

    @property
    def facelet_size(self) -> float:
        return self.width / 3.0

    def facelet_center(self, row: int, col: int) -> Tuple[float, float]:
        size = self.facelet_size
        return (self.x + col * size + size / 2.0, self.y + row * size + size / 2.0)


@dataclass(frozen=True)
class FaceGrid:
    """
    One named face plus its 3x3 color labels, row-major in reading order.

    Instances are immutable; every edit returns a new grid.
    """
    face: str
    cells: Tuple[Tuple[Color, Color, Color], ...]

    def __post_init__(self):
        if self.face not in FACE_NAMES:
            raise InvalidFaceError(f"Unknown face: {self.face!r}")
        if len(self.cells) != 3 or any(len(row) != 3 for row in self.cells):
            raise InvalidFaceError(f"Face {self.face} must be a 3x3 grid")

    @classmethod
    def from_rows(cls, face: str, rows: Sequence[Sequence]) -> 'FaceGrid':
        try:
            cells = tuple(tuple(Color.parse(c) for c in row) for row in rows)
        except TypeError:
            raise InvalidFaceError(f"Face {face} must be a 3x3 grid") from None
        return cls(face, cells)

    @classmethod
    def from_flat(cls, face: str, colors: Sequence) -> 'FaceGrid':
        if len(colors) != 9:
            raise InvalidFaceError(f"Face {face} needs 9 colors, got {len(colors)}")
        return cls.from_rows(face, [colors[0:3], colors[3:6], colors[6:9]])

    @classmethod
    def uniform(cls, face: str, color) -> 'FaceGrid':
        return cls.from_flat(face, [color] * 9)

    def __getitem__(self, pos: Cell) -> Color:
        row, col = pos
        return self.cells[row][col]

    @property
    def center(self) -> Color:
        return self.cells[1][1]

    def flat(self) -> List[Color]:
        return [c for row in self.cells for c in row]

    def counts(self) -> Counter:
        return Counter(c for c in self.flat() if c is not Color.UNKNOWN)

    def has_unknown(self) -> bool:
        return Color.UNKNOWN in self.flat()

    def replace(self, row: int, col: int, color) -> 'FaceGrid':
        rows = [list(r) for r in self.cells]
        rows[row][col] = Color.parse(color)
        return FaceGrid.from_rows(self.face, rows)

    def with_cells(self, updates: Dict[Cell, Color]) -> 'FaceGrid':
        rows = [list(r) for r in self.cells]
        for (row, col), color in updates.items():
            rows[row][col] = Color.parse(color)
        return FaceGrid.from_rows(self.face, rows)

    def rotated(self, clockwise: bool = True) -> 'FaceGrid':
        n = 3
        out: List[List[Optional[Color]]] = [[None] * n for _ in range(n)]
        for i in range(n):
            for j in range(n):
                if clockwise:
                    out[j][n - 1 - i] = self.cells[i][j]
                else:
                    out[n - 1 - j][i] = self.cells[i][j]
        return FaceGrid.from_rows(self.face, out)

    def to_list(self) -> List[List[str]]:
        return [[c.value for c in row] for row in self.cells]

    def letters(self) -> str:
        return ''.join(c.letter for c in self.flat())


def grid_positions() -> Iterable[Cell]:
    """All (row, col) pairs of a 3x3 face in scan order."""
    for row in range(3):
        for col in range(3):
            yield row, col
