"""
cube_state.py — canonical 6 x 3x3 sticker model
===============================================

`CubeState` maps the six face identities (front, back, up, down, left, right)
to immutable `FaceGrid`s. It starts empty, is filled face by face as captures
are accepted, and is only ever *replaced*: every operation returns a new
state and never touches the receiver.

### Orientation

Each face is read as seen from outside the cube. Side faces (front, right,
back, left) have row 0 touching `up`; `up` has row 0 touching `back`; `down`
has row 0 touching `front`. This is the usual URFDLB facelet layout, so
`to_facelet_string()` is directly consumable by two-phase solvers.

### Persisted layout

`to_dict()` / `from_dict()` use {face name: 3x3 list of lowercase color
names}; `to_json()` / `from_json()` wrap the same structure.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import json
from collections import Counter
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Union

from cubescan.app_types import CUBE_COLORS, Color, FaceGrid
from cubescan.config import FACE_NAMES, FACELET_ORDER, LETTER_OF_FACE, SOLVED_SCHEME
from cubescan.errors import IncompleteStateError, InvalidFaceError

GridLike = Union[FaceGrid, Sequence[Sequence]]


def _as_grid(face: str, grid: GridLike) -> FaceGrid:
    if isinstance(grid, FaceGrid):
        return grid if grid.face == face else FaceGrid(face, grid.cells)
    return FaceGrid.from_rows(face, grid)


class CubeState:
    __slots__ = ('_faces',)

    def __init__(self, faces: Optional[Mapping[str, GridLike]] = None):
        built: Dict[str, FaceGrid] = {}
        for face, grid in (faces or {}).items():
            if face not in FACE_NAMES:
                raise InvalidFaceError(f"Unknown face: {face!r}")
            built[face] = _as_grid(face, grid)
        self._faces = MappingProxyType({f: built[f] for f in FACE_NAMES if f in built})

    # ---------- construction ----------

    @classmethod
    def empty(cls) -> 'CubeState':
        return cls()

    @classmethod
    def solved(cls, scheme: Optional[Mapping[str, str]] = None) -> 'CubeState':
        scheme = scheme or SOLVED_SCHEME
        return cls({face: FaceGrid.uniform(face, scheme[face]) for face in FACE_NAMES})

    # ---------- access ----------

    @property
    def faces(self) -> Mapping[str, FaceGrid]:
        return self._faces

    def has(self, face: str) -> bool:
        return face in self._faces

    def get(self, face: str) -> FaceGrid:
        if face not in FACE_NAMES:
            raise InvalidFaceError(f"Unknown face: {face!r}")
        try:
            return self._faces[face]
        except KeyError:
            raise IncompleteStateError(f"Face {face} has not been captured") from None

    def missing_faces(self) -> List[str]:
        return [f for f in FACE_NAMES if f not in self._faces]

    def sticker_count(self) -> int:
        return sum(len(grid.flat()) for grid in self._faces.values())

    def is_complete(self) -> bool:
        return not self.missing_faces() and not any(g.has_unknown() for g in self._faces.values())

    # ---------- copy-on-write edits ----------

    def with_face(self, face: str, grid: GridLike) -> 'CubeState':
        faces = dict(self._faces)
        faces[face] = grid
        return CubeState(faces)

    def with_sticker(self, face: str, row: int, col: int, color) -> 'CubeState':
        """Manual correction of one sticker."""
        return self.with_face(face, self.get(face).replace(row, col, color))

    # ---------- checks ----------

    def color_counts(self) -> Counter:
        counts: Counter = Counter()
        for grid in self._faces.values():
            counts.update(grid.counts())
        return counts

    def validate(self) -> List[str]:
        """Human-readable problems; empty list means the state looks physical."""
        issues = [f"missing face: {f}" for f in self.missing_faces()]
        for face, grid in self._faces.items():
            unknown = sum(1 for c in grid.flat() if c is Color.UNKNOWN)
            if unknown:
                issues.append(f"{face}: {unknown} unknown sticker(s)")
        if not self.missing_faces():
            counts = self.color_counts()
            for color in CUBE_COLORS:
                if counts[color] != 9:
                    issues.append(f"{color.value}: {counts[color]} stickers (expected 9)")
            centers = Counter(g.center for g in self._faces.values())
            for color, n in centers.items():
                if n > 1:
                    issues.append(f"center {color.value} appears on {n} faces")
        return issues

    # ---------- serialization ----------

    def to_dict(self) -> Dict[str, List[List[str]]]:
        return {face: grid.to_list() for face, grid in self._faces.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Sequence[Sequence[str]]]) -> 'CubeState':
        if not isinstance(data, Mapping):
            raise InvalidFaceError("Cube state must be a mapping of face name -> 3x3 colors")
        return cls({face: FaceGrid.from_rows(face, rows) for face, rows in data.items()})

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> 'CubeState':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidFaceError(f"Invalid cube state JSON: {e}") from e
        return cls.from_dict(data)

    def to_facelet_string(self) -> str:
        """
        54 face letters in U, R, F, D, L, B order, each sticker named after the
        face whose center carries its color.
        """
        if not self.is_complete():
            raise IncompleteStateError(f"Cannot build facelet string: {', '.join(self.validate())}")
        color_to_letter: Dict[Color, str] = {}
        for face in FACELET_ORDER:
            center = self._faces[face].center
            if center in color_to_letter:
                raise IncompleteStateError(f"Center color {center.value} appears twice")
            color_to_letter[center] = LETTER_OF_FACE[face]
        return ''.join(color_to_letter[c] for face in FACELET_ORDER for c in self._faces[face].flat())

    def net(self) -> str:
        """Unfolded text net (single letters, '.' for missing faces)."""
        def rows(face: str) -> List[str]:
            grid = self._faces.get(face)
            if grid is None:
                return ['. . .'] * 3
            return [' '.join(c.letter for c in row) for row in grid.cells]

        pad = ' ' * 7
        lines = [pad + r for r in rows('up')]
        middle = [rows(f) for f in ('left', 'front', 'right', 'back')]
        lines += ['  '.join(parts) for parts in zip(*middle)]
        lines += [pad + r for r in rows('down')]
        return '\n'.join(lines)

    # ---------- dunder ----------

    def __eq__(self, other) -> bool:
        if not isinstance(other, CubeState):
            return NotImplemented
        return dict(self._faces) == dict(other._faces)

    def __hash__(self) -> int:
        return hash(tuple(self._faces.items()))

    def __repr__(self) -> str:
        return f"CubeState({self.to_dict()!r})"
