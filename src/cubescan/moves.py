"""
moves.py — face-turn engine for `CubeState`
===========================================

`apply_move(state, move)` is a pure function: it never mutates its input and
returns a new, fully independent `CubeState`. A quarter turn

1. rotates the turning face's own 3x3 grid (clockwise:
   `rotated[j][2 - i] = original[i][j]`), and
2. cycles the four 3-sticker border strips of the neighbouring faces.

The strips are listed per face in `BORDER_CYCLES`, in clockwise order as seen
from outside the turning face: a clockwise turn moves strip k onto strip k+1,
sticker i onto sticker i. Each list was written by hand from the corner and
edge cubies of the URFDLB layout described in `cube_state.py`.
Counter-clockwise turns run the same cycle backwards; half turns are two
clockwise quarter turns.

Move notation: a face letter from F, B, U, D, L, R optionally followed by
`'` (counter-clockwise) or `2` (half turn).

Also here:
* `MoveQueue` — pending moves advanced one at a time by an animation driver.
* `random_scramble` — random move list that never turns the same face twice
  in a row.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional, Tuple, Union

from cubescan.app_types import Cell, Color, FaceGrid
from cubescan.config import FACE_LETTERS, FACE_NAMES, LETTER_OF_FACE
from cubescan.cube_state import CubeState
from cubescan.errors import IncompleteStateError, InvalidMoveError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _row(r: int) -> List[Cell]:
    return [(r, 0), (r, 1), (r, 2)]


def _col(c: int) -> List[Cell]:
    return [(0, c), (1, c), (2, c)]


Strip = Tuple[str, List[Cell]]

# face letter -> four neighbour strips in clockwise order.
BORDER_CYCLES: Dict[str, List[Strip]] = {
    'U': [
        ('front', _row(0)),
        ('left', _row(0)),
        ('back', _row(0)),
        ('right', _row(0)),
    ],
    'D': [
        ('front', _row(2)),
        ('right', _row(2)),
        ('back', _row(2)),
        ('left', _row(2)),
    ],
    'F': [
        ('up', _row(2)),
        ('right', _col(0)),
        ('down', _row(0)[::-1]),
        ('left', _col(2)[::-1]),
    ],
    'B': [
        ('up', _row(0)),
        ('left', _col(0)[::-1]),
        ('down', _row(2)[::-1]),
        ('right', _col(2)),
    ],
    'R': [
        ('front', _col(2)),
        ('up', _col(2)),
        ('back', _col(0)[::-1]),
        ('down', _col(2)),
    ],
    'L': [
        ('up', _col(0)),
        ('front', _col(0)),
        ('down', _col(0)),
        ('back', _col(2)[::-1]),
    ],
}

_SUFFIX_TURNS = {'': 1, "'": -1, '2': 2}


class Move(Enum):
    """The 18 face turns, ordered face by face (F, B, U, D, L, R) then cw, ccw, half."""
    F = 'F'
    F_PRIME = "F'"
    F2 = 'F2'
    B = 'B'
    B_PRIME = "B'"
    B2 = 'B2'
    U = 'U'
    U_PRIME = "U'"
    U2 = 'U2'
    D = 'D'
    D_PRIME = "D'"
    D2 = 'D2'
    L = 'L'
    L_PRIME = "L'"
    L2 = 'L2'
    R = 'R'
    R_PRIME = "R'"
    R2 = 'R2'

    @classmethod
    def parse(cls, text: Union[str, 'Move']) -> 'Move':
        if isinstance(text, cls):
            return text
        if not isinstance(text, str):
            raise InvalidMoveError(f"Move must be a string, got {type(text).__name__}")
        token = text.strip().replace('’', "'")
        try:
            return cls(token)
        except ValueError:
            raise InvalidMoveError(f"Unknown move token: {text!r}") from None

    @property
    def letter(self) -> str:
        return self.value[0]

    @property
    def face(self) -> str:
        return FACE_LETTERS[self.letter]

    @property
    def turns(self) -> int:
        """+1 clockwise quarter, -1 counter-clockwise quarter, 2 half turn."""
        return _SUFFIX_TURNS[self.value[1:]]

    @property
    def angle(self) -> int:
        return 90 * self.turns

    @property
    def inverse(self) -> 'Move':
        t = self.turns
        if t == 2:
            return self
        return Move(self.letter + ("'" if t == 1 else ''))

    def __lt__(self, other: 'Move') -> bool:
        if not isinstance(other, Move):
            return NotImplemented
        return ALL_MOVES.index(self) < ALL_MOVES.index(other)

    def __str__(self) -> str:
        return self.value


ALL_MOVES: List[Move] = list(Move)

MoveLike = Union[str, Move]


def parse_move(text: MoveLike) -> Move:
    return Move.parse(text)


def parse_sequence(seq: Union[str, Iterable[MoveLike]]) -> List[Move]:
    """Whitespace separated tokens ("R U R' U'") or an iterable of moves."""
    if isinstance(seq, str):
        return [Move.parse(tok) for tok in seq.split() if tok]
    return [Move.parse(m) for m in seq]


def inverse(move: MoveLike) -> Move:
    return Move.parse(move).inverse


def invert_sequence(seq: Union[str, Iterable[MoveLike]]) -> List[Move]:
    return [m.inverse for m in reversed(parse_sequence(seq))]


def format_sequence(moves: Iterable[MoveLike]) -> str:
    return ' '.join(Move.parse(m).value for m in moves)


# ---------- engine ----------

def moving_cells(letter: str) -> Dict[str, List[Cell]]:
    """Cells whose sticker changes position under a turn of `letter`."""
    face = FACE_LETTERS[letter]
    cells: Dict[str, List[Cell]] = {face: [(r, c) for r in range(3) for c in range(3) if (r, c) != (1, 1)]}
    for neighbour, strip in BORDER_CYCLES[letter]:
        cells.setdefault(neighbour, []).extend(strip)
    return cells


def _check_state(state: CubeState, move: Move) -> None:
    missing = state.missing_faces()
    if missing:
        raise IncompleteStateError(f"Cannot apply {move.value}: missing face(s) {', '.join(missing)}")
    for face, cells in moving_cells(move.letter).items():
        grid = state.get(face)
        unknown = [cell for cell in cells if grid[cell] is Color.UNKNOWN]
        if unknown:
            raise IncompleteStateError(
                f"Cannot apply {move.value}: unknown sticker(s) on {face} at {unknown}")


def _quarter_turn(faces: Dict[str, FaceGrid], letter: str, clockwise: bool) -> Dict[str, FaceGrid]:
    face = FACE_LETTERS[letter]
    out = dict(faces)
    out[face] = faces[face].rotated(clockwise)

    strips = BORDER_CYCLES[letter]
    step = 1 if clockwise else -1
    updates: Dict[str, Dict[Cell, Color]] = {}
    for k, (src_face, src_cells) in enumerate(strips):
        dst_face, dst_cells = strips[(k + step) % 4]
        for src, dst in zip(src_cells, dst_cells):
            updates.setdefault(dst_face, {})[dst] = faces[src_face][src]
    for dst_face, cells in updates.items():
        out[dst_face] = out[dst_face].with_cells(cells)
    return out


def apply_move(state: CubeState, move: MoveLike) -> CubeState:
    """
    Return the state reached by turning one face. Raises InvalidMoveError for
    malformed notation and IncompleteStateError when a face is missing or a
    moving sticker is unknown.
    """
    mv = Move.parse(move)
    _check_state(state, mv)
    faces = dict(state.faces)
    turns = mv.turns
    if turns == 2:
        faces = _quarter_turn(faces, mv.letter, True)
        faces = _quarter_turn(faces, mv.letter, True)
    else:
        faces = _quarter_turn(faces, mv.letter, turns == 1)
    return CubeState(faces)


def apply_sequence(state: CubeState, moves: Union[str, Iterable[MoveLike]]) -> CubeState:
    for mv in parse_sequence(moves):
        state = apply_move(state, mv)
    return state


# ---------- playback queue ----------

class MoveQueue:
    """
    Pending moves for animated playback. The animation driver calls
    `advance(state)` once per finished transition; there is no timer here.
    """

    def __init__(self, moves: Union[str, Iterable[MoveLike], None] = None):
        self._pending: Deque[Move] = deque(parse_sequence(moves) if moves else [])
        self.applied: List[Move] = []

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)

    @property
    def pending(self) -> List[Move]:
        return list(self._pending)

    def enqueue(self, moves: Union[str, Iterable[MoveLike]]) -> None:
        self._pending.extend(parse_sequence(moves))

    def peek(self) -> Optional[Move]:
        return self._pending[0] if self._pending else None

    def advance(self, state: CubeState) -> Tuple[CubeState, Optional[Move]]:
        """
        Apply the next pending move. Returns (new_state, move), or
        (state, None) once the queue is drained. A failing move stays queued.
        """
        if not self._pending:
            return state, None
        mv = self._pending[0]
        new_state = apply_move(state, mv)
        self._pending.popleft()
        self.applied.append(mv)
        logger.debug("[MoveQueue] applied %s, %d pending", mv.value, len(self._pending))
        return new_state, mv

    def cancel(self) -> List[Move]:
        """Drop every pending move and return them."""
        dropped = list(self._pending)
        self._pending.clear()
        if dropped:
            logger.info("[MoveQueue] cancelled %d pending move(s)", len(dropped))
        return dropped


# ---------- scrambles ----------

_MODIFIERS = ['', "'", '2']
_MODIFIER_WEIGHTS = (70, 15, 15)


def random_scramble(length: int = 25, rng: Optional[random.Random] = None,
                    avoid_repeat: bool = True) -> List[Move]:
    """
    Random move list biased towards clockwise quarter turns. With
    `avoid_repeat` the same face is never turned twice in a row.
    """
    rng = rng or random.Random()
    letters = [LETTER_OF_FACE[f] for f in FACE_NAMES]
    moves: List[Move] = []
    prev: Optional[str] = None
    for _ in range(max(0, int(length))):
        choices = [candidate for candidate in letters if not (avoid_repeat and candidate == prev)]
        letter = rng.choice(choices)
        mod = rng.choices(_MODIFIERS, weights=_MODIFIER_WEIGHTS)[0]
        moves.append(Move(letter + mod))
        prev = letter
    return moves

