from typing import Sequence, Tuple

import cv2
import numpy as np
import pytest

from cubescan.config import CANONICAL_RGB
from cubescan.cube_state import CubeState
from cubescan.frame import Frame
from cubescan.moves import apply_sequence

BACKGROUND = (30, 30, 30)


def draw_face(image: np.ndarray, colors: Sequence[Tuple[int, int, int]], offset: Tuple[int, int],
              face_size: int, gap: int = 4) -> np.ndarray:
    """Draw a 3x3 sticker grid (row-major RGB colors) with dark gaps between stickers."""
    facelet = face_size // 3
    for idx, color in enumerate(colors):
        row, col = divmod(idx, 3)
        x = offset[0] + col * facelet + gap
        y = offset[1] + row * facelet + gap
        cv2.rectangle(image, (x, y), (x + facelet - 2 * gap - 1, y + facelet - 2 * gap - 1),
                      tuple(int(c) for c in color), -1)
    return image


def centered_face_frame(colors: Sequence[Tuple[int, int, int]], height: int = 480, width: int = 640) -> Frame:
    """Synthetic frame whose stickers sit exactly under the default centered grid."""
    image = np.full((height, width, 3), BACKGROUND, dtype=np.uint8)
    side = int(0.4 * min(width, height))
    draw_face(image, colors, ((width - side) // 2, (height - side) // 2), side)
    return Frame(image)


@pytest.fixture
def face_frame():
    """Factory: nine color names (or RGB triples) -> Frame."""
    def _make(colors, **kwargs):
        rgb = [CANONICAL_RGB[c] if isinstance(c, str) else c for c in colors]
        return centered_face_frame(rgb, **kwargs)
    return _make


@pytest.fixture
def solved():
    return CubeState.solved()


@pytest.fixture
def scrambled(solved):
    return apply_sequence(solved, "R U F' L2 D B' R2 U' F2 L D'")
