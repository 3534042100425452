import random

import pytest

from cubescan.app_types import Color, FaceGrid
from cubescan.corrector import correct_face, is_edge_or_corner, is_middle

LETTERS = {
    'W': 'white', 'Y': 'yellow', 'G': 'green', 'B': 'blue',
    'R': 'red', 'O': 'orange', '?': 'unknown',
}


def grid(text: str, face: str = "front") -> FaceGrid:
    """'YYY/YGY/YOY' -> FaceGrid."""
    return FaceGrid.from_rows(face, [[LETTERS[ch] for ch in row] for row in text.split("/")])


def letters(g: FaceGrid) -> str:
    return "/".join("".join(c.letter for c in row) for row in g.cells)


def test_position_helpers():
    assert is_edge_or_corner(0, 1) and is_edge_or_corner(1, 2)
    assert not is_edge_or_corner(1, 1)
    assert is_middle(1, 0) and is_middle(0, 1) and is_middle(1, 1)
    assert not is_middle(0, 0)


def test_clean_face_is_untouched():
    g = grid("RGB/OGY/BRW")
    result = correct_face(g)
    assert result.grid == g
    assert not result.changed
    assert result.warnings == []


def test_excess_yellow_becomes_orange():
    result = correct_face(grid("BYY/YYY/YYB"))
    assert letters(result.grid) == "BOY/YYY/YYB"
    assert result.changed


def test_excess_orange_cascades_to_red():
    # first the excess orange goes red, then edge/corner oranges balance against red
    result = correct_face(grid("OOO/OOO/OBB"))
    assert letters(result.grid) == "RRR/ROR/RBB"
    assert result.grid.counts()[Color.ORANGE] <= 6


def test_white_center_with_yellow_swaps_face_wide():
    result = correct_face(grid("RGY/BWO/RGB"))
    assert letters(result.grid) == "RGW/BYO/RGB"


def test_white_center_without_yellow_is_kept():
    g = grid("RGW/BWO/RGB")
    assert correct_face(g).grid == g


def test_orange_excess_over_red_on_edges():
    result = correct_face(grid("OOO/RGR/BWO"))
    assert letters(result.grid) == "RRO/RGR/BWO"


def test_orange_without_red_is_not_rebalanced():
    g = grid("OOO/GGB/BWO")
    assert correct_face(g).grid == g


def test_excess_yellow_with_few_blue_goes_blue_on_edges():
    result = correct_face(grid("YGY/YYR/YOW"))
    assert letters(result.grid) == "BGB/BYR/BOW"
    assert result.corrections == ["blue/yellow confusion: yellow -> blue at [(0, 0), (0, 2), (1, 0), (2, 0)]"]


def test_blue_yellow_rule_settles_when_blue_becomes_excess():
    # five edge yellows turn blue, then the middle blues go back to yellow
    result = correct_face(grid("YYY/YGW/ROY"))
    assert letters(result.grid) == "BYB/YGW/ROB"
    assert len(result.corrections) == 2
    assert correct_face(result.grid).grid == result.grid


def test_excess_blue_with_few_yellow_goes_yellow_in_middle():
    result = correct_face(grid("BBB/BBG/WRO"))
    assert letters(result.grid) == "BYB/YYG/WRO"


def test_unknown_cells_are_never_touched():
    result = correct_face(grid("OO?/RGR/??O"))
    assert letters(result.grid) == "RO?/RGR/??O"


@pytest.mark.parametrize("color", ["white", "yellow", "green", "blue", "red", "orange"])
def test_uniform_face_is_left_alone_with_warning(color):
    g = FaceGrid.uniform("down", color)
    result = correct_face(g)
    assert result.grid == g
    assert f"{color} appears 9 times" in result.warnings
    assert "only 1 unique colors detected" in result.warnings


def test_low_diversity_warning():
    result = correct_face(grid("GGG/GBG/GGB"))
    assert any("unique colors" in w for w in result.warnings)


def test_all_unknown_face():
    g = grid("???/???/???")
    result = correct_face(g)
    assert result.grid == g
    assert result.warnings == []


def test_correction_never_crosses_faces():
    g = grid("YYY/YGW/ROY", face="left")
    assert correct_face(g).grid.face == "left"


def _random_grids(n, seed):
    rng = random.Random(seed)
    palette = list(LETTERS)
    # bias towards the colors the rules care about
    weights = [1, 4, 1, 3, 3, 4, 1]
    for _ in range(n):
        cells = rng.choices(palette, weights=weights, k=9)
        yield grid("/".join("".join(cells[i:i + 3]) for i in (0, 3, 6)))


@pytest.mark.parametrize("seed", range(5))
def test_correction_is_idempotent(seed):
    for g in _random_grids(200, seed):
        once = correct_face(g)
        twice = correct_face(once.grid)
        assert twice.grid == once.grid
        assert not twice.changed


@pytest.mark.parametrize("text", [
    "BYY/YYY/YYB", "OOO/OOO/OBB", "RGY/BWO/RGB", "OOO/RGR/BWO", "YYY/YGW/ROY", "BBB/BBG/WRO",
])
def test_known_patterns_are_idempotent(text):
    once = correct_face(grid(text)).grid
    assert correct_face(once).grid == once
