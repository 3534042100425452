"""
cubescan — cube face perception and face-turn engine.

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from cubescan.app_types import Color, FaceGrid, FaceletClassification, GridBounds
from cubescan.capture import (
    FaceAnalyzer,
    FaceCapture,
    FrameProcessor,
    analyze_face,
    centered_grid,
    is_acceptable,
    load_region_detector,
)
from cubescan.corrector import correct_face
from cubescan.cube_state import CubeState
from cubescan.detector import ColorClassifier, LightingCalibration
from cubescan.errors import CubeScanError, IncompleteStateError, InvalidFaceError, InvalidMoveError
from cubescan.frame import Frame
from cubescan.moves import (
    ALL_MOVES,
    Move,
    MoveQueue,
    apply_move,
    apply_sequence,
    invert_sequence,
    parse_sequence,
    random_scramble,
)
from cubescan.sampler import FaceletSampler
from cubescan.scoring import alignment_score

__version__ = "0.1.0"
