"""config.py — project configuration
------------------------------------

This file centralizes default runtime constants for the cube scanner and the
move engine. Keep in mind these are *defaults*; the classifier, sampler and
frame processor accept keyword overrides so a deployment never has to edit
this module.

Notes / warnings
- The classifier thresholds below were tuned against webcam captures under
  indoor light. Adjacent hue boundaries (red/orange, yellow/green) are
  asymmetric on purpose; move them together or two rule sets start overlapping.
- Sampler constants trade CPU for robustness. Smaller radius divisors mean
  more pixels per facelet.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from typing import Dict, List, Tuple

# ---------------- Cube layout ----------------

# Face identities in capture order. CAPTURE index i -> FACE_NAMES[i].
FACE_NAMES: List[str] = ['front', 'back', 'up', 'down', 'left', 'right']

# Face letter <-> face name, and the URFDLB order used by facelet strings.
FACE_LETTERS: Dict[str, str] = {
    'F': 'front', 'B': 'back', 'U': 'up', 'D': 'down', 'L': 'left', 'R': 'right',
}
LETTER_OF_FACE: Dict[str, str] = {v: k for k, v in FACE_LETTERS.items()}
FACELET_ORDER: List[str] = ['up', 'right', 'front', 'down', 'left', 'back']

# Color scheme of a solved cube as it is captured (front green, up white ...).
SOLVED_SCHEME: Dict[str, str] = {
    'front': 'green',
    'back': 'blue',
    'up': 'white',
    'down': 'yellow',
    'right': 'red',
    'left': 'orange',
}

# ---------------- Capture sequence ----------------
# (face name, instruction) per capture step. Index is the face-index supplied
# by the capture orchestrator.
CAPTURE_SEQUENCE: List[Tuple[str, str]] = [
    ('front', 'Hold the cube with the front face towards the camera'),
    ('back', 'Turn the cube 180 degrees around the vertical axis'),
    ('up', 'Tilt the cube so the top face looks at the camera'),
    ('down', 'Tilt the cube so the bottom face looks at the camera'),
    ('left', 'Turn the cube so the left face looks at the camera'),
    ('right', 'Turn the cube so the right face looks at the camera'),
]

# Fraction of min(width, height) covered by the default centered grid.
GRID_FRACTION: float = 0.4

# ---------------- Reference colors ----------------

# Canonical RGB per color, used for distance confidence.
CANONICAL_RGB: Dict[str, Tuple[int, int, int]] = {
    'white': (255, 255, 255),
    'red': (255, 0, 0),
    'orange': (255, 165, 0),
    'yellow': (255, 255, 0),
    'green': (0, 255, 0),
    'blue': (0, 0, 255),
}

# (color, (r, g, b), weight). Lighting variants get lower weights so a tie
# goes to the brighter reference.
REFERENCE_COLORS: List[Tuple[str, Tuple[int, int, int], float]] = [
    ('white', (255, 255, 255), 1.0),
    ('white', (240, 240, 240), 0.9),
    ('white', (220, 220, 220), 0.8),
    ('red', (255, 0, 0), 1.0),
    ('red', (220, 20, 20), 0.9),
    ('red', (200, 30, 30), 0.8),
    ('orange', (255, 165, 0), 1.0),
    ('orange', (255, 140, 0), 0.9),
    ('orange', (220, 120, 0), 0.8),
    ('yellow', (255, 255, 0), 1.0),
    ('yellow', (255, 240, 0), 0.9),
    ('yellow', (220, 220, 0), 0.8),
    ('green', (0, 255, 0), 1.0),
    ('green', (20, 220, 20), 0.9),
    ('green', (30, 200, 30), 0.8),
    ('blue', (0, 0, 255), 1.0),
    ('blue', (20, 20, 220), 0.9),
    ('blue', (30, 30, 200), 0.8),
]

# Weighted distance above which the distance technique gives up.
MAX_REFERENCE_DISTANCE: float = 180.0
# Raw distance mapped to zero distance-confidence.
DISTANCE_CONFIDENCE_SPAN: float = 200.0

# ---------------- Classifier ----------------

# Hue windows in degrees [start, end) on the 0..360 HSV circle. Red wraps.
HSV_HUE_WINDOWS: Dict[str, List[Tuple[float, float]]] = {
    'red': [(0.0, 10.0), (340.0, 360.0)],
    'orange': [(10.0, 42.0)],
    'yellow': [(42.0, 75.0)],
    'green': [(75.0, 170.0)],
    'blue': [(190.0, 265.0)],
}
HSV_WHITE_MAX_S: float = 50.0
HSV_WHITE_MIN_V: float = 180.0
HSV_CHROMA_MIN_S: float = 80.0
HSV_CHROMA_MIN_V: float = 80.0

# Hue-angle windows in the CIE a*b* plane, degrees [start, end). Red wraps.
LAB_HUE_WINDOWS: Dict[str, List[Tuple[float, float]]] = {
    'red': [(0.0, 58.0), (345.0, 360.0)],
    'orange': [(58.0, 90.0)],
    'yellow': [(90.0, 125.0)],
    'green': [(125.0, 200.0)],
    'blue': [(220.0, 320.0)],
}
LAB_WHITE_MIN_L: float = 75.0
LAB_WHITE_MAX_CHROMA: float = 20.0
LAB_CHROMA_MIN: float = 20.0
LAB_CHROMA_MIN_L: float = 20.0

# Average channel value below which RGB rules refuse to decide.
RGB_DARK_AVG: float = 50.0

# Fusion weights of the per-technique confidences.
CONFIDENCE_WEIGHTS: Dict[str, float] = {
    'rgb': 0.35,
    'hsv': 0.25,
    'lab': 0.15,
    'distance': 0.25,
}

# Minimum fused confidence for a facelet to count as a valid detection.
# Live preview uses 0.5; a more lenient 0.3 suits still images.
DEFAULT_CONFIDENCE_FLOOR: float = 0.5

# Brightness normalisation used by the retry path.
LIGHTING_DARK_AVG: float = 100.0
LIGHTING_DARK_TARGET: float = 150.0
LIGHTING_BRIGHT_AVG: float = 200.0
LIGHTING_BRIGHT_TARGET: float = 180.0

# Points per side of the lattice sampled over the grid bounds for calibration
# (edges included, so 5 gives a 5x5 lattice at quarter steps).
CALIBRATION_LATTICE: int = 5

# ---------------- Sampler ----------------
SAMPLE_RADIUS_DIVISOR: float = 6.0
SAMPLE_MIN_RADIUS: int = 2
EDGE_THRESHOLD: float = 30.0
CLUSTER_THRESHOLD: float = 50.0
CLUSTER_MIN_SHARE: float = 0.3
# Below this many non-edge pixels the edge filter is ignored.
MIN_NON_EDGE_SAMPLES: int = 5

# ---------------- Corrector ----------------
MAX_SAME_COLOR: int = 6
LOW_COUNT: int = 3
BLUE_YELLOW_EXCESS: int = 4
BLUE_YELLOW_LOW: int = 2
MIN_UNIQUE_COLORS: int = 3

# ---------------- Alignment score ----------------
SCORE_DETECTION_POINTS: float = 60.0
SCORE_CONFIDENCE_POINTS: float = 30.0
SCORE_DIVERSITY_POINTS: float = 10.0
SCORE_POINTS_PER_COLOR: float = 2.0

# Overlay bands.
CONFIDENCE_HIGH: float = 0.6
CONFIDENCE_MEDIUM: float = 0.4
SCORE_GOOD: float = 80.0
SCORE_MEDIUM: float = 50.0

# ---------------- Capture acceptance ----------------
# (min known cells, min detection rate, min score). The right face is
# hard to light and gets the lenient rule.
ACCEPT_DEFAULT: Tuple[int, float, float] = (6, 0.6, 50.0)
ACCEPT_LENIENT: Tuple[int, float, float] = (4, 0.4, 30.0)
LENIENT_FACE_INDICES: Tuple[int, ...] = (5,)

# ---------------- Frame throttling ----------------
START_RATE: float = 15.0
MIN_RATE: float = 8.0
MAX_RATE: float = 20.0
SLOW_RUN_SECONDS: float = 0.050
FAST_RUN_SECONDS: float = 0.030
RATE_STEP_DOWN: float = 1.0
RATE_STEP_UP: float = 0.5

# ---------------- Region detector ----------------
# HSV (OpenCV scale, H 0..180) ranges of saturated sticker colors.
REGION_HSV_RANGES: List[Tuple[Tuple[int, int, int], Tuple[int, int, int]]] = [
    ((0, 80, 80), (10, 255, 255)),
    ((170, 80, 80), (180, 255, 255)),
    ((10, 80, 80), (35, 255, 255)),
    ((35, 60, 60), (85, 255, 255)),
    ((90, 60, 60), (130, 255, 255)),
]
# Minimum contour area as a fraction of the frame area.
REGION_MIN_AREA_FRACTION: float = 0.02
