"""
capture.py — one face capture: grid bounds -> 9 labels -> corrected grid -> score
=================================================================================

This module ties the perception pieces together for a single video frame:

* `centered_grid` — default square grid centered in the frame
  (side = 0.4 * min(width, height)).
* `RegionDetector` / `load_region_detector` — optional capability handle that
  looks for the cube's saturated sticker region with OpenCV HSV masks and a
  contour search. It is created once and passed into the analyzer; when it is
  unavailable or finds nothing the centered grid is used.
* `FaceAnalyzer.analyze` — sample and classify the nine facelets, count the
  valid detections, run the per-face corrector and compute the alignment
  score. A mirrored capture reads the columns right-to-left before
  classification so the stored grid is always in the face's own orientation.
* `FaceAnalyzer.calibrate` — learn the frame's lighting from a pixel lattice
  over the grid; later classifications are rebalanced with it.
* `is_acceptable` — default acceptance rule for the capture orchestrator.
* `AdaptiveRate` / `FrameProcessor` — reentrancy guard plus adaptive rate
  control for the external refresh loop. Frames arriving while a run is in
  progress are dropped, never queued.

Nothing here owns the camera: frames come in as `Frame` objects and results
go out as plain dataclasses (`FaceCapture`, `FaceletOverlay`) for the
orchestrator and the overlay renderer.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import cv2
import numpy as np

from cubescan.app_types import Color, FaceGrid, FaceletClassification, GridBounds, Rgb, grid_positions
from cubescan.config import (
    ACCEPT_DEFAULT,
    ACCEPT_LENIENT,
    CAPTURE_SEQUENCE,
    FACE_NAMES,
    FAST_RUN_SECONDS,
    GRID_FRACTION,
    LENIENT_FACE_INDICES,
    MAX_RATE,
    MIN_RATE,
    RATE_STEP_DOWN,
    RATE_STEP_UP,
    REGION_HSV_RANGES,
    REGION_MIN_AREA_FRACTION,
    SLOW_RUN_SECONDS,
    START_RATE,
)
from cubescan.corrector import correct_face
from cubescan.detector import ColorClassifier, LightingCalibration
from cubescan.errors import InvalidFaceError
from cubescan.frame import Frame
from cubescan.sampler import FaceletSampler
from cubescan.scoring import alignment_score, confidence_band, score_band

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


# ---------- capture sequence ----------

def face_for_index(face_index: int) -> str:
    if not isinstance(face_index, int) or not 0 <= face_index < len(FACE_NAMES):
        raise InvalidFaceError(f"Face index must be 0..{len(FACE_NAMES) - 1}, got {face_index!r}")
    return CAPTURE_SEQUENCE[face_index][0]


def capture_instruction(face_index: int) -> str:
    face_for_index(face_index)
    return CAPTURE_SEQUENCE[face_index][1]


# ---------- grid bounds ----------

def centered_grid(width: int, height: int, fraction: float = GRID_FRACTION) -> GridBounds:
    side = fraction * min(width, height)
    return GridBounds((width - side) / 2.0, (height - side) / 2.0, side, side, 'centered-grid')


class RegionDetector:
    """
    Capability handle for cube-region detection. `detect(frame)` returns a
    square `GridBounds` around the largest saturated blob, or None.
    """

    def __init__(self, available: bool = True,
                 hsv_ranges=REGION_HSV_RANGES,
                 min_area_fraction: float = REGION_MIN_AREA_FRACTION):
        self.available = available
        self.hsv_ranges = [(np.array(lo, dtype=np.uint8), np.array(hi, dtype=np.uint8)) for lo, hi in hsv_ranges]
        self.min_area_fraction = float(min_area_fraction)
        self._kernel = np.ones((7, 7), np.uint8)

    def mask(self, frame: Frame) -> np.ndarray:
        hsv = cv2.cvtColor(frame.rgb, cv2.COLOR_RGB2HSV)
        combined = np.zeros(hsv.shape[:2], dtype=np.uint8)
        for lo, hi in self.hsv_ranges:
            combined = cv2.bitwise_or(combined, cv2.inRange(hsv, lo, hi))
        # join the stickers across the black gaps between them
        return cv2.morphologyEx(combined, cv2.MORPH_CLOSE, self._kernel, iterations=2)

    def detect(self, frame: Frame) -> Optional[GridBounds]:
        if not self.available:
            return None
        contours, _ = cv2.findContours(self.mask(frame), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        min_area = self.min_area_fraction * frame.width * frame.height
        best = None
        best_area = 0.0
        for contour in contours:
            area = cv2.contourArea(contour)
            if area >= min_area and area > best_area:
                best, best_area = contour, area
        if best is None:
            return None

        x, y, w, h = cv2.boundingRect(best)
        side = float(min(max(w, h), frame.width, frame.height))
        cx, cy = x + w / 2.0, y + h / 2.0
        gx = min(max(0.0, cx - side / 2.0), frame.width - side)
        gy = min(max(0.0, cy - side / 2.0), frame.height - side)
        logger.debug("[RegionDetector] region %s -> square %.0f at (%.0f, %.0f)", (x, y, w, h), side, gx, gy)
        return GridBounds(gx, gy, side, side, 'region')


def load_region_detector(enabled: bool = True) -> RegionDetector:
    """
    Initialise the region detector once. The returned handle reports
    `available=False` when disabled or when OpenCV cannot run the detection
    pipeline on a probe frame.
    """
    if not enabled:
        return RegionDetector(available=False)
    detector = RegionDetector(available=True)
    try:
        detector.detect(Frame(np.zeros((8, 8, 3), dtype=np.uint8)))
    except cv2.error as e:
        logger.warning("[RegionDetector] unavailable: %s", e)
        detector.available = False
    return detector


# ---------- face analysis ----------

@dataclass(frozen=True)
class FaceletOverlay:
    """What the renderer needs to draw one facelet."""
    row: int
    col: int
    letter: str
    confidence_pct: int
    band: str


@dataclass
class FaceCapture:
    face_index: int
    face: str
    grid: FaceGrid
    raw_grid: FaceGrid
    classifications: List[List[FaceletClassification]]
    samples: List[List[Optional[Rgb]]]
    valid_detections: int
    total_confidence: float
    score: int
    bounds: GridBounds
    mirrored: bool = False
    corrections: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def known_cells(self) -> int:
        return sum(1 for c in self.grid.flat() if c is not Color.UNKNOWN)

    @property
    def detection_rate(self) -> float:
        """Share of cells with a known label."""
        return self.known_cells / 9.0

    @property
    def score_band(self) -> str:
        return score_band(self.score)

    def confidences(self) -> List[List[float]]:
        return [[cl.confidence for cl in row] for row in self.classifications]

    def overlay(self) -> List[FaceletOverlay]:
        out = []
        for r, c in grid_positions():
            conf = self.classifications[r][c].confidence
            out.append(FaceletOverlay(r, c, self.grid[r, c].letter, int(round(conf * 100)), confidence_band(conf)))
        return out

    def to_dict(self) -> Dict:
        return {
            'face_index': self.face_index,
            'face': self.face,
            'grid': self.grid.to_list(),
            'confidence': [[round(v, 3) for v in row] for row in self.confidences()],
            'valid_detections': self.valid_detections,
            'score': self.score,
            'score_band': self.score_band,
            'bounds': {'x': self.bounds.x, 'y': self.bounds.y, 'size': self.bounds.width,
                       'method': self.bounds.method},
            'mirrored': self.mirrored,
            'corrections': list(self.corrections),
            'warnings': list(self.warnings),
        }


class FaceAnalyzer:
    def __init__(self,
                 sampler: Optional[FaceletSampler] = None,
                 classifier: Optional[ColorClassifier] = None,
                 region_detector: Optional[RegionDetector] = None,
                 grid_fraction: float = GRID_FRACTION):
        self.sampler = sampler or FaceletSampler()
        self.classifier = classifier or ColorClassifier()
        self.region_detector = region_detector
        self.grid_fraction = grid_fraction

    def grid_bounds(self, frame: Frame) -> GridBounds:
        if self.region_detector is not None and self.region_detector.available:
            bounds = self.region_detector.detect(frame)
            if bounds is not None:
                return bounds
        return centered_grid(frame.width, frame.height, self.grid_fraction)

    def calibrate(self, frame: Frame, bounds: Optional[GridBounds] = None) -> Optional[LightingCalibration]:
        """
        Learn the lighting of `frame` over the grid and rebalance every later
        classification with it. When no lattice point is usable (all outside
        the frame, or all black) the previous calibration is kept.
        """
        calibration = LightingCalibration.from_frame(frame, bounds or self.grid_bounds(frame))
        if calibration is None:
            logger.warning("[FaceAnalyzer] calibration skipped: no usable lattice points")
            return None
        self.classifier.calibration = calibration
        logger.info("[FaceAnalyzer] calibrated: brightness=%.1f balance=(%.2f, %.2f, %.2f) from %d points",
                    calibration.avg_brightness, *calibration.balance, calibration.samples)
        return calibration

    def sample_grid(self, frame: Frame, bounds: GridBounds, mirrored: bool = False) -> List[List[Optional[Rgb]]]:
        """Representative RGB per cell; mirrored captures read column 2 - col."""
        size = bounds.facelet_size
        samples: List[List[Optional[Rgb]]] = [[None] * 3 for _ in range(3)]
        for r, c in grid_positions():
            read_col = 2 - c if mirrored else c
            cx, cy = bounds.facelet_center(r, read_col)
            samples[r][c] = self.sampler.sample(frame, cx, cy, size)
        return samples

    def analyze(self, frame: Frame, face_index: int, mirrored: bool = False,
                bounds: Optional[GridBounds] = None) -> FaceCapture:
        face = face_for_index(face_index)
        bounds = bounds or self.grid_bounds(frame)
        samples = self.sample_grid(frame, bounds, mirrored)

        classifications = [[self.classifier.classify(samples[r][c]) for c in range(3)] for r in range(3)]
        valid = [cl for row in classifications for cl in row if self.classifier.is_valid(cl)]
        total_conf = sum(cl.confidence for cl in valid)

        raw = FaceGrid.from_rows(face, [[cl.label for cl in row] for row in classifications])
        corrected = correct_face(raw)
        score = alignment_score(len(valid), total_conf, corrected.grid.flat())
        logger.debug("[FaceAnalyzer] %s: %s valid=%d score=%d", face, corrected.grid.letters(), len(valid), score)

        return FaceCapture(
            face_index=face_index,
            face=face,
            grid=corrected.grid,
            raw_grid=raw,
            classifications=classifications,
            samples=samples,
            valid_detections=len(valid),
            total_confidence=total_conf,
            score=score,
            bounds=bounds,
            mirrored=mirrored,
            corrections=corrected.corrections,
            warnings=corrected.warnings,
        )


def analyze_face(frame: Frame, face_index: int, mirrored: bool = False,
                 analyzer: Optional[FaceAnalyzer] = None) -> FaceCapture:
    return (analyzer or FaceAnalyzer()).analyze(frame, face_index, mirrored)


def is_acceptable(capture: FaceCapture) -> bool:
    """Default acceptance rule; the last face of the sequence is judged leniently."""
    min_cells, min_rate, min_score = (ACCEPT_LENIENT if capture.face_index in LENIENT_FACE_INDICES
                                      else ACCEPT_DEFAULT)
    ok = (capture.known_cells >= min_cells
          and capture.detection_rate > min_rate
          and capture.score > min_score)
    if not ok:
        logger.info("[Capture] %s rejected: cells=%d rate=%.2f score=%d",
                    capture.face, capture.known_cells, capture.detection_rate, capture.score)
    return ok


# ---------- frame processing ----------

class AdaptiveRate:
    """Target runs per second, lowered after slow runs and raised after fast ones."""

    def __init__(self, start: float = START_RATE, floor: float = MIN_RATE, ceiling: float = MAX_RATE,
                 slow: float = SLOW_RUN_SECONDS, fast: float = FAST_RUN_SECONDS):
        self.rate = float(start)
        self.floor = float(floor)
        self.ceiling = float(ceiling)
        self.slow = slow
        self.fast = fast
        self._last_run: Optional[float] = None

    @property
    def interval(self) -> float:
        return 1.0 / self.rate

    def record(self, duration: float) -> float:
        before = self.rate
        if duration > self.slow:
            self.rate = max(self.floor, self.rate - RATE_STEP_DOWN)
        elif duration < self.fast:
            self.rate = min(self.ceiling, self.rate + RATE_STEP_UP)
        if self.rate != before:
            logger.debug("[AdaptiveRate] run took %.1f ms: %.1f -> %.1f runs/s", duration * 1000, before, self.rate)
        return self.rate

    def should_run(self, now: float) -> bool:
        return self._last_run is None or now - self._last_run >= self.interval

    def mark(self, now: float) -> None:
        self._last_run = now


class FrameProcessor:
    """
    Single-flight wrapper around `FaceAnalyzer.analyze` for a display-refresh
    loop. `process` returns None when the frame was skipped (busy or too soon).
    """

    def __init__(self, analyzer: Optional[FaceAnalyzer] = None, rate: Optional[AdaptiveRate] = None,
                 clock: Callable[[], float] = time.perf_counter):
        self.analyzer = analyzer or FaceAnalyzer()
        self.rate = rate or AdaptiveRate()
        self.clock = clock
        self.busy = False
        self.dropped = 0
        self.last_capture: Optional[FaceCapture] = None

    def process(self, frame: Frame, face_index: int, mirrored: bool = False,
                now: Optional[float] = None) -> Optional[FaceCapture]:
        if self.busy:
            self.dropped += 1
            logger.debug("[FrameProcessor] busy, frame dropped (%d so far)", self.dropped)
            return None
        now = self.clock() if now is None else now
        if not self.rate.should_run(now):
            return None

        self.busy = True
        started = self.clock()
        try:
            capture = self.analyzer.analyze(frame, face_index, mirrored)
        finally:
            self.busy = False
            self.rate.mark(now)
            self.rate.record(self.clock() - started)
        self.last_capture = capture
        return capture


def capture_plan() -> List[Tuple[int, str, str]]:
    """(face index, face name, instruction) for every capture step."""
    return [(i, face, text) for i, (face, text) in enumerate(CAPTURE_SEQUENCE)]
