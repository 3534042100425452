"""
detector.py — multi-technique color classifier for cube stickers
================================================================

This module maps one representative RGB triple (see `sampler.py`) to one of
the six cube colors, or `unknown`, together with a confidence in [0, 1].

## Techniques

Four independent rule sets are evaluated in a fixed priority order; the first
one that returns a color wins, each returning `unknown` to defer to the next:

1. **HSV rules** — achromatic-bright -> white; saturated pixels are split by
   disjoint hue windows (red wraps around 0 degrees).
2. **LAB rules** — high L* / low chroma -> white; otherwise disjoint hue-angle
   windows in the a*b* plane. Catches low-saturation or dark stickers the HSV
   rules leave out.
3. **RGB ratio rules** — channel dominance / ratio tests.
4. **Reference distance** — nearest weighted reference color (several lighting
   variants per color); gives up beyond `MAX_REFERENCE_DISTANCE`.

Within every technique the per-color rules are mutually exclusive, so a triple
can never satisfy two colors of the same rule set. Red/orange and
yellow/green boundaries are asymmetric; the remaining confusions are repaired
face-wide by `corrector.py`.

## Confidence

Every technique also scores how well the *winning* label fits the pixel.
The final confidence is the fixed weighted average

    0.35 * rgb + 0.25 * hsv + 0.15 * lab + 0.25 * distance

A facelet counts as validly detected only when its label is not `unknown`
and its confidence exceeds the classifier's `confidence_floor`.

## Lighting

* `LightingCalibration` stores the average brightness and channel balance of
  a 5x5 pixel lattice read over the grid bounds (`from_frame`); when given to
  the classifier every sample is rebalanced first.
* When the (calibrated) sample stays `unknown`, the classifier retries once on
  a brightness-normalised copy (`correct_for_lighting`).

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from cubescan.app_types import Color, FaceletClassification, GridBounds, Rgb
from cubescan.colors import lab_chroma_hue, rgb_distance, rgb_to_hsv, rgb_to_lab
from cubescan.config import (
    CALIBRATION_LATTICE,
    CONFIDENCE_WEIGHTS,
    DEFAULT_CONFIDENCE_FLOOR,
    DISTANCE_CONFIDENCE_SPAN,
    HSV_CHROMA_MIN_S,
    HSV_CHROMA_MIN_V,
    HSV_HUE_WINDOWS,
    HSV_WHITE_MAX_S,
    HSV_WHITE_MIN_V,
    LAB_CHROMA_MIN,
    LAB_CHROMA_MIN_L,
    LAB_HUE_WINDOWS,
    LAB_WHITE_MAX_CHROMA,
    LAB_WHITE_MIN_L,
    LIGHTING_BRIGHT_AVG,
    LIGHTING_BRIGHT_TARGET,
    LIGHTING_DARK_AVG,
    LIGHTING_DARK_TARGET,
    MAX_REFERENCE_DISTANCE,
    REFERENCE_COLORS,
    RGB_DARK_AVG,
)
from cubescan.frame import Frame

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _clamp(v: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, v))


def _in_windows(hue: float, windows: Sequence[Tuple[float, float]]) -> bool:
    return any(lo <= hue < hi for lo, hi in windows)


def _window_gap(hue: float, windows: Sequence[Tuple[float, float]]) -> float:
    """Circular distance in degrees from `hue` to the nearest window."""
    best = 360.0
    for lo, hi in windows:
        if lo <= hue < hi:
            return 0.0
        for edge in (lo, hi):
            d = abs(hue - edge) % 360.0
            best = min(best, d, 360.0 - d)
    return best


# ---------- Lighting ----------

@dataclass(frozen=True)
class LightingCalibration:
    avg_brightness: float
    balance: Tuple[float, float, float]
    samples: int = 0

    @classmethod
    def from_samples(cls, samples) -> Optional['LightingCalibration']:
        """Build from an (N, 3) RGB array; None for empty or black input."""
        arr = np.asarray(samples, dtype=float).reshape(-1, 3)
        if arr.shape[0] == 0:
            return None
        avg = arr.mean(axis=0)
        brightness = float(avg.mean())
        if brightness <= 0:
            return None
        balance = tuple(float(c / brightness) if c > 0 else 1.0 for c in avg)
        return cls(brightness, balance, int(arr.shape[0]))

    @classmethod
    def from_frame(cls, frame: Frame, bounds: GridBounds,
                   lattice: int = CALIBRATION_LATTICE) -> Optional['LightingCalibration']:
        """
        Sample a `lattice` x `lattice` grid of single pixels spanning `bounds`
        (both edges included) and build the calibration from the points that
        fall inside the frame. None when no point does.
        """
        steps = max(1, lattice - 1)
        xs = [bounds.x + i * bounds.width / steps for i in range(lattice)]
        ys = [bounds.y + j * bounds.height / steps for j in range(lattice)]
        points = [frame.pixel(int(x), int(y)) for x in xs for y in ys
                  if 0 <= x < frame.width and 0 <= y < frame.height]
        if not points:
            logger.debug("[Classifier] no calibration points inside the frame for %s", bounds)
            return None
        return cls.from_samples(points)

    def apply(self, rgb: Rgb) -> Rgb:
        return tuple(int(round(_clamp(c / b, 0.0, 255.0))) for c, b in zip(rgb, self.balance))


def correct_for_lighting(rgb: Rgb) -> Rgb:
    """Boost dark samples, tame over-exposed ones; mid-range is untouched."""
    avg = sum(rgb) / 3.0
    if 0 < avg < LIGHTING_DARK_AVG:
        k = LIGHTING_DARK_TARGET / avg
        return tuple(min(255, int(round(c * k))) for c in rgb)
    if avg > LIGHTING_BRIGHT_AVG:
        k = LIGHTING_BRIGHT_TARGET / avg
        return tuple(max(0, int(round(c * k))) for c in rgb)
    return tuple(int(c) for c in rgb)


# ---------- Technique 1: HSV ----------

def hsv_matches(rgb: Rgb) -> List[Color]:
    h, s, v = rgb_to_hsv(*rgb)
    if s < HSV_WHITE_MAX_S and v > HSV_WHITE_MIN_V:
        return [Color.WHITE]
    if s < HSV_CHROMA_MIN_S or v < HSV_CHROMA_MIN_V:
        return []
    return [Color(name) for name, windows in HSV_HUE_WINDOWS.items() if _in_windows(h, windows)]


def hsv_confidence(label: Color, rgb: Rgb) -> float:
    h, s, v = rgb_to_hsv(*rgb)
    if label is Color.WHITE:
        if v > 220 and s < 30:
            return 0.95
        if v > 200 and s < 50:
            return 0.85
        if v > 180 and s < 70:
            return 0.75
        return _clamp((v - 150) / 100) * (1 - s / 255)
    windows = HSV_HUE_WINDOWS.get(label.value)
    if not windows:
        return 0.0
    gap = _window_gap(h, windows)
    if gap == 0.0:
        if s > 140 and v > 120:
            return 0.95
        if s > 100 and v > 100:
            return 0.85
        if s > HSV_CHROMA_MIN_S and v > HSV_CHROMA_MIN_V:
            return 0.75
        return 0.6 * min(s, v) / 255
    if gap <= 10.0:
        return 0.5 * min(s, v) / 255
    return 0.0


# ---------- Technique 2: LAB ----------

def lab_matches(rgb: Rgb) -> List[Color]:
    L, a, b = rgb_to_lab(*rgb)
    chroma, hue = lab_chroma_hue(a, b)
    if L > LAB_WHITE_MIN_L and chroma < LAB_WHITE_MAX_CHROMA:
        return [Color.WHITE]
    if chroma < LAB_CHROMA_MIN or L <= LAB_CHROMA_MIN_L:
        return []
    return [Color(name) for name, windows in LAB_HUE_WINDOWS.items() if _in_windows(hue, windows)]


def lab_confidence(label: Color, rgb: Rgb) -> float:
    L, a, b = rgb_to_lab(*rgb)
    chroma, hue = lab_chroma_hue(a, b)
    if label is Color.WHITE:
        if L > 90 and chroma < 10:
            return 0.95
        if L > 85 and chroma < 15:
            return 0.85
        if L > LAB_WHITE_MIN_L and chroma < LAB_WHITE_MAX_CHROMA:
            return 0.75
        return _clamp((L - 60) / 40) * _clamp(1 - chroma / 60)
    windows = LAB_HUE_WINDOWS.get(label.value)
    if not windows:
        return 0.0
    gap = _window_gap(hue, windows)
    if gap == 0.0:
        if chroma > 60:
            return 0.95
        if chroma > 40:
            return 0.85
        if chroma >= LAB_CHROMA_MIN:
            return 0.75
        return 0.5 * chroma / LAB_CHROMA_MIN
    if gap <= 15.0:
        return 0.4 * _clamp(chroma / 60)
    return 0.0


# ---------- Technique 3: RGB ratios ----------

_RGB_RULES: Dict[Color, Callable[[float, float, float], bool]] = {
    Color.WHITE: lambda r, g, b: (r + g + b) / 3 > 170 and max(r, g, b) - min(r, g, b) < 45,
    Color.RED: lambda r, g, b: r > 120 and r > 1.8 * g and r > 1.8 * b,
    Color.ORANGE: lambda r, g, b: r > 120 and r / 1.8 <= g < 0.85 * r and b < 0.6 * g,
    Color.YELLOW: lambda r, g, b: (r > 120 and g > 120 and g >= 0.85 * r and r >= 0.8 * g
                                   and b < 0.6 * min(r, g)),
    Color.GREEN: lambda r, g, b: g > 100 and g > 1.3 * r and g > 1.3 * b,
    Color.BLUE: lambda r, g, b: b > 100 and b > 1.3 * r and b > 1.3 * g,
}


def rgb_matches(rgb: Rgb) -> List[Color]:
    r, g, b = (float(c) for c in rgb)
    if (r + g + b) / 3 < RGB_DARK_AVG:
        return []
    return [color for color, rule in _RGB_RULES.items() if rule(r, g, b)]


def _dominance_confidence(main: float, other: float) -> float:
    if main > 180 and main > 1.6 * other:
        return 0.95
    if main > 150 and main > 1.4 * other:
        return 0.85
    if main > 120 and main > 1.2 * other:
        return 0.75
    if main <= 0:
        return 0.0
    return _clamp((main - 100) / 100, 0.0, 0.7) * _clamp((main - other) / main)


def rgb_confidence(label: Color, rgb: Rgb) -> float:
    r, g, b = (float(c) for c in rgb)
    avg = (r + g + b) / 3
    spread = max(r, g, b) - min(r, g, b)
    if label is Color.WHITE:
        if avg > 220 and spread < 30:
            return 0.95
        if avg > 200 and spread < 40:
            return 0.85
        if avg > 180 and spread < 50:
            return 0.75
        return _clamp((avg - 150) / 100) * (1 - spread / 255)
    if label is Color.RED:
        return _dominance_confidence(r, max(g, b))
    if label is Color.GREEN:
        return _dominance_confidence(g, max(r, b))
    if label is Color.BLUE:
        return _dominance_confidence(b, max(r, g))
    if label is Color.ORANGE:
        if r > 180 and 0.45 * r <= g <= 0.8 * r and b < 0.5 * g:
            return 0.95
        if r > 140 and 0.4 * r <= g <= 0.85 * r and b < 0.6 * g:
            return 0.85
        if r > 110 and r > g > b:
            return 0.75
        return _clamp(min((r - 80) / 80, (g - 40) / 80), 0.0, 0.6) * (1 - b / 255)
    if label is Color.YELLOW:
        lo = min(r, g)
        if r > 180 and g > 180 and b < 0.5 * lo and abs(r - g) < 40:
            return 0.95
        if r > 150 and g > 150 and b < 0.6 * lo and abs(r - g) < 50:
            return 0.85
        if r > 120 and g > 120 and b < 0.7 * lo:
            return 0.75
        return _clamp(min((r - 100) / 80, (g - 100) / 80), 0.0, 0.6) * (1 - abs(r - g) / 255)
    return 0.0


# ---------- Technique 4: reference distance ----------

def distance_matches(rgb: Rgb) -> List[Color]:
    best_color, best = None, float('inf')
    for name, ref, weight in REFERENCE_COLORS:
        weighted = rgb_distance(rgb, ref) / weight
        if weighted < best:
            best, best_color = weighted, name
    if best_color is None or best >= MAX_REFERENCE_DISTANCE:
        return []
    return [Color(best_color)]


def distance_confidence(label: Color, rgb: Rgb) -> float:
    dists = [rgb_distance(rgb, ref) for name, ref, _ in REFERENCE_COLORS if name == label.value]
    if not dists:
        return 0.0
    return _clamp(1 - min(dists) / DISTANCE_CONFIDENCE_SPAN)


# Priority order: most discriminative first.
TECHNIQUES: List[Tuple[str, Callable[[Rgb], List[Color]], Callable[[Color, Rgb], float]]] = [
    ('hsv', hsv_matches, hsv_confidence),
    ('lab', lab_matches, lab_confidence),
    ('rgb', rgb_matches, rgb_confidence),
    ('distance', distance_matches, distance_confidence),
]


@dataclass
class ClassificationDetail:
    label: Color
    confidence: float
    technique: Optional[str]
    rgb: Rgb
    scores: Dict[str, float] = field(default_factory=dict)

    def to_classification(self) -> FaceletClassification:
        return FaceletClassification(self.label, self.confidence)


def label_by_priority(rgb: Rgb) -> Tuple[Color, Optional[str]]:
    for name, matches, _ in TECHNIQUES:
        found = matches(rgb)
        if found:
            return found[0], name
    return Color.UNKNOWN, None


def fused_confidence(label: Color, rgb: Rgb, weights: Dict[str, float] = CONFIDENCE_WEIGHTS) -> Tuple[float, Dict[str, float]]:
    if label is Color.UNKNOWN:
        return 0.0, {}
    scores = {name: conf(label, rgb) for name, _, conf in TECHNIQUES}
    total = sum(weights[name] * scores[name] for name in scores)
    return _clamp(total), scores


class ColorClassifier:
    def __init__(self,
                 confidence_floor: float = DEFAULT_CONFIDENCE_FLOOR,
                 calibration: Optional[LightingCalibration] = None,
                 weights: Optional[Dict[str, float]] = None,
                 retry_with_lighting: bool = True):
        self.confidence_floor = float(confidence_floor)
        self.calibration = calibration
        self.weights = dict(weights or CONFIDENCE_WEIGHTS)
        self.retry_with_lighting = retry_with_lighting

    def explain(self, rgb: Rgb) -> ClassificationDetail:
        """Label, fused confidence, the deciding technique and per-technique scores."""
        rgb = tuple(int(c) for c in rgb)
        candidate = self.calibration.apply(rgb) if self.calibration else rgb
        label, technique = label_by_priority(candidate)
        if label is Color.UNKNOWN and self.retry_with_lighting:
            corrected = correct_for_lighting(candidate)
            if corrected != candidate:
                label, technique = label_by_priority(corrected)
                if label is not Color.UNKNOWN:
                    logger.debug("[Classifier] %s -> %s after lighting correction %s", rgb, label.value, corrected)
                    candidate = corrected
        confidence, scores = fused_confidence(label, candidate, self.weights)
        return ClassificationDetail(label, confidence, technique, candidate, scores)

    def classify(self, rgb: Optional[Rgb]) -> FaceletClassification:
        if rgb is None:
            return FaceletClassification(Color.UNKNOWN, 0.0)
        return self.explain(rgb).to_classification()

    def is_valid(self, classification: FaceletClassification) -> bool:
        return classification.is_known and classification.confidence > self.confidence_floor
