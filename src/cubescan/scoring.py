"""
scoring.py — capture quality (alignment) score and overlay bands
================================================================

    score = min(100, 60 * valid / 9 + min(30, 30 * avg_confidence) + min(10, 2 * unique_colors))

`avg_confidence` is the summed confidence of the valid detections divided by
the 9 cells, so a half-detected face cannot reach full confidence credit.
A capture with no valid detection scores exactly 0.

Low color diversity (a single-color face) only costs the diversity term: a
solved cube legitimately shows monochrome faces, so callers should treat it
as a warning rather than a rejection.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

from typing import Iterable

from cubescan.app_types import Color
from cubescan.config import (
    CONFIDENCE_HIGH,
    CONFIDENCE_MEDIUM,
    SCORE_CONFIDENCE_POINTS,
    SCORE_DETECTION_POINTS,
    SCORE_DIVERSITY_POINTS,
    SCORE_GOOD,
    SCORE_MEDIUM,
    SCORE_POINTS_PER_COLOR,
)


def alignment_score(valid_detections: int, total_confidence: float, labels: Iterable[Color]) -> int:
    if valid_detections <= 0:
        return 0
    detection = SCORE_DETECTION_POINTS * (valid_detections / 9.0)
    confidence = min(SCORE_CONFIDENCE_POINTS, SCORE_CONFIDENCE_POINTS * (total_confidence / 9.0))
    unique = {c for c in labels if c is not Color.UNKNOWN}
    diversity = min(SCORE_DIVERSITY_POINTS, SCORE_POINTS_PER_COLOR * len(unique))
    return int(round(min(100.0, detection + confidence + diversity)))


def confidence_band(confidence: float) -> str:
    """Border color class of a facelet overlay."""
    if confidence > CONFIDENCE_HIGH:
        return 'high'
    if confidence > CONFIDENCE_MEDIUM:
        return 'medium'
    return 'low'


def score_band(score: float) -> str:
    """Border color class of the grid overlay."""
    if score > SCORE_GOOD:
        return 'good'
    if score > SCORE_MEDIUM:
        return 'medium'
    return 'poor'
