"""
colors.py — color-space helpers
===============================

Pure numeric conversions used by the classifier:

* `rgb_to_hsv(r, g, b)` -> (h in [0, 360), s in [0, 255], v in [0, 255])
* `rgb_to_lab(r, g, b)` -> CIE-L*a*b* (L ~ 0..100, a/b centered around 0),
  gamma-corrected sRGB -> XYZ -> Lab with the D65 white point.
* `lab_chroma_hue(a, b)` -> chroma and hue angle (degrees) in the a*b* plane.
* `rgb_distance(c1, c2)` -> Euclidean distance in RGB.

`brightness_array(rgb)` works on (..., 3) numpy patches and feeds the
sampler's edge rejection.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np

# D65 reference white (X, Y, Z) on the 0..1 scale.
_WHITE_D65 = (0.95047, 1.00000, 1.08883)


def rgb_to_hsv(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """
    Convert an RGB triple (0..255) to HSV with hue in degrees and S/V scaled
    to 0..255. Black maps to (0, 0, 0) instead of dividing by zero.
    """
    r, g, b = r / 255.0, g / 255.0, b / 255.0
    mx = max(r, g, b)
    mn = min(r, g, b)
    d = mx - mn
    s = 0.0 if mx == 0 else d / mx
    h = 0.0
    if d != 0:
        if mx == r:
            h = (g - b) / d + (6.0 if g < b else 0.0)
        elif mx == g:
            h = (b - r) / d + 2.0
        else:
            h = (r - g) / d + 4.0
        h *= 60.0
        if h >= 360.0:
            h -= 360.0
    return (h, s * 255.0, mx * 255.0)


def _to_linear(v: float) -> float:
    if v > 0.04045:
        return ((v + 0.055) / 1.055) ** 2.4
    return v / 12.92


def _f(t: float) -> float:
    if t > 0.008856:
        return t ** (1.0 / 3.0)
    return (7.787 * t) + (16.0 / 116.0)


def rgb_to_lab(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """
    Convert an RGB triple (0..255) to CIE L*a*b*.
    """
    R = _to_linear(r / 255.0)
    G = _to_linear(g / 255.0)
    B = _to_linear(b / 255.0)

    X = R * 0.4124 + G * 0.3576 + B * 0.1805
    Y = R * 0.2126 + G * 0.7152 + B * 0.0722
    Z = R * 0.0193 + G * 0.1192 + B * 0.9505

    fx = _f(X / _WHITE_D65[0])
    fy = _f(Y / _WHITE_D65[1])
    fz = _f(Z / _WHITE_D65[2])

    L = (116.0 * fy) - 16.0
    a = 500.0 * (fx - fy)
    b_ = 200.0 * (fy - fz)
    return (float(L), float(a), float(b_))


def lab_chroma_hue(a: float, b: float) -> Tuple[float, float]:
    """Chroma and hue angle (0..360 degrees) of an a*b* pair."""
    chroma = math.hypot(a, b)
    if chroma == 0:
        return 0.0, 0.0
    hue = math.degrees(math.atan2(b, a))
    if hue < 0:
        hue += 360.0
    return chroma, hue


def rgb_distance(c1, c2) -> float:
    return math.sqrt((c1[0] - c2[0]) ** 2 + (c1[1] - c2[1]) ** 2 + (c1[2] - c2[2]) ** 2)


def brightness_array(rgb: np.ndarray) -> np.ndarray:
    """Mean of the three channels, float (...,)."""
    return rgb.astype(float).mean(axis=-1)

