"""
frame.py — pixel reader used by the perception pipeline
=======================================================

`Frame` wraps an RGB uint8 image (H x W x 3 numpy array) and is the only view
of a video frame the core needs: width/height, `pixel(x, y)` and rectangular
patch access with bounds clipping. Acquisition stays with the caller; the
helpers here only adapt OpenCV's BGR images or image files.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from cubescan.app_types import Rgb


class Frame:
    def __init__(self, rgb: np.ndarray):
        if rgb.ndim != 3 or rgb.shape[2] < 3:
            raise ValueError(f"Frame expects an HxWx3 array, got shape {rgb.shape}")
        if rgb.dtype != np.uint8:
            rgb = np.clip(rgb, 0, 255).astype(np.uint8)
        self.rgb = rgb[:, :, :3]

    @classmethod
    def from_bgr(cls, bgr: np.ndarray) -> 'Frame':
        """Wrap an OpenCV (BGR) image."""
        return cls(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))

    @classmethod
    def load(cls, path: Union[str, Path], max_side: Optional[int] = None) -> 'Frame':
        """
        Read an image file. `max_side` downsizes large photos so per-facelet
        sampling stays cheap.
        """
        img = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if img is None:
            raise FileNotFoundError(f"Could not read image: {path}")
        if max_side:
            h, w = img.shape[:2]
            scale = max_side / float(max(h, w))
            if scale < 1.0:
                img = cv2.resize(img, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)
        return cls.from_bgr(img)

    @property
    def width(self) -> int:
        return int(self.rgb.shape[1])

    @property
    def height(self) -> int:
        return int(self.rgb.shape[0])

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def pixel(self, x: int, y: int) -> Rgb:
        r, g, b = self.rgb[y, x]
        return (int(r), int(g), int(b))

    def patch(self, x0: int, y0: int, x1: int, y1: int) -> Tuple[np.ndarray, int, int]:
        """
        Pixels in [x0, x1) x [y0, y1) clipped to the frame. Returns the patch and
        the clipped top-left corner (may be an empty array).
        """
        cx0, cy0 = max(0, x0), max(0, y0)
        cx1, cy1 = min(self.width, x1), min(self.height, y1)
        if cx1 <= cx0 or cy1 <= cy0:
            return np.empty((0, 0, 3), dtype=np.uint8), cx0, cy0
        return self.rgb[cy0:cy1, cx0:cx1], cx0, cy0
