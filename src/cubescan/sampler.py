"""
sampler.py — robust representative color of one facelet
========================================================

For each facelet the sampler reads a square neighbourhood around the facelet
center and reduces it to a single RGB triple that is resistant to noise,
specular spots and the black plastic between stickers:

1. take every in-bounds pixel within `radius = max(2, size / divisor)` of the
   center (divisor 6 by default; 8 is a cheaper preview setting),
2. drop "edge" pixels whose mean absolute brightness difference to their
   in-bounds 8-neighbours exceeds `edge_threshold` (kept only when enough
   non-edge pixels remain),
3. group the samples greedily by Euclidean RGB distance (`cluster_threshold`),
   each cluster tracking a rounded running mean,
4. return the centroid of the largest cluster when it holds at least
   `min_share` of the samples, otherwise the plain mean of all samples.

If the region is entirely off-frame the sampler returns None; the caller must
then treat the facelet as `unknown`.

-------------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from cubescan.app_types import Rgb
from cubescan.colors import brightness_array
from cubescan.config import (
    CLUSTER_MIN_SHARE,
    CLUSTER_THRESHOLD,
    EDGE_THRESHOLD,
    MIN_NON_EDGE_SAMPLES,
    SAMPLE_MIN_RADIUS,
    SAMPLE_RADIUS_DIVISOR,
)
from cubescan.frame import Frame

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# 8-neighbourhood offsets (dy, dx).
_NEIGHBOURS = [(-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1)]


def edge_mask(frame: Frame, x0: int, y0: int, x1: int, y1: int,
              threshold: float = EDGE_THRESHOLD) -> np.ndarray:
    """
    Boolean mask over the clipped window [x0, x1) x [y0, y1): True where the
    pixel's mean brightness difference against its in-bounds 8-neighbours is
    above `threshold`.
    """
    core, cx0, cy0 = frame.patch(x0, y0, x1, y1)
    if core.size == 0:
        return np.zeros((0, 0), dtype=bool)
    h, w = core.shape[:2]

    ext, ex0, ey0 = frame.patch(cx0 - 1, cy0 - 1, cx0 + w + 1, cy0 + h + 1)
    padded = np.full((h + 2, w + 2), np.nan)
    oy, ox = ey0 - (cy0 - 1), ex0 - (cx0 - 1)
    padded[oy:oy + ext.shape[0], ox:ox + ext.shape[1]] = brightness_array(ext)

    center = padded[1:h + 1, 1:w + 1]
    diffs = np.stack([
        np.abs(center - padded[1 + dy:h + 1 + dy, 1 + dx:w + 1 + dx])
        for dy, dx in _NEIGHBOURS
    ])
    valid = ~np.isnan(diffs)
    counts = valid.sum(axis=0)
    totals = np.where(valid, diffs, 0.0).sum(axis=0)
    mean = np.divide(totals, counts, out=np.zeros_like(totals), where=counts > 0)
    return (counts > 0) & (mean > threshold)


def cluster_samples(samples: np.ndarray, threshold: float = CLUSTER_THRESHOLD) -> List[dict]:
    """
    Greedy single-pass clustering. A sample joins the first cluster whose
    center is closer than `threshold`; the center is then recomputed as the
    rounded mean of its members.
    """
    data = samples.astype(float).reshape(-1, 3)
    centers = np.empty((0, 3))
    sums = np.empty((0, 3))
    counts: List[int] = []
    for sample in data:
        # distances to every current center in one call
        near = np.flatnonzero(np.linalg.norm(centers - sample, axis=1) < threshold)
        if near.size:
            i = int(near[0])
            sums[i] += sample
            counts[i] += 1
            centers[i] = np.round(sums[i] / counts[i])
        else:
            centers = np.vstack([centers, sample])
            sums = np.vstack([sums, sample])
            counts.append(1)
    return [{'center': centers[i], 'sum': sums[i], 'count': n} for i, n in enumerate(counts)]


class FaceletSampler:
    def __init__(self,
                 radius_divisor: float = SAMPLE_RADIUS_DIVISOR,
                 edge_threshold: float = EDGE_THRESHOLD,
                 cluster_threshold: float = CLUSTER_THRESHOLD,
                 min_share: float = CLUSTER_MIN_SHARE,
                 reject_edges: bool = True):
        self.radius_divisor = float(radius_divisor)
        self.edge_threshold = float(edge_threshold)
        self.cluster_threshold = float(cluster_threshold)
        self.min_share = float(min_share)
        self.reject_edges = reject_edges

    def radius(self, facelet_size: float) -> int:
        return max(SAMPLE_MIN_RADIUS, int(facelet_size / self.radius_divisor))

    def gather(self, frame: Frame, center_x: float, center_y: float, facelet_size: float) -> np.ndarray:
        """In-bounds (N, 3) samples around the center, edge pixels removed when possible."""
        r = self.radius(facelet_size)
        cx, cy = int(np.floor(center_x)), int(np.floor(center_y))
        x0, y0, x1, y1 = cx - r, cy - r, cx + r + 1, cy + r + 1
        patch, _, _ = frame.patch(x0, y0, x1, y1)
        if patch.size == 0:
            return np.empty((0, 3), dtype=np.uint8)
        samples = patch.reshape(-1, 3)
        if not self.reject_edges:
            return samples

        edges = edge_mask(frame, x0, y0, x1, y1, self.edge_threshold).reshape(-1)
        kept = samples[~edges]
        if kept.shape[0] < MIN_NON_EDGE_SAMPLES:
            logger.debug("[Sampler] only %d non-edge pixels at (%.1f, %.1f), keeping all %d",
                         kept.shape[0], center_x, center_y, samples.shape[0])
            return samples
        return kept

    def sample(self, frame: Frame, center_x: float, center_y: float, facelet_size: float) -> Optional[Rgb]:
        """
        Representative RGB of the facelet around (center_x, center_y), or None
        when no pixel of the neighbourhood lies inside the frame.
        """
        samples = self.gather(frame, center_x, center_y, facelet_size)
        if samples.shape[0] == 0:
            return None

        clusters = cluster_samples(samples, self.cluster_threshold)
        largest = max(clusters, key=lambda cl: cl['count'])
        if largest['count'] >= samples.shape[0] * self.min_share:
            center = largest['center']
        else:
            center = np.round(samples.astype(float).mean(axis=0))
        return (int(center[0]), int(center[1]), int(center[2]))
