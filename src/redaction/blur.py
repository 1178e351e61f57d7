"""
Multi-pass box blur applied in place to buffer regions.

Repeated horizontal + vertical mean filters approximate a Gaussian blur.
Each pass is a running-sum mean, so cost does not depend on the radius.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from models.buffer import PixelBuffer
from models.config import BlurConfig
from models.region import RedactionRegion, RegionKind


def box_mean(values: np.ndarray, radius: int, axis: int) -> np.ndarray:
    """
    Mean over a window of `radius` pixels each side along `axis`.

    Windows are truncated at the array border (edge pixels average fewer
    neighbours) rather than padded.
    """
    n = values.shape[axis]
    if radius <= 0 or n == 0:
        return values

    pad = [(0, 0)] * values.ndim
    pad[axis] = (1, 0)
    csum = np.pad(np.cumsum(values, axis=axis), pad)

    idx = np.arange(n)
    lo = np.clip(idx - radius, 0, n)
    hi = np.clip(idx + radius + 1, 0, n)
    sums = np.take(csum, hi, axis=axis) - np.take(csum, lo, axis=axis)

    shape = [1] * values.ndim
    shape[axis] = n
    counts = (hi - lo).reshape(shape)
    return sums / counts


class BlurRenderer:
    """
    The only stage that mutates the pixel buffer.

    Each call takes the buffer's exclusive write slot, so overlapping or
    reentrant blurs on the same buffer raise `BufferBusyError` instead of
    interleaving.
    """

    def __init__(self, cfg: Optional[BlurConfig] = None):
        self.cfg = cfg or BlurConfig()

    def passes_for(self, kind: RegionKind) -> int:
        return self.cfg.plate_passes if kind == RegionKind.PLATE else self.cfg.face_passes

    def effective_radius(self, region: RedactionRegion, w: int, h: int) -> int:
        """Configured radius capped by region size, never below one pixel."""
        return max(1, min(int(region.blur_radius), min(w, h) // self.cfg.radius_divisor))

    def blur_region(self, buffer: PixelBuffer, region: RedactionRegion, passes: Optional[int] = None) -> bool:
        """
        Blur one region in place.

        Alpha is left untouched. Returns False when the clamped region is empty.
        """
        x1 = max(0, region.x)
        y1 = max(0, region.y)
        x2 = min(buffer.width, region.x2)
        y2 = min(buffer.height, region.y2)
        w, h = x2 - x1, y2 - y1
        if w <= 0 or h <= 0:
            return False

        if passes is None:
            passes = self.passes_for(region.kind)
        radius = self.effective_radius(region, w, h)

        with buffer.exclusive_write() as pixels:
            patch = pixels[y1:y2, x1:x2, :3].astype(np.float64)
            for _ in range(passes):
                patch = box_mean(patch, radius, axis=1)
                patch = box_mean(patch, radius, axis=0)
            pixels[y1:y2, x1:x2, :3] = np.clip(np.rint(patch), 0, 255).astype(np.uint8)

        logging.debug(f"Blurred {region.kind.value} region {w}x{h} at ({x1},{y1}) radius={radius} passes={passes}")
        return True
