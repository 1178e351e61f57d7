"""
Skin-tone region detector used as a face fallback.

Samples the image on a coarse grid, grows connected skin-coloured regions
with a bounded stack flood fill, and keeps regions whose bounding box has
face-like proportions. Cost is bounded by the visit cap per region rather
than by region size.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

import numpy as np

from models.buffer import PixelBuffer
from models.config import SkinConfig
from models.detection import BoundingBox, Detection, DetectionKind, DetectionSource

from .base import Detector


@dataclass(frozen=True)
class SkinRegion:
    """A grown skin region: sampled-pixel count and inclusive sample bounds."""
    min_x: int
    min_y: int
    max_x: int
    max_y: int
    pixel_count: int


def skin_mask(rgb: np.ndarray, cfg: SkinConfig) -> np.ndarray:
    """
    Per-pixel skin test over an (h, w, 3) RGB array.

    r > 95, g > 40, b > 20, max - min > 15, |r - g| > 15, r > g, r > b
    (thresholds from cfg).
    """
    c = rgb.astype(np.int16)
    r, g, b = c[..., 0], c[..., 1], c[..., 2]
    spread = c.max(axis=-1) - c.min(axis=-1)
    return (
        (r > cfg.min_red)
        & (g > cfg.min_green)
        & (b > cfg.min_blue)
        & (spread > cfg.min_channel_spread)
        & (np.abs(r - g) > cfg.min_red_green_diff)
        & (r > g)
        & (r > b)
    )


def is_like_face_region(width: float, height: float, cfg: SkinConfig) -> bool:
    """Faces are roughly square to slightly tall."""
    if height <= 0:
        return False
    aspect = width / height
    return (
        cfg.min_aspect <= aspect <= cfg.max_aspect
        and cfg.min_width <= width <= cfg.max_width
        and cfg.min_height <= height <= cfg.max_height
    )


class SkinRegionDetector(Detector):
    """
    Classical face locator based on skin colour.

    Example:
        detector = SkinRegionDetector(SkinConfig())
        faces = detector.detect(buffer)
    """

    def __init__(self, cfg: Optional[SkinConfig] = None):
        self.cfg = cfg or SkinConfig()

    def detect(self, buffer: PixelBuffer) -> List[Detection]:
        mask = skin_mask(buffer.rgb, self.cfg)
        out: List[Detection] = []
        for region in self.grow_regions(mask):
            box = self._with_margin(region, buffer.width, buffer.height)
            if not is_like_face_region(box.width, box.height, self.cfg):
                continue
            out.append(
                Detection(
                    kind=DetectionKind.FACE,
                    bbox=box,
                    confidence=min(1.0, region.pixel_count / self.cfg.max_region_pixels),
                    source=DetectionSource.CLASSICAL_FALLBACK,
                    class_name="skin",
                )
            )
        logging.debug(f"Skin fallback found {len(out)} face-like region(s)")
        return out

    def grow_regions(self, mask: np.ndarray) -> List[SkinRegion]:
        """
        Scan the mask on the stride grid and grow a region from every unvisited seed.

        Only regions with more than `min_region_pixels` samples are returned.
        """
        height, width = mask.shape
        stride = self.cfg.stride
        visited: Set[Tuple[int, int]] = set()
        regions: List[SkinRegion] = []

        for y in range(0, height, stride):
            for x in range(0, width, stride):
                if not mask[y, x] or (x, y) in visited:
                    continue
                region = self.grow_region(mask, x, y, visited)
                if region.pixel_count > self.cfg.min_region_pixels:
                    regions.append(region)
        return regions

    def grow_region(
        self,
        mask: np.ndarray,
        start_x: int,
        start_y: int,
        visited: Set[Tuple[int, int]],
    ) -> SkinRegion:
        """
        Stack-based flood fill from one seed, probing neighbours at the grid stride.

        Stops once `max_region_pixels` samples have been taken. `visited` is
        shared across seeds so no sample belongs to two regions.
        """
        height, width = mask.shape
        stride = self.cfg.stride
        cap = self.cfg.max_region_pixels

        stack = [(start_x, start_y)]
        min_x = max_x = start_x
        min_y = max_y = start_y
        count = 0

        while stack and count < cap:
            x, y = stack.pop()
            if x < 0 or x >= width or y < 0 or y >= height:
                continue
            if (x, y) in visited or not mask[y, x]:
                continue

            visited.add((x, y))
            count += 1
            min_x = min(min_x, x)
            max_x = max(max_x, x)
            min_y = min(min_y, y)
            max_y = max(max_y, y)

            stack.extend((
                (x + stride, y),
                (x - stride, y),
                (x, y + stride),
                (x, y - stride),
            ))

        return SkinRegion(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y, pixel_count=count)

    def _with_margin(self, region: SkinRegion, width: int, height: int) -> BoundingBox:
        m = self.cfg.margin
        x1 = max(0, region.min_x - m)
        y1 = max(0, region.min_y - m)
        x2 = min(width, region.max_x + m)
        y2 = min(height, region.max_y + m)
        return BoundingBox(x1=x1, y1=y1, x2=x2, y2=y2)
