"""
Edge-density licence plate search (plate fallback).

Plates are small, wide rectangles with dense, mostly vertical character
strokes. The detector slides windows over the likely plate area (lower part
of each vehicle, or the lower band of the image when no vehicle is known)
and keeps windows whose Sobel edge density looks like text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

import cv2
import numpy as np

from inference.backend import DetectionError
from models.buffer import PixelBuffer
from models.config import PlateConfig
from models.detection import Detection
from models.region import PlateCandidate
from redaction.overlap import OverlapResolver


@dataclass(frozen=True)
class SearchRegion:
    x1: int
    y1: int
    x2: int
    y2: int


def edge_map(buffer: PixelBuffer, threshold: float) -> np.ndarray:
    """Boolean (h, w) map of pixels whose Sobel gradient magnitude exceeds threshold."""
    rgb = buffer.rgb.astype(np.float32)
    luma = 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
    gx = cv2.Sobel(luma, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(luma, cv2.CV_32F, 0, 1, ksize=3)
    return cv2.magnitude(gx, gy) > threshold


class EdgeBasedPlateDetector:
    """
    Sliding-window plate search over a Sobel edge map.

    Returns `PlateCandidate`s rather than `Detection`s: candidates carry the
    densities used to score them, and the region policy pads them before
    blurring.
    """

    def __init__(self, cfg: Optional[PlateConfig] = None, resolver: Optional[OverlapResolver] = None):
        self.cfg = cfg or PlateConfig()
        self.resolver = resolver or OverlapResolver(plate_cfg=self.cfg)

    def detect(self, buffer: PixelBuffer, vehicles: Iterable[Detection] = ()) -> List[PlateCandidate]:
        """
        Find plate candidates.

        Args:
            buffer: Image to search.
            vehicles: Vehicle detections; when given, only their lower part is searched.
        """
        width, height = buffer.width, buffer.height
        try:
            edges = edge_map(buffer, self.cfg.edge_threshold)
        except cv2.error as e:
            raise DetectionError(f"Edge map failed for {buffer}: {e}") from e

        raw: List[PlateCandidate] = []
        for region in self.search_regions(width, height, vehicles):
            raw.extend(self.scan_region(edges, region, width, height))

        kept = self.resolver.filter_plate_sizes(self.resolver.resolve_candidates(raw), width, height)
        logging.debug(f"Plate search: {len(raw)} window(s) passed, {len(kept)} candidate(s) kept")
        return kept

    def search_regions(self, width: int, height: int, vehicles: Iterable[Detection] = ()) -> List[SearchRegion]:
        regions = []
        for v in vehicles:
            x1 = max(0, int(v.x1))
            x2 = min(width, int(v.x2))
            y1 = max(0, int(v.y1 + v.bbox.height * self.cfg.vehicle_search_start))
            y2 = min(height, int(v.y2))
            if x2 > x1 and y2 > y1:
                regions.append(SearchRegion(x1, y1, x2, y2))

        if not regions:
            regions.append(SearchRegion(0, int(height * self.cfg.image_search_start), width, height))
        return regions

    def scan_region(
        self,
        edges: np.ndarray,
        region: SearchRegion,
        image_width: int,
        image_height: int,
    ) -> List[PlateCandidate]:
        """Evaluate every window size and position inside one search region."""
        cfg = self.cfg
        min_w = max(cfg.min_width_px, image_width * cfg.min_width_ratio)
        max_w = min(cfg.max_width_px, image_width * cfg.max_width_ratio)
        min_h = max(cfg.min_height_px, image_height * cfg.min_height_ratio)
        max_h = min(cfg.max_height_px, image_height * cfg.max_height_ratio)
        min_w, min_h = int(np.ceil(min_w)), int(np.ceil(min_h))

        step = max(cfg.min_step, image_width // cfg.step_divisor)
        max_area = image_width * image_height * cfg.max_window_area_ratio

        out: List[PlateCandidate] = []
        for y in range(region.y1, region.y2 - min_h, step):
            for x in range(region.x1, region.x2 - min_w, step):
                w_limit = min(max_w, region.x2 - x)
                h_limit = min(max_h, region.y2 - y)
                for w in range(min_w, int(w_limit) + 1, step * 3):
                    for h in range(min_h, int(h_limit) + 1, max(step, cfg.min_height_step)):
                        cand = self.score_window(edges, x, y, w, h, max_area)
                        if cand is not None:
                            out.append(cand)
        return out

    def score_window(
        self,
        edges: np.ndarray,
        x: int,
        y: int,
        w: int,
        h: int,
        max_area: float,
    ) -> Optional[PlateCandidate]:
        """Return a candidate when the window passes the shape and density tests."""
        cfg = self.cfg
        if w * h > max_area:
            return None
        aspect = w / h
        if not (cfg.min_aspect <= aspect <= cfg.max_aspect):
            return None

        s = cfg.sample_step
        sampled = edges[y:y + h:s, x:x + w:s]
        if sampled.size == 0:
            return None
        edge_density = float(sampled.mean())
        if not (cfg.min_edge_density < edge_density < cfg.max_edge_density):
            return None

        # characters give many vertical strokes across the middle row
        mid = edges[y + h // 2, x:x + w:s]
        horizontal_density = float(np.count_nonzero(mid)) / (w / s)
        if horizontal_density <= cfg.min_horizontal_density:
            return None

        return PlateCandidate(
            x=x,
            y=y,
            w=w,
            h=h,
            confidence=edge_density * horizontal_density,
            aspect_ratio=aspect,
            edge_density=edge_density,
            horizontal_density=horizontal_density,
        )
