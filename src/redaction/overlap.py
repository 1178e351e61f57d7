"""
Overlap resolution for plate candidates and redaction regions.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from models.config import OverlapConfig, PlateConfig
from models.region import PlateCandidate, RedactionRegion


def overlap_ratio(a, b) -> float:
    """
    Intersection area divided by the area of `a` (intersection-over-own-area).

    Works for anything with an `as_box()` method.
    """
    box_a = a.as_box()
    area = box_a.area
    if area <= 0:
        return 0.0
    return box_a.intersection(b.as_box()) / area


class OverlapResolver:
    """
    Deduplicates overlapping plate candidates and redaction regions.

    Example:
        resolver = OverlapResolver(plate_cfg, overlap_cfg)
        kept = resolver.filter_plate_sizes(resolver.resolve_candidates(raw), width, height)
    """

    def __init__(self, plate_cfg: Optional[PlateConfig] = None, overlap_cfg: Optional[OverlapConfig] = None):
        self.plate_cfg = plate_cfg or PlateConfig()
        self.overlap_cfg = overlap_cfg or OverlapConfig()

    def resolve_candidates(self, candidates: Iterable[PlateCandidate]) -> List[PlateCandidate]:
        """
        Greedy suppression in descending confidence.

        A candidate is dropped when more than `overlap_threshold` of its own
        area lies inside an already kept candidate.
        """
        threshold = self.plate_cfg.overlap_threshold
        kept: List[PlateCandidate] = []
        for cand in sorted(candidates, key=lambda c: c.confidence, reverse=True):
            if any(overlap_ratio(cand, k) > threshold for k in kept):
                continue
            kept.append(cand)
        return kept

    def filter_plate_sizes(
        self,
        candidates: Iterable[PlateCandidate],
        image_width: int,
        image_height: int,
    ) -> List[PlateCandidate]:
        """Apply absolute and image-relative size bounds, then keep the top N by confidence."""
        cfg = self.plate_cfg
        image_area = image_width * image_height
        if image_area <= 0:
            return []

        out = []
        for c in candidates:
            ratio = c.area / image_area
            if not (cfg.final_min_width <= c.w <= cfg.final_max_width):
                continue
            if not (cfg.final_min_height <= c.h <= cfg.final_max_height):
                continue
            if not (cfg.min_area_ratio <= ratio <= cfg.max_area_ratio):
                continue
            out.append(c)

        out.sort(key=lambda c: c.confidence, reverse=True)
        return out[: cfg.max_candidates]

    def resolve_regions(self, regions: Iterable[RedactionRegion]) -> List[RedactionRegion]:
        """
        Drop regions already covered by a larger region of the same kind.

        Regions are considered in blur order (priority, then larger first).
        The result keeps that order. A plate inside a face is kept so it
        still gets the plate pass count.
        """
        threshold = self.overlap_cfg.region_overlap_threshold
        kept: List[RedactionRegion] = []
        for region in sorted(regions, key=lambda r: (r.priority, -r.area)):
            if any(k.kind == region.kind and overlap_ratio(region, k) > threshold for k in kept):
                logging.debug(f"Dropping {region.kind.value} region at ({region.x},{region.y}) covered by another {region.kind.value} region")
                continue
            kept.append(region)
        return kept
