"""
Redaction region and plate candidate models.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .detection import BoundingBox


class RegionKind(str, Enum):
    """What a redaction region hides. Also fixes the blur order."""
    FACE = "face"
    HEAD = "head"
    PLATE = "plate"


# Blur order: faces first, then fallback heads, then plates.
REGION_PRIORITY = {
    RegionKind.FACE: 0,
    RegionKind.HEAD: 1,
    RegionKind.PLATE: 2,
}


@dataclass(frozen=True)
class RedactionRegion:
    """
    A clamped integer rectangle that the blur renderer will obscure.

    Attributes:
        x: Left edge (inclusive).
        y: Top edge (inclusive).
        w: Width in pixels (> 0).
        h: Height in pixels (> 0).
        blur_radius: Requested blur radius in pixels.
        kind: Face, head or plate.
        priority: Processing order (lower blurs first).
    """
    x: int
    y: int
    w: int
    h: int
    blur_radius: int
    kind: RegionKind = RegionKind.FACE
    priority: int = 0

    @property
    def x2(self) -> int:
        return self.x + self.w

    @property
    def y2(self) -> int:
        return self.y + self.h

    @property
    def area(self) -> int:
        return self.w * self.h

    def as_box(self) -> BoundingBox:
        return BoundingBox(self.x, self.y, self.x2, self.y2)

    def is_within(self, width: int, height: int) -> bool:
        return self.x >= 0 and self.y >= 0 and self.x2 <= width and self.y2 <= height

    @classmethod
    def from_float_box(
        cls,
        x: float,
        y: float,
        w: float,
        h: float,
        image_width: int,
        image_height: int,
        blur_radius: int,
        kind: RegionKind,
    ) -> Optional["RedactionRegion"]:
        """
        Snap a fractional box outwards to whole pixels and clamp it to the image.

        Returns None when nothing of the box is left inside the image.
        """
        # round first so values like 40.000000001 do not grow a pixel
        x1 = math.floor(round(x, 6))
        y1 = math.floor(round(y, 6))
        x2 = math.ceil(round(x + w, 6))
        y2 = math.ceil(round(y + h, 6))

        x1 = max(0, min(image_width, x1))
        y1 = max(0, min(image_height, y1))
        x2 = max(0, min(image_width, x2))
        y2 = max(0, min(image_height, y2))

        if x2 - x1 <= 0 or y2 - y1 <= 0:
            return None
        return cls(
            x=x1,
            y=y1,
            w=x2 - x1,
            h=y2 - y1,
            blur_radius=int(blur_radius),
            kind=kind,
            priority=REGION_PRIORITY[kind],
        )


@dataclass(frozen=True)
class PlateCandidate:
    """
    A plate-like rectangle found by the edge-density search.

    confidence is edge_density * horizontal_density.
    """
    x: int
    y: int
    w: int
    h: int
    confidence: float
    aspect_ratio: float
    edge_density: float = 0.0
    horizontal_density: float = 0.0

    @property
    def area(self) -> int:
        return self.w * self.h

    def as_box(self) -> BoundingBox:
        return BoundingBox.from_xywh(self.x, self.y, self.w, self.h)
