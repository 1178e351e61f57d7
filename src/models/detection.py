"""
Detection models for face / person / vehicle detector results.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple


class DetectionKind(str, Enum):
    """What a detection box contains."""
    FACE = "face"
    PERSON = "person"
    VEHICLE = "vehicle"


class DetectionSource(str, Enum):
    """Which kind of detector produced a detection."""
    ML_ADAPTER = "ml_adapter"
    CLASSICAL_FALLBACK = "classical_fallback"


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def x(self) -> float:
        return self.x1

    @property
    def y(self) -> float:
        return self.y1

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_xywh(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x1, self.y1, self.width, self.height)

    def intersection(self, other: "BoundingBox") -> float:
        """Area shared with another box (0 when disjoint)."""
        ix = min(self.x2, other.x2) - max(self.x1, other.x1)
        iy = min(self.y2, other.y2) - max(self.y1, other.y1)
        if ix <= 0 or iy <= 0:
            return 0.0
        return ix * iy

    @classmethod
    def from_tuple(cls, t: Tuple[float, float, float, float]) -> "BoundingBox":
        """Create from (x1, y1, x2, y2) tuple."""
        return cls(x1=t[0], y1=t[1], x2=t[2], y2=t[3])

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)


@dataclass(frozen=True)
class Detection:
    """
    A single detection from a face/object detector or a classical fallback.

    Attributes:
        kind: Face, person or vehicle.
        bbox: Bounding box in pixel coordinates.
        confidence: Detection confidence score (0-1).
        source: Whether an ML adapter or a classical fallback produced it.
        class_name: Optional detector label (e.g. "car", "truck").
    """
    kind: DetectionKind
    bbox: BoundingBox
    confidence: float = 1.0
    source: DetectionSource = DetectionSource.ML_ADAPTER
    class_name: Optional[str] = None

    @property
    def x1(self) -> float:
        return self.bbox.x1

    @property
    def y1(self) -> float:
        return self.bbox.y1

    @property
    def x2(self) -> float:
        return self.bbox.x2

    @property
    def y2(self) -> float:
        return self.bbox.y2

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @classmethod
    def from_xyxy(
        cls,
        kind: DetectionKind,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        confidence: float = 1.0,
        source: DetectionSource = DetectionSource.ML_ADAPTER,
        class_name: Optional[str] = None,
    ) -> "Detection":
        """Create Detection from x1, y1, x2, y2 coordinates (YOLO style)."""
        return cls(
            kind=kind,
            bbox=BoundingBox(x1=float(x1), y1=float(y1), x2=float(x2), y2=float(y2)),
            confidence=_clamp_confidence(confidence),
            source=source,
            class_name=class_name,
        )

    @classmethod
    def from_xywh(
        cls,
        kind: DetectionKind,
        x: float,
        y: float,
        w: float,
        h: float,
        confidence: float = 1.0,
        source: DetectionSource = DetectionSource.ML_ADAPTER,
        class_name: Optional[str] = None,
    ) -> "Detection":
        """Create Detection from x, y, width, height (COCO / Haar cascade style)."""
        return cls(
            kind=kind,
            bbox=BoundingBox.from_xywh(float(x), float(y), float(w), float(h)),
            confidence=_clamp_confidence(confidence),
            source=source,
            class_name=class_name,
        )

    @classmethod
    def from_corners(
        cls,
        kind: DetectionKind,
        top_left: Sequence[float],
        bottom_right: Sequence[float],
        confidence: float = 1.0,
        source: DetectionSource = DetectionSource.ML_ADAPTER,
        class_name: Optional[str] = None,
    ) -> "Detection":
        """
        Adapter: Create Detection from top-left / bottom-right corner points.

        Args:
            top_left: (x, y) of the top-left corner.
            bottom_right: (x, y) of the bottom-right corner.
        """
        return cls.from_xyxy(
            kind,
            top_left[0],
            top_left[1],
            bottom_right[0],
            bottom_right[1],
            confidence=confidence,
            source=source,
            class_name=class_name,
        )


def _clamp_confidence(value: float) -> float:
    return min(1.0, max(0.0, float(value)))
