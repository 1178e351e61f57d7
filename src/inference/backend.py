"""
Detector adapter interfaces.

Backends return pixel-space detections in the buffer's coordinate system,
already normalised to `models.detection.Detection`. A backend call never
raises: inference failures are logged and reported as "nothing found".
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from models.buffer import PixelBuffer
from models.config import PERSON_CLASSES, VEHICLE_CLASSES
from models.detection import Detection, DetectionKind


class ModelLoadError(RuntimeError):
    """A pretrained detector could not be initialised."""


class DetectionError(RuntimeError):
    """A single detector call failed."""


def kind_for_class(
    class_name: str,
    person_classes: Iterable[str] = PERSON_CLASSES,
    vehicle_classes: Iterable[str] = VEHICLE_CLASSES,
) -> Optional[DetectionKind]:
    """Map a detector label to a detection kind, or None when it is not redacted."""
    name = (class_name or "").lower()
    if name in person_classes:
        return DetectionKind.PERSON
    if name in vehicle_classes:
        return DetectionKind.VEHICLE
    return None


class FaceBackend(ABC):
    """Pretrained face detector."""

    name = "face"

    def detect_faces(self, buffer: PixelBuffer) -> List[Detection]:
        try:
            return self._detect_faces(buffer)
        except Exception as e:
            logging.warning(f"{self.name} detection failed: {e}")
            return []

    @abstractmethod
    def _detect_faces(self, buffer: PixelBuffer) -> List[Detection]:
        raise NotImplementedError


class ObjectBackend(ABC):
    """Pretrained multi-class object detector (people and vehicles)."""

    name = "objects"

    def detect_objects(self, buffer: PixelBuffer, classes: Iterable[str]) -> List[Detection]:
        wanted = {c.lower() for c in classes}
        try:
            return [d for d in self._detect_objects(buffer, wanted) if (d.class_name or "").lower() in wanted]
        except Exception as e:
            logging.warning(f"{self.name} detection failed for classes={sorted(wanted)}: {e}")
            return []

    @abstractmethod
    def _detect_objects(self, buffer: PixelBuffer, classes: set) -> List[Detection]:
        raise NotImplementedError
