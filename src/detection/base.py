"""
Detection interfaces.

Classical detectors implement the same small interface as the ML adapters'
callers expect: take a pixel buffer, return pixel-space detections.
"""

from __future__ import annotations

from typing import List

from models.buffer import PixelBuffer
from models.detection import Detection


class Detector:
    """Detector interface returning detections in pixel-space."""

    def detect(self, buffer: PixelBuffer) -> List[Detection]:
        raise NotImplementedError
