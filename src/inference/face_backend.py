"""
Face detector backend using OpenCV's bundled Haar cascades.

Ships with opencv-python, so it works offline without extra model files.
"""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

import cv2

from models.buffer import PixelBuffer
from models.config import FaceModelConfig
from models.detection import Detection, DetectionKind

from .backend import FaceBackend, ModelLoadError


def resolve_cascade_path(cascade: str) -> str:
    """Use `cascade` as-is if it exists, otherwise look it up in cv2.data.haarcascades."""
    if os.path.exists(cascade):
        return cascade
    return os.path.join(cv2.data.haarcascades, cascade)


class HaarFaceBackend(FaceBackend):
    name = "haar-face"

    def __init__(self, cfg: FaceModelConfig, classifier: Optional[Any] = None):
        self.cfg = cfg
        if classifier is None:
            path = resolve_cascade_path(cfg.cascade)
            try:
                classifier = cv2.CascadeClassifier(path)
            except cv2.error as e:
                raise ModelLoadError(f"Could not load Haar cascade from {path}: {e}") from e
            if classifier.empty():
                raise ModelLoadError(f"Could not load Haar cascade from {path}")
            logging.info(f"Face cascade loaded: {path}")
        self._classifier = classifier

    def _detect_faces(self, buffer: PixelBuffer) -> List[Detection]:
        gray = cv2.cvtColor(buffer.pixels, cv2.COLOR_RGBA2GRAY)
        faces = self._classifier.detectMultiScale(
            gray,
            scaleFactor=self.cfg.scale_factor,
            minNeighbors=self.cfg.min_neighbors,
            minSize=(self.cfg.min_size, self.cfg.min_size),
        )
        if faces is None or len(faces) == 0:
            return []

        # Haar cascades give no score
        return [
            Detection.from_xywh(DetectionKind.FACE, x, y, w, h, confidence=1.0, class_name="face")
            for (x, y, w, h) in faces
        ]
