"""
CPU inference backend for people and vehicles.

Uses Ultralytics if installed. When it is not, the model provider reports the
object detector as unavailable and the pipeline falls back to the classical
plate search.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Optional

import numpy as np

from models.buffer import PixelBuffer
from models.config import ObjectModelConfig
from models.detection import Detection

from .backend import ModelLoadError, ObjectBackend, kind_for_class


def _to_numpy(value) -> np.ndarray:
    return value.cpu().numpy() if hasattr(value, "cpu") else np.asarray(value)


class UltralyticsObjectBackend(ObjectBackend):
    name = "yolo-objects"

    def __init__(self, cfg: ObjectModelConfig, model: Optional[Any] = None):
        self.cfg = cfg
        if model is None:
            try:
                from ultralytics import YOLO  # type: ignore
            except Exception as e:  # pragma: no cover
                raise ModelLoadError(
                    "Ultralytics is not installed. Install with `pip install ultralytics` "
                    "or set fallback.plates to 'always'."
                ) from e
            try:
                model = YOLO(cfg.model)
            except Exception as e:
                raise ModelLoadError(f"Failed to load YOLO model {cfg.model}: {e}") from e
            logging.info(f"Object detector loaded: {cfg.model}")
        self._model = model
        # one YOLO instance is shared by the person and vehicle stages; its predictor is not thread-safe
        self._predict_lock = threading.Lock()

    def _detect_objects(self, buffer: PixelBuffer, classes: set) -> List[Detection]:
        frame = buffer.to_bgr()
        with self._predict_lock:
            results = self._model.predict(
                source=frame,
                conf=self.cfg.conf_threshold,
                iou=self.cfg.iou_threshold,
                max_det=self.cfg.max_detections,
                verbose=False,
            )
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        xyxy = _to_numpy(boxes.xyxy)
        conf = _to_numpy(boxes.conf)
        cls = _to_numpy(boxes.cls)

        out: List[Detection] = []
        for (x1, y1, x2, y2), c, k in zip(xyxy, conf, cls):
            class_name = str(names.get(int(k), int(k))).lower()
            if class_name not in classes or float(c) < self.cfg.conf_threshold:
                continue
            kind = kind_for_class(class_name, self.cfg.person_classes, self.cfg.vehicle_classes)
            if kind is None:
                continue
            out.append(
                Detection.from_xyxy(
                    kind,
                    x1,
                    y1,
                    x2,
                    y2,
                    confidence=float(c),
                    class_name=class_name,
                )
            )

        return out
