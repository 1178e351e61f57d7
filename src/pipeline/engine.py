"""
Privacy redaction pipeline.

One call takes a photo buffer through the whole flow:
- face, person and vehicle detection (concurrently)
- classical fallbacks when a pretrained detector is missing
- region policy and overlap resolution
- sequential in-place blur

A missed detection degrades privacy but must never block a submission, so
`apply_privacy_protection` does not raise: failures are logged and reported
in the summary.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from detection.plates import EdgeBasedPlateDetector
from detection.skin import SkinRegionDetector
from inference.model_cache import DetectorModels, ModelProvider, build_model_provider
from models.buffer import PixelBuffer
from models.config import Config
from models.detection import Detection
from models.region import PlateCandidate, RedactionRegion
from models.summary import PrivacySummary
from redaction.blur import BlurRenderer
from redaction.overlap import OverlapResolver
from redaction.policy import RegionPolicyEngine

from .outcome import StageOutcome, run_stage


def fallback_wanted(mode: str, adapter_available: bool) -> bool:
    """Whether a classical fallback runs for the given mode."""
    if mode == "always":
        return True
    if mode == "never":
        return False
    return not adapter_available


class PrivacyPipeline:
    """
    Detect, plan and blur privacy-sensitive regions of one image.

    Example:
        pipeline = create_pipeline_from_config(Config())
        summary = pipeline.apply_privacy_protection(buffer)
    """

    def __init__(
        self,
        config: Config,
        provider: ModelProvider,
        skin_detector: Optional[SkinRegionDetector] = None,
        plate_detector: Optional[EdgeBasedPlateDetector] = None,
    ):
        self.config = config
        self.provider = provider
        self.resolver = OverlapResolver(config.plates, config.overlap)
        self.skin_detector = skin_detector or SkinRegionDetector(config.skin)
        self.plate_detector = plate_detector or EdgeBasedPlateDetector(config.plates, self.resolver)
        self.policy = RegionPolicyEngine(config.policy)
        self.renderer = BlurRenderer(config.blur)

    def preload(self) -> bool:
        """Load models ahead of time. Never raises."""
        return self.provider.preload()

    def apply_privacy_protection(
        self,
        buffer: PixelBuffer,
        blur_faces: bool = True,
        blur_plates: bool = True,
    ) -> PrivacySummary:
        """
        Blur faces, heads and licence plates in `buffer` in place.

        Args:
            buffer: RGBA buffer, mutated in place.
            blur_faces: Redact faces and estimated heads.
            blur_plates: Redact licence plates.

        Returns:
            PrivacySummary with detection counts, number of regions blurred
            and any stage failure reasons.
        """
        start = time.perf_counter()
        summary = PrivacySummary()
        try:
            self._run(buffer, blur_faces, blur_plates, summary)
        except Exception as e:
            logging.exception(f"Privacy protection failed: {e}")
            summary = PrivacySummary(errors=summary.errors + [f"pipeline: {type(e).__name__}: {e}"])
        summary.elapsed_s = time.perf_counter() - start

        logging.info(
            f"Privacy protection: faces={summary.faces_detected} people={summary.people_detected} "
            f"vehicles={summary.vehicles_detected} plates={summary.plates_detected} "
            f"blurred={summary.total_blurred} errors={len(summary.errors)} "
            f"({summary.elapsed_s * 1000:.0f} ms)"
        )
        return summary

    def _run(self, buffer: PixelBuffer, blur_faces: bool, blur_plates: bool, summary: PrivacySummary) -> None:
        models = self._models(summary)
        fallback = self.config.fallback

        with ThreadPoolExecutor(max_workers=self.config.detector_workers) as pool:
            face_f = pool.submit(run_stage, "faces", self._detect_faces, buffer, models) if blur_faces else None
            person_f = (
                pool.submit(run_stage, "people", self._detect_objects, buffer, models, self._person_classes)
                if blur_faces and models.has_objects
                else None
            )
            vehicle_f = (
                pool.submit(run_stage, "vehicles", self._detect_objects, buffer, models, self._vehicle_classes)
                if blur_plates and models.has_objects
                else None
            )
            faces = self._fold(face_f.result() if face_f else None, summary)
            people = self._fold(person_f.result() if person_f else None, summary)
            vehicles = self._fold(vehicle_f.result() if vehicle_f else None, summary)

        candidates: List[PlateCandidate] = []
        if blur_plates and fallback_wanted(fallback.plates, models.has_objects):
            # with a working vehicle detector only look inside vehicles
            if not models.has_objects or vehicles:
                candidates = self._fold(
                    run_stage("plates", self.plate_detector.detect, buffer, vehicles),
                    summary,
                )

        summary.faces_detected = len(faces)
        summary.people_detected = len(people)
        summary.vehicles_detected = len(vehicles)
        summary.plates_detected = len(candidates)

        regions = self.policy.build_regions(
            faces + people + vehicles,
            buffer.width,
            buffer.height,
            plate_candidates=candidates,
            include_faces=blur_faces,
            include_plates=blur_plates,
        )
        regions = self.resolver.resolve_regions(regions)
        summary.total_blurred = self._blur_all(buffer, regions, summary)

    def _models(self, summary: PrivacySummary) -> DetectorModels:
        outcome = run_stage("models", self.provider.get_models)
        if not outcome.is_ok:
            logging.warning(f"Model provider failed, using classical fallbacks: {outcome.error}")
            summary.errors.append(outcome.error)
            return DetectorModels()
        models = outcome.value
        summary.errors.extend(models.errors)
        return models

    @property
    def _person_classes(self) -> List[str]:
        return self.config.models.objects.person_classes

    @property
    def _vehicle_classes(self) -> List[str]:
        return self.config.models.objects.vehicle_classes

    def _detect_faces(self, buffer: PixelBuffer, models: DetectorModels) -> List[Detection]:
        faces: List[Detection] = []
        if models.has_face:
            faces.extend(models.face.detect_faces(buffer))
        if fallback_wanted(self.config.fallback.face, models.has_face):
            faces.extend(self.skin_detector.detect(buffer))
        return faces

    def _detect_objects(self, buffer: PixelBuffer, models: DetectorModels, classes: List[str]) -> List[Detection]:
        return models.objects.detect_objects(buffer, classes)

    @staticmethod
    def _fold(outcome: Optional[StageOutcome], summary: PrivacySummary) -> list:
        """Turn an outcome into its value; an error becomes an empty result."""
        if outcome is None:
            return []
        if not outcome.is_ok:
            logging.warning(f"Detection stage failed, continuing without it: {outcome.error}")
            summary.errors.append(outcome.error)
        return list(outcome.unwrap_or([]))

    def _blur_all(self, buffer: PixelBuffer, regions: List[RedactionRegion], summary: PrivacySummary) -> int:
        blurred = 0
        for region in regions:
            try:
                if self.renderer.blur_region(buffer, region):
                    blurred += 1
            except Exception as e:
                reason = f"blur: {region.kind.value} at ({region.x},{region.y}): {e}"
                logging.warning(f"Blur failed, continuing with remaining regions: {reason}")
                summary.errors.append(reason)
        return blurred


def create_pipeline_from_config(config: Config, provider: Optional[ModelProvider] = None) -> PrivacyPipeline:
    """
    Factory function to create a PrivacyPipeline from a typed config.

    Args:
        config: Application config.
        provider: Model provider; defaults to a cached provider over the
            detectors enabled in config.
    """
    return PrivacyPipeline(config, provider or build_model_provider(config))


_default_pipeline: Optional[PrivacyPipeline] = None
_default_lock = threading.Lock()


def get_default_pipeline() -> PrivacyPipeline:
    """Process-wide pipeline built from default config on first use."""
    global _default_pipeline
    with _default_lock:
        if _default_pipeline is None:
            _default_pipeline = create_pipeline_from_config(Config())
        return _default_pipeline


def set_default_pipeline(pipeline: Optional[PrivacyPipeline]) -> None:
    """Replace the process-wide pipeline (None resets it to lazy defaults)."""
    global _default_pipeline
    with _default_lock:
        _default_pipeline = pipeline


def apply_privacy_protection(
    buffer: PixelBuffer,
    blur_faces: bool = True,
    blur_plates: bool = True,
) -> PrivacySummary:
    """Redact `buffer` in place with the default pipeline."""
    return get_default_pipeline().apply_privacy_protection(buffer, blur_faces=blur_faces, blur_plates=blur_plates)


def preload_model() -> bool:
    """Warm the default pipeline's model cache. Never raises."""
    try:
        return get_default_pipeline().preload()
    except Exception as e:
        logging.warning(f"Model preload failed: {e}")
        return False
