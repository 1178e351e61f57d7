"""
Typed configuration models matching the YAML config structure.

Every numeric threshold used by the detectors, policy and blur stages is a
named field here so it can be overridden from YAML. The defaults are
empirical and have not been calibrated against a labelled dataset.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Type, TypeVar

T = TypeVar("T")

FALLBACK_MODES = ("auto", "always", "never")
PERSON_CLASSES = ["person"]
VEHICLE_CLASSES = ["car", "truck", "bus", "motorcycle"]


def _from_known_fields(cls: Type[T], d: Dict[str, Any]) -> T:
    """Build a flat dataclass from a dict, ignoring unknown keys."""
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in (d or {}).items() if k in names})


@dataclass
class SkinConfig:
    """Skin-tone region grower (face fallback)."""
    stride: int = 10
    max_region_pixels: int = 500
    min_region_pixels: int = 20
    margin: int = 10
    min_red: int = 95
    min_green: int = 40
    min_blue: int = 20
    min_channel_spread: int = 15
    min_red_green_diff: int = 15
    min_aspect: float = 0.5
    max_aspect: float = 1.5
    min_width: int = 30
    max_width: int = 200
    min_height: int = 30
    max_height: int = 250

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SkinConfig":
        return _from_known_fields(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PlateConfig:
    """Edge-density plate search (plate fallback)."""
    edge_threshold: float = 30.0
    vehicle_search_start: float = 0.4
    image_search_start: float = 0.4
    min_width_px: int = 60
    min_width_ratio: float = 0.05
    max_width_px: int = 300
    max_width_ratio: float = 0.25
    min_height_px: int = 15
    min_height_ratio: float = 0.015
    max_height_px: int = 100
    max_height_ratio: float = 0.08
    min_step: int = 10
    step_divisor: int = 100
    min_height_step: int = 15
    sample_step: int = 2
    min_aspect: float = 1.5
    max_aspect: float = 6.0
    max_window_area_ratio: float = 0.02
    min_edge_density: float = 0.15
    max_edge_density: float = 0.6
    min_horizontal_density: float = 0.2
    overlap_threshold: float = 0.5
    final_min_width: int = 60
    final_max_width: int = 300
    final_min_height: int = 15
    final_max_height: int = 100
    min_area_ratio: float = 0.002
    max_area_ratio: float = 0.025
    max_candidates: int = 5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PlateConfig":
        return _from_known_fields(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PolicyConfig:
    """Geometry rules turning detections into redaction regions."""
    face_expansion: float = 1.1
    head_height_ratio: float = 0.18
    head_width_ratio: float = 0.5
    head_aspect: float = 0.9
    plate_width_ratio: float = 0.2
    plate_height_ratio: float = 0.08
    rear_plate_margin_ratio: float = 0.05
    front_plate_offset_ratio: float = 0.75
    candidate_pad_x_ratio: float = 0.1
    candidate_pad_y_ratio: float = 0.15
    face_blur_radius: int = 35
    head_blur_radius: int = 35
    vehicle_plate_blur_radius: int = 35
    detected_plate_blur_radius: int = 40

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PolicyConfig":
        return _from_known_fields(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BlurConfig:
    """Multi-pass box blur."""
    face_passes: int = 3
    plate_passes: int = 5
    radius_divisor: int = 4

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BlurConfig":
        return _from_known_fields(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class OverlapConfig:
    """Deduplication of redaction regions."""
    region_overlap_threshold: float = 0.9

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OverlapConfig":
        return _from_known_fields(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FallbackConfig:
    """
    When the classical detectors run.

    auto: only when the matching ML adapter is unavailable.
    always: alongside the ML adapters.
    never: disabled.
    """
    face: str = "auto"
    plates: str = "auto"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FallbackConfig":
        return _from_known_fields(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FaceModelConfig:
    """Pretrained face detector (OpenCV Haar cascade)."""
    enabled: bool = True
    cascade: str = "haarcascade_frontalface_default.xml"
    scale_factor: float = 1.1
    min_neighbors: int = 5
    min_size: int = 24

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FaceModelConfig":
        return _from_known_fields(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ObjectModelConfig:
    """Pretrained multi-class object detector (Ultralytics YOLO, COCO labels)."""
    enabled: bool = True
    model: str = "yolov8n.pt"
    conf_threshold: float = 0.3
    iou_threshold: float = 0.45
    max_detections: int = 20
    person_classes: List[str] = field(default_factory=lambda: list(PERSON_CLASSES))
    vehicle_classes: List[str] = field(default_factory=lambda: list(VEHICLE_CLASSES))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ObjectModelConfig":
        return _from_known_fields(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ModelsConfig:
    """Pretrained detector settings."""
    face: FaceModelConfig = field(default_factory=FaceModelConfig)
    objects: ObjectModelConfig = field(default_factory=ObjectModelConfig)
    retry_after: float = 30.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelsConfig":
        d = d or {}
        return cls(
            face=FaceModelConfig.from_dict(d.get("face", {})),
            objects=ObjectModelConfig.from_dict(d.get("objects", {})),
            retry_after=float(d.get("retry_after", 30.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "face": self.face.to_dict(),
            "objects": self.objects.to_dict(),
            "retry_after": self.retry_after,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    skin: SkinConfig = field(default_factory=SkinConfig)
    plates: PlateConfig = field(default_factory=PlateConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    blur: BlurConfig = field(default_factory=BlurConfig)
    overlap: OverlapConfig = field(default_factory=OverlapConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    models: ModelsConfig = field(default_factory=ModelsConfig)
    detector_workers: int = 3
    log_path: str = "logs/privacy_redaction.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        d = d or {}
        return cls(
            skin=SkinConfig.from_dict(d.get("skin", {})),
            plates=PlateConfig.from_dict(d.get("plates", {})),
            policy=PolicyConfig.from_dict(d.get("policy", {})),
            blur=BlurConfig.from_dict(d.get("blur", {})),
            overlap=OverlapConfig.from_dict(d.get("overlap", {})),
            fallback=FallbackConfig.from_dict(d.get("fallback", {})),
            models=ModelsConfig.from_dict(d.get("models", {})),
            detector_workers=d.get("detector_workers", 3),
            log_path=d.get("log_path", "logs/privacy_redaction.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "skin": self.skin.to_dict(),
            "plates": self.plates.to_dict(),
            "policy": self.policy.to_dict(),
            "blur": self.blur.to_dict(),
            "overlap": self.overlap.to_dict(),
            "fallback": self.fallback.to_dict(),
            "models": self.models.to_dict(),
            "detector_workers": self.detector_workers,
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
