"""
Typed models for the privacy redaction pipeline.

Detectors, policy and blur stages exchange these types only; raw detector
output is converted at the adapter boundary.
"""

from .buffer import PixelBuffer, BufferBusyError
from .detection import BoundingBox, Detection, DetectionKind, DetectionSource
from .region import PlateCandidate, RedactionRegion, RegionKind, REGION_PRIORITY
from .summary import PrivacySummary
from .config import (
    Config,
    SkinConfig,
    PlateConfig,
    PolicyConfig,
    BlurConfig,
    OverlapConfig,
    FallbackConfig,
    FaceModelConfig,
    ObjectModelConfig,
    ModelsConfig,
)

__all__ = [
    # Buffer
    "PixelBuffer",
    "BufferBusyError",
    # Detection
    "BoundingBox",
    "Detection",
    "DetectionKind",
    "DetectionSource",
    # Regions
    "PlateCandidate",
    "RedactionRegion",
    "RegionKind",
    "REGION_PRIORITY",
    # Summary
    "PrivacySummary",
    # Config
    "Config",
    "SkinConfig",
    "PlateConfig",
    "PolicyConfig",
    "BlurConfig",
    "OverlapConfig",
    "FallbackConfig",
    "FaceModelConfig",
    "ObjectModelConfig",
    "ModelsConfig",
]
