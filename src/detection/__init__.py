"""
Classical detectors used when (or alongside) the pretrained models.
"""

from .base import Detector
from .plates import EdgeBasedPlateDetector, edge_map
from .skin import SkinRegion, SkinRegionDetector, is_like_face_region, skin_mask

__all__ = [
    "Detector",
    "EdgeBasedPlateDetector",
    "edge_map",
    "SkinRegion",
    "SkinRegionDetector",
    "is_like_face_region",
    "skin_mask",
]
