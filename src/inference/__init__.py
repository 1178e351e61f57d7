"""
Pretrained detector adapters and the model cache.
"""

from .backend import DetectionError, FaceBackend, ModelLoadError, ObjectBackend, kind_for_class
from .model_cache import (
    CachedModelProvider,
    DetectorModels,
    ModelProvider,
    StaticModelProvider,
    build_model_provider,
)

__all__ = [
    "DetectionError",
    "FaceBackend",
    "ModelLoadError",
    "ObjectBackend",
    "kind_for_class",
    "CachedModelProvider",
    "DetectorModels",
    "ModelProvider",
    "StaticModelProvider",
    "build_model_provider",
]
