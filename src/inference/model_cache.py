"""
Model cache for the pretrained detectors.

Loading a detector is slow, so each backend is created once per process and
reused. The cache sits behind the `ModelProvider` interface so tests (and
callers with their own models) can inject backends directly.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from models.config import Config

from .backend import FaceBackend, ObjectBackend

FaceFactory = Callable[[], FaceBackend]
ObjectFactory = Callable[[], ObjectBackend]


@dataclass(frozen=True)
class DetectorModels:
    """
    Loaded detector handles. A None backend means that detector is unavailable.

    Attributes:
        face: Face backend, if loaded.
        objects: Person/vehicle backend, if loaded.
        errors: Load failure reasons from this call.
    """
    face: Optional[FaceBackend] = None
    objects: Optional[ObjectBackend] = None
    errors: Tuple[str, ...] = ()

    @property
    def has_face(self) -> bool:
        return self.face is not None

    @property
    def has_objects(self) -> bool:
        return self.objects is not None


class ModelProvider(ABC):
    """Source of detector backends for the pipeline."""

    @abstractmethod
    def get_models(self) -> DetectorModels:
        """Return the available backends, loading them on first use."""

    def preload(self) -> bool:
        """
        Load models ahead of the first image.

        Never raises. Returns True when at least one backend is ready;
        otherwise loading is retried lazily on the next real call.
        """
        try:
            models = self.get_models()
        except Exception as e:
            logging.warning(f"Model preload failed, will retry on first use: {e}")
            return False
        ready = models.has_face or models.has_objects
        if ready:
            logging.info(f"Models preloaded (face={models.has_face}, objects={models.has_objects})")
        else:
            logging.warning("Model preload found no usable detector; classical fallbacks will be used")
        return ready


class StaticModelProvider(ModelProvider):
    """Provider over already constructed backends."""

    def __init__(self, face: Optional[FaceBackend] = None, objects: Optional[ObjectBackend] = None):
        self._models = DetectorModels(face=face, objects=objects)

    def get_models(self) -> DetectorModels:
        return self._models


class CachedModelProvider(ModelProvider):
    """
    Lazily loads each backend once and memoises it.

    Concurrent first callers wait on one lock, so each factory runs once.
    A failed load is remembered for `retry_after` seconds; after that the
    next call tries again, so a transient failure does not disable a
    detector for the rest of the process.
    """

    def __init__(
        self,
        face_factory: Optional[FaceFactory] = None,
        object_factory: Optional[ObjectFactory] = None,
        retry_after: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factories: Dict[str, Optional[Callable]] = {
            "face": face_factory,
            "objects": object_factory,
        }
        self._loaded: Dict[str, object] = {}
        self._failed_at: Dict[str, float] = {}
        self._last_error: Dict[str, str] = {}
        self._load_attempts: Dict[str, int] = {"face": 0, "objects": 0}
        self._retry_after = retry_after
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def load_attempts(self) -> Dict[str, int]:
        """Number of times each factory has been called."""
        return dict(self._load_attempts)

    def is_loaded(self, name: str) -> bool:
        return name in self._loaded

    def preload(self) -> bool:
        """
        Load models ahead of the first image.

        A failure here does not start the retry window: the first real call
        tries the failed loaders again.
        """
        ready = super().preload()
        with self._lock:
            self._failed_at.clear()
        return ready

    def _settled(self) -> bool:
        return all(
            factory is None or name in self._loaded
            for name, factory in self._factories.items()
        )

    def _snapshot(self, errors: Tuple[str, ...] = ()) -> DetectorModels:
        return DetectorModels(
            face=self._loaded.get("face"),
            objects=self._loaded.get("objects"),
            errors=errors,
        )

    def get_models(self) -> DetectorModels:
        if self._settled():
            return self._snapshot()

        with self._lock:
            errors = []
            for name, factory in self._factories.items():
                if factory is None or name in self._loaded:
                    continue
                failed_at = self._failed_at.get(name)
                if failed_at is not None and self._clock() - failed_at < self._retry_after:
                    errors.append(self._last_error[name])
                    continue
                self._load_attempts[name] += 1
                try:
                    self._loaded[name] = factory()
                    self._failed_at.pop(name, None)
                    logging.info(f"{name} detector ready")
                except Exception as e:
                    reason = f"{name} model load failed: {e}"
                    logging.error(reason)
                    self._failed_at[name] = self._clock()
                    self._last_error[name] = reason
                    errors.append(reason)
            return self._snapshot(tuple(errors))


def build_model_provider(config: Config) -> CachedModelProvider:
    """Create the cached provider for the detectors enabled in config."""
    from .cpu_backend import UltralyticsObjectBackend
    from .face_backend import HaarFaceBackend

    face_factory = None
    object_factory = None
    if config.models.face.enabled:
        face_factory = lambda: HaarFaceBackend(config.models.face)  # noqa: E731
    if config.models.objects.enabled:
        object_factory = lambda: UltralyticsObjectBackend(config.models.objects)  # noqa: E731
    return CachedModelProvider(
        face_factory=face_factory,
        object_factory=object_factory,
        retry_after=config.models.retry_after,
    )
