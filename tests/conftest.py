"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from inference.backend import FaceBackend, ObjectBackend  # noqa: E402
from models.buffer import PixelBuffer  # noqa: E402
from models.config import Config  # noqa: E402
from models.detection import Detection, DetectionKind  # noqa: E402

SKIN = (220, 160, 130)
SKY = (40, 80, 160)


class FakeFaceBackend(FaceBackend):
    """Face backend returning canned detections."""

    name = "fake-face"

    def __init__(self, faces=None, error=None):
        self.faces = list(faces or [])
        self.error = error
        self.calls = 0

    def _detect_faces(self, buffer):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.faces)


class FakeObjectBackend(ObjectBackend):
    """Object backend returning canned detections (filtered by class like a real one)."""

    name = "fake-objects"

    def __init__(self, detections=None, error=None):
        self.detections = list(detections or [])
        self.error = error
        self.calls = []

    def _detect_objects(self, buffer, classes):
        self.calls.append(set(classes))
        if self.error:
            raise self.error
        return [d for d in self.detections if d.class_name in classes]


def make_buffer(width, height, rgb=(0, 0, 0), alpha=255):
    return PixelBuffer.blank(width, height, (rgb[0], rgb[1], rgb[2], alpha))


def paint(buffer, x1, y1, x2, y2, rgb):
    """Fill [x1, x2) x [y1, y2) with a solid colour."""
    buffer.pixels[y1:y2, x1:x2, :3] = rgb


def paint_stripes(buffer, x1, y1, x2, y2, stripe=4, dark=30, light=230):
    """Vertical stripes alternating dark/light every `stripe` columns."""
    cols = np.arange(x2 - x1)
    values = np.where((cols // stripe) % 2 == 0, dark, light).astype(np.uint8)
    buffer.pixels[y1:y2, x1:x2, :3] = values[None, :, None]


def noise_buffer(width, height, seed=0):
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    arr[..., 3] = 255
    return PixelBuffer.from_rgba(arr)


@pytest.fixture
def config():
    """Default typed configuration."""
    return Config()


@pytest.fixture
def black_buffer():
    return make_buffer(320, 240)


@pytest.fixture
def face_detection():
    return Detection.from_xywh(DetectionKind.FACE, 100, 80, 60, 60, confidence=0.9, class_name="face")


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
log_path: "logs/test.log"
log_level: "INFO"

fallback:
  face: auto
  plates: auto

skin:
  stride: 10
  max_region_pixels: 500

blur:
  face_passes: 3
  plate_passes: 5
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "skin": {"stride": 10, "max_region_pixels": 500, "min_region_pixels": 20, "margin": 10},
        "plates": {"min_edge_density": 0.15, "max_edge_density": 0.6, "overlap_threshold": 0.5},
        "policy": {"face_expansion": 1.1, "face_blur_radius": 35},
        "blur": {"face_passes": 3, "plate_passes": 5},
        "overlap": {"region_overlap_threshold": 0.9},
        "fallback": {"face": "auto", "plates": "auto"},
        "models": {
            "face": {"enabled": True, "scale_factor": 1.1},
            "objects": {"enabled": True, "model": "yolov8n.pt", "conf_threshold": 0.3},
        },
        "detector_workers": 3,
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
