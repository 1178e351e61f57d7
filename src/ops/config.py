"""
Configuration loading and validation.

Raw YAML is layered and validated here as plain dicts; `models.config.Config`
is the typed view the pipeline consumes.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

import yaml

from models.config import FALLBACK_MODES

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConfigError(RuntimeError):
    """Configuration could not be read."""


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `default.yaml` next to `config_path` (checked in)
    - `config.yaml` next to `config_path` (local overrides)
    - plus the explicit `config_path` itself (treated as overrides)

    Missing layers are skipped.

    Raises:
        ConfigError: If a layer exists but cannot be parsed.
    """
    config_dir = os.path.dirname(config_path)
    base_path = os.path.join(config_dir, "default.yaml")
    local_overrides_path = os.path.join(config_dir, "config.yaml")

    try:
        merged: Dict[str, Any] = {}
        for path in (base_path, local_overrides_path):
            if os.path.exists(path):
                merged = _deep_merge(merged, _read_yaml(path))

        explicit = os.path.abspath(config_path)
        if os.path.exists(config_path) and explicit not in (
            os.path.abspath(base_path),
            os.path.abspath(local_overrides_path),
        ):
            merged = _deep_merge(merged, _read_yaml(config_path))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load configuration: {e}") from e

    logging.debug(f"Configuration loaded from {config_dir or '.'}")
    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _positive_int(section: Dict[str, Any], key: str, prefix: str) -> Optional[str]:
    if key in section:
        v = section[key]
        if not isinstance(v, int) or isinstance(v, bool) or v <= 0:
            return f"{prefix}.{key} must be a positive integer"
    return None


def _ratio(section: Dict[str, Any], key: str, prefix: str) -> Optional[str]:
    if key in section:
        v = section[key]
        if not _is_number(v) or not (0 <= v <= 1):
            return f"{prefix}.{key} must be between 0 and 1"
    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    All sections are optional; defaults fill anything missing.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    for section in ("skin", "plates", "policy", "blur", "overlap", "fallback", "models"):
        if section in config and not isinstance(config[section], dict):
            return False, f"{section} must be a mapping"

    skin = config.get("skin", {}) or {}
    for key in ("stride", "max_region_pixels", "margin"):
        err = _positive_int(skin, key, "skin")
        if err:
            return False, err
    if "min_region_pixels" in skin and (not isinstance(skin["min_region_pixels"], int) or skin["min_region_pixels"] < 0):
        return False, "skin.min_region_pixels must be a non-negative integer"
    if skin.get("min_region_pixels", 20) >= skin.get("max_region_pixels", 500):
        return False, "skin.min_region_pixels must be below skin.max_region_pixels"

    plates = config.get("plates", {}) or {}
    for key in ("min_edge_density", "max_edge_density", "min_horizontal_density",
                "overlap_threshold", "max_window_area_ratio", "min_area_ratio", "max_area_ratio"):
        err = _ratio(plates, key, "plates")
        if err:
            return False, err
    if plates.get("min_edge_density", 0.15) >= plates.get("max_edge_density", 0.6):
        return False, "plates.min_edge_density must be below plates.max_edge_density"
    for key in ("max_candidates", "min_step", "sample_step"):
        err = _positive_int(plates, key, "plates")
        if err:
            return False, err

    policy = config.get("policy", {}) or {}
    for key in ("face_blur_radius", "head_blur_radius", "vehicle_plate_blur_radius", "detected_plate_blur_radius"):
        err = _positive_int(policy, key, "policy")
        if err:
            return False, err
    if "face_expansion" in policy and (not _is_number(policy["face_expansion"]) or policy["face_expansion"] < 1):
        return False, "policy.face_expansion must be a number >= 1"

    blur = config.get("blur", {}) or {}
    for key in ("face_passes", "plate_passes", "radius_divisor"):
        err = _positive_int(blur, key, "blur")
        if err:
            return False, err

    overlap = config.get("overlap", {}) or {}
    err = _ratio(overlap, "region_overlap_threshold", "overlap")
    if err:
        return False, err

    fallback = config.get("fallback", {}) or {}
    for key in ("face", "plates"):
        if key in fallback and fallback[key] not in FALLBACK_MODES:
            return False, f"fallback.{key} must be one of: {', '.join(FALLBACK_MODES)}"

    models = config.get("models", {}) or {}
    objects = models.get("objects", {}) or {}
    if objects.get("enabled", True):
        if "model" in objects and (not isinstance(objects["model"], str) or not objects["model"]):
            return False, "models.objects.model must be a non-empty string"
        for key in ("conf_threshold", "iou_threshold"):
            err = _ratio(objects, key, "models.objects")
            if err:
                return False, err
    face = models.get("face", {}) or {}
    if "scale_factor" in face and (not _is_number(face["scale_factor"]) or face["scale_factor"] <= 1):
        return False, "models.face.scale_factor must be a number > 1"
    if "retry_after" in models and (not _is_number(models["retry_after"]) or models["retry_after"] < 0):
        return False, "models.retry_after must be a non-negative number of seconds"

    if "detector_workers" in config:
        err = _positive_int(config, "detector_workers", "config")
        if err:
            return False, "detector_workers must be a positive integer"

    if "log_level" in config and config["log_level"] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None
