"""
Pipeline module for the privacy redaction system.

The pipeline orchestrates the full processing flow:
- Model loading through the model provider
- Concurrent face, person and vehicle detection with classical fallbacks
- Region policy, overlap resolution and blur
"""

from .engine import (
    PrivacyPipeline,
    apply_privacy_protection,
    create_pipeline_from_config,
    fallback_wanted,
    get_default_pipeline,
    preload_model,
    set_default_pipeline,
)
from .outcome import StageOutcome, run_stage

__all__ = [
    "PrivacyPipeline",
    "apply_privacy_protection",
    "create_pipeline_from_config",
    "fallback_wanted",
    "get_default_pipeline",
    "preload_model",
    "set_default_pipeline",
    "StageOutcome",
    "run_stage",
]
