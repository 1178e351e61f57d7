"""
Summary returned by one privacy redaction run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class PrivacySummary:
    """
    Counts produced by one `apply_privacy_protection` call.

    Attributes:
        faces_detected: Face detections (ML or skin fallback).
        people_detected: Person detections.
        vehicles_detected: Vehicle detections.
        plates_detected: Plate candidates from the edge fallback.
        total_blurred: Regions actually blurred.
        errors: Stage failure reasons folded into empty results.
        elapsed_s: Wall-clock processing time.
    """
    faces_detected: int = 0
    people_detected: int = 0
    vehicles_detected: int = 0
    plates_detected: int = 0
    total_blurred: int = 0
    errors: List[str] = field(default_factory=list)
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "faces_detected": self.faces_detected,
            "people_detected": self.people_detected,
            "vehicles_detected": self.vehicles_detected,
            "plates_detected": self.plates_detected,
            "total_blurred": self.total_blurred,
            "errors": list(self.errors),
            "elapsed_s": round(self.elapsed_s, 4),
        }
