"""
Redaction stages: region policy, overlap resolution and blur.
"""

from .blur import BlurRenderer, box_mean
from .overlap import OverlapResolver, overlap_ratio
from .policy import RegionPolicyEngine

__all__ = [
    "BlurRenderer",
    "box_mean",
    "OverlapResolver",
    "overlap_ratio",
    "RegionPolicyEngine",
]
