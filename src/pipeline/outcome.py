"""
Tagged stage results.

Detector stages never raise into the orchestrator. They return
`StageOutcome.ok(value)` or `StageOutcome.err(reason)` and the orchestrator
decides, in one place, to treat an error as "nothing found".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    stage: str
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, stage: str, value: T) -> "StageOutcome[T]":
        return cls(stage=stage, value=value)

    @classmethod
    def err(cls, stage: str, reason: str) -> "StageOutcome[T]":
        return cls(stage=stage, error=reason)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        return self.value if self.is_ok else default


def run_stage(stage: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> StageOutcome[T]:
    """Call `fn` and capture its result or failure as an outcome."""
    try:
        return StageOutcome.ok(stage, fn(*args, **kwargs))
    except Exception as e:
        logging.debug(f"Stage {stage} raised", exc_info=True)
        return StageOutcome.err(stage, f"{stage}: {type(e).__name__}: {e}")
