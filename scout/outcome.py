"""Tri-state outcome for best-effort pipeline steps."""

from dataclasses import dataclass
from enum import Enum


class StepStatus(str, Enum):
    """How a non-fatal step ended."""
    SUCCESS = "success"
    DEGRADED = "degraded"  # ceiling reached, flow continues
    FAILED = "failed"


@dataclass
class StepOutcome:
    """Result of a step that must never raise on expected failures."""
    status: StepStatus = StepStatus.SUCCESS
    detail: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCESS

    @property
    def should_continue(self) -> bool:
        """Degraded outcomes still let the pipeline proceed."""
        return self.status != StepStatus.FAILED
