"""Client side of CareCircle: mirror HTTP client and action orchestrator."""

from .mirror_client import (
    MirrorClient,
    MirrorError,
    MirrorUnavailableError,
    MirrorRejectedError,
)
from .orchestrator import CircleOrchestrator, CircleView, ActionOutcome, task_payload

__all__ = [
    "MirrorClient",
    "MirrorError",
    "MirrorUnavailableError",
    "MirrorRejectedError",
    "CircleOrchestrator",
    "CircleView",
    "ActionOutcome",
    "task_payload",
]
