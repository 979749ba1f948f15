"""Point-in-time snapshots of agent runs."""

from .custom_state import CustomState, ModelStateBridge
from .store import ProgressSource, SnapshotStore, StateCollector, StateRestorer

__all__ = [
    "CustomState",
    "ModelStateBridge",
    "ProgressSource",
    "SnapshotStore",
    "StateCollector",
    "StateRestorer",
]
