"""Typed custom state for snapshots.

Concrete agents describe the state they want carried across an interruption as
a ``CustomState`` model with an explicit ``state_version``. The generic
key/value map of ``InterruptionState.data`` is only used at the snapshot
boundary: ``to_data`` writes the model into it and ``from_data`` reads it back,
rejecting a snapshot written by another version of the model.

``ModelStateBridge`` adapts a model to the collector/restorer callbacks the
controller expects.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Generic, Optional, Type, TypeVar

from pydantic import ValidationError

from ..errors import InvalidStateError
from ..schemas.base import BaseSchema

STATE_VERSION_KEY = "__state_version__"
STATE_TYPE_KEY = "__state_type__"


class CustomState(BaseSchema):
    state_version: ClassVar[str] = "1"

    def to_data(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data[STATE_TYPE_KEY] = type(self).__name__
        data[STATE_VERSION_KEY] = self.state_version
        return data

    @classmethod
    def from_data(cls, data: Dict[str, Any]):
        payload = dict(data)
        version = payload.pop(STATE_VERSION_KEY, None)
        payload.pop(STATE_TYPE_KEY, None)
        if version != cls.state_version:
            raise InvalidStateError(
                f"{cls.__name__} snapshot version mismatch: expected {cls.state_version}, got {version}"
            )
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidStateError(f"invalid {cls.__name__} snapshot: {e}") from e


S = TypeVar("S", bound=CustomState)


class ModelStateBridge(Generic[S]):
    """Expose a ``CustomState`` model as snapshot collector/restorer callbacks.

    The bridge writes the model under ``key`` in the snapshot map so it can
    share the map with other entries.
    """

    def __init__(self, model_cls: Type[S], initial: Optional[S] = None, *, key: str = "custom_state") -> None:
        self.model_cls = model_cls
        self.state: S = initial if initial is not None else model_cls()
        self.key = key

    def collect(self, data: Dict[str, Any]) -> None:
        data[self.key] = self.state.to_data()

    def restore(self, data: Dict[str, Any]) -> None:
        if self.key not in data:
            raise InvalidStateError(f"snapshot has no '{self.key}' entry")
        self.state = self.model_cls.from_data(data[self.key])
