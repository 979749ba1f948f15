from __future__ import annotations

"""Hook pipeline.

The pipeline keeps an ordered registry of hooks and fans a phase event out to
them one by one.

Dispatch semantics
------------------

- The registry is copied under a lock when a dispatch starts; hooks registered
  or removed while the dispatch runs only affect later dispatches.
- Hooks run sequentially in registration order. Several dispatches (for
  different runs) may run at the same time.
- After each hook the pipeline checks ``event.should_stop`` and returns
  immediately when it is set.
- A hook error stops the dispatch and is raised as ``ObserverFailureError``.
"""

import inspect
import logging
import threading
from typing import Dict, List, Tuple

from ..errors import ObserverFailureError
from .base import Hook
from .events import HookEventBase, HookPhase

logger = logging.getLogger(__name__)

_HANDLER_NAMES: Dict[HookPhase, str] = {
    HookPhase.pre_reasoning: "on_pre_reasoning",
    HookPhase.post_reasoning: "on_post_reasoning",
    HookPhase.pre_acting: "on_pre_acting",
    HookPhase.post_acting: "on_post_acting",
}


def _hook_name(hook: Hook) -> str:
    return str(getattr(hook, "name", None) or type(hook).__name__)


class HookPipeline:
    """
    Ordered, short-circuitable fan-out of phase events to registered hooks.

    Notes:
        - Registering the same hook twice makes it run twice per dispatch.
        - ``unregister`` removes the first occurrence only.
        - The registry lock is never held while a handler runs.
    """

    def __init__(self) -> None:
        """Initialize an empty pipeline."""
        self._hooks: List[Hook] = []
        self._lock = threading.Lock()

    def register(self, hook: Hook) -> None:
        """
        Append a hook to the registry.

        Args:
            hook: The hook to register. It should expose a ``name`` and any of the ``on_*`` phase handlers.
        """
        with self._lock:
            self._hooks.append(hook)
        logger.debug(f"Hook registered: {_hook_name(hook)}")

    def unregister(self, hook: Hook) -> bool:
        """
        Remove the first registration of ``hook``.

        Returns:
            True if the hook was registered, False otherwise.
        """
        with self._lock:
            for i, registered in enumerate(self._hooks):
                if registered is hook:
                    del self._hooks[i]
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._hooks = []

    @property
    def hooks(self) -> Tuple[Hook, ...]:
        """Snapshot of the registry in registration order."""
        with self._lock:
            return tuple(self._hooks)

    def __len__(self) -> int:
        with self._lock:
            return len(self._hooks)

    async def dispatch(self, phase: HookPhase, event: HookEventBase) -> HookEventBase:
        """
        Invoke the ``phase`` handler of every registered hook against ``event``.

        Args:
            phase: The phase being dispatched.
            event: The event for that phase; its ``phase`` tag must match.

        Returns:
            The same event, possibly mutated by the hooks.

        Raises:
            ValueError: If the event does not belong to ``phase``.
            ObserverFailureError: If a hook handler raises.
        """
        if getattr(event, "phase", None) != phase:
            raise ValueError(f"event phase {getattr(event, 'phase', None)!r} does not match dispatch phase {phase!r}")

        handler_name = _HANDLER_NAMES[phase]
        for hook in self.hooks:
            handler = getattr(hook, handler_name, None)
            if handler is None:
                continue
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                name = _hook_name(hook)
                logger.warning(f"Hook '{name}' failed during {phase.value}: {e}")
                raise ObserverFailureError(name, phase.value, str(e)) from e
            if event.should_stop:
                logger.debug(f"Hook '{_hook_name(hook)}' stopped the {phase.value} dispatch")
                break
        return event
