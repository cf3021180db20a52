from typing import Dict, List, Callable
import asyncio
import logging
logger = logging.getLogger(__name__)

# Emitted with the originating coordinator when its in-flight count drops to zero.
ALL_OPERATIONS_COMPLETED = "all_operations_completed"


class EventEmitter:
    """Simple event emitter scoped to the object that owns it."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if event_name not in self._listeners:
            self._listeners[event_name] = []
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if event_name in self._listeners:
            if callback in self._listeners[event_name]:
                self._listeners[event_name].remove(callback)

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, []))

    async def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners."""
        if event_name not in self._listeners:
            return

        for callback in self._listeners[event_name][:]:  # Copy list to avoid modification during iteration
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(*args, **kwargs)
                else:
                    callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")

    def emit_nowait(self, event_name: str, *args, **kwargs) -> List[asyncio.Task]:
        """
        Emit an event from the running loop without awaiting.

        Plain listeners have run by the time this returns; coroutine
        listeners are scheduled as tasks, which are returned.
        """
        tasks = []
        for callback in self._listeners.get(event_name, [])[:]:
            try:
                if asyncio.iscoroutinefunction(callback):
                    tasks.append(asyncio.ensure_future(self._call_async(event_name, callback, args, kwargs)))
                else:
                    callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")
        return tasks

    @staticmethod
    async def _call_async(event_name: str, callback: Callable, args, kwargs):
        try:
            await callback(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in event listener for {event_name}: {e}")
