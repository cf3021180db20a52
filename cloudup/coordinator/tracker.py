"""In-flight operation counter."""
import threading


class OperationTracker:
    """
    Counts operations that were dispatched but have not completed yet.

    All access goes through one lock, which is never held across an await.
    """

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def started(self) -> int:
        with self._lock:
            self._count += 1
            return self._count

    def completed(self) -> bool:
        """Record a completion; True when this one brought the count to zero."""
        with self._lock:
            if self._count == 0:
                raise RuntimeError("Operation completed more times than it was started")
            self._count -= 1
            return self._count == 0
