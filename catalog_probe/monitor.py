"""Progress and cancellation signal shared with long-running discovery."""

import threading
from typing import Optional


class ProgressMonitor:
    """Tracks discovery progress and carries an external cancellation flag.

    Cancellation is cooperative: discovery checks ``is_cancelled`` between
    probes and never interrupts a probe that is already running.
    """

    def __init__(self):
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self.task_name: Optional[str] = None
        self.sub_task_name: Optional[str] = None
        self.total_work = 0
        self.completed_work = 0

    def begin_task(self, name: str, total_work: int) -> None:
        with self._lock:
            self.task_name = name
            self.total_work = total_work
            self.completed_work = 0

    def sub_task(self, name: str) -> None:
        with self._lock:
            self.sub_task_name = name

    def worked(self, amount: int = 1) -> None:
        with self._lock:
            self.completed_work += amount

    def done(self) -> None:
        with self._lock:
            self.sub_task_name = None
            self.completed_work = self.total_work

    def cancel(self) -> None:
        """Request cancellation; honored at the next probe boundary."""
        self._cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def __repr__(self) -> str:
        return (
            f"ProgressMonitor(task={self.task_name!r}, "
            f"{self.completed_work}/{self.total_work}, cancelled={self.is_cancelled})"
        )
