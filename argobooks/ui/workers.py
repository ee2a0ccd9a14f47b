from __future__ import annotations
import logging
from typing import Any, Callable, List, Optional

from PySide6 import QtCore

logger = logging.getLogger(__name__)


class ServiceWorker(QtCore.QThread):
    """Runs one blocking service call off the UI thread."""

    result_ready = QtCore.Signal(object)
    error = QtCore.Signal(str)

    def __init__(self, fn: Callable[[], Any]):
        super().__init__()
        self.fn = fn

    def run(self) -> None:
        try:
            self.result_ready.emit(self.fn())
        except Exception as exc:
            logger.exception("Background task failed")
            self.error.emit(str(exc))


class TaskRunner:
    """
    Dispatches network-bound work (exchange rates, invoice email).
    With run_async=False the call happens inline, which keeps tests deterministic.
    Callbacks should be bound methods of QObjects so results arrive on the UI thread.
    """

    def __init__(self, run_async: bool = True):
        self.run_async = run_async
        self._workers: List[ServiceWorker] = []

    def submit(self, fn: Callable[[], Any], on_result: Callable[[Any], None], on_error: Optional[Callable[[str], None]] = None) -> None:
        if not self.run_async:
            try:
                result = fn()
            except Exception as exc:
                logger.exception("Task failed")
                if on_error is None:
                    raise
                on_error(str(exc))
                return
            on_result(result)
            return

        worker = ServiceWorker(fn)
        worker.result_ready.connect(on_result)
        if on_error is not None:
            worker.error.connect(on_error)
        worker.finished.connect(lambda w=worker: self._release(w))
        # Keep reference to prevent GC
        self._workers.append(worker)
        worker.start()

    def _release(self, worker: ServiceWorker) -> None:
        if worker in self._workers:
            self._workers.remove(worker)
        worker.deleteLater()

    def wait_all(self, timeout_ms: int = 5000) -> None:
        for worker in list(self._workers):
            worker.wait(timeout_ms)
