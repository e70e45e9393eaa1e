"""QThread-backed :class:`TaskRunner` for the GUI."""
from __future__ import annotations

import logging
import traceback
from typing import Any, Callable, Dict, Optional, Tuple

from PySide6.QtCore import QObject, QThread, Signal, Slot

from subtag.core.tasks import TaskRunner

logger = logging.getLogger(__name__)


class CallWorker(QObject):
    """Run one blocking call in a background thread.

    Signals
    -------
    result(object):   the call's return value.
    error(object):    the exception it raised.
    finished():       always emitted at the end.
    """

    result   = Signal(object)
    error    = Signal(object)
    finished = Signal()

    def __init__(self, fn: Callable[..., Any], args: tuple):
        super().__init__()
        self._fn   = fn
        self._args = args

    # ------------------------------------------------------------------ slot
    def run(self) -> None:
        name = getattr(self._fn, "__name__", repr(self._fn))
        logger.debug("CallWorker starting — %s", name)
        try:
            value = self._fn(*self._args)
            self.result.emit(value)
        except Exception as exc:
            logger.error("CallWorker %s failed: %s", name, exc)
            logger.debug(traceback.format_exc())
            self.error.emit(exc)
        finally:
            self.finished.emit()


class _Relay(QObject):
    """Lives on the GUI thread so worker signals arrive there queued."""

    def __init__(self, on_success, on_error, on_done):
        super().__init__()
        self._on_success = on_success
        self._on_error   = on_error
        self._on_done    = on_done

    @Slot(object)
    def deliver_result(self, value: Any) -> None:
        if self._on_success is not None:
            self._on_success(value)

    @Slot(object)
    def deliver_error(self, exc: Exception) -> None:
        if self._on_error is not None:
            self._on_error(exc)

    @Slot()
    def release(self) -> None:
        self._on_done(self)


class _SerialLane(QObject):
    """Lives on the writer thread; jobs posted from the GUI thread queue up
    in its event loop and run one after another."""

    job = Signal(object)

    def __init__(self):
        super().__init__()
        self.job.connect(self._run_job)

    @Slot(object)
    def _run_job(self, worker: Optional[CallWorker]) -> None:
        if worker is None:
            # Posted by shutdown() after every pending write
            QThread.currentThread().quit()
            return
        worker.run()


class QtTaskRunner(TaskRunner):
    """One QThread per submitted call; callbacks run on the GUI thread.

    Serial calls share one long-lived writer thread instead. Must be
    created and used on the GUI thread.
    """

    def __init__(self, parent: Optional[QObject] = None):
        self._parent = parent
        # Active worker/thread pairs keyed by their relay (prevent GC)
        self._active: Dict[_Relay, Tuple[QObject, Optional[QThread]]] = {}
        self._writer_thread: Optional[QThread] = None
        self._writer_lane: Optional[_SerialLane] = None

    def submit(self, fn, *args, on_success=None, on_error=None) -> None:
        worker = CallWorker(fn, args)
        thread = QThread(self._parent)
        relay  = _Relay(on_success, on_error, self._release)

        worker.result.connect(relay.deliver_result)
        worker.error.connect(relay.deliver_error)
        self._start_worker(worker, thread, relay)

    def submit_serial(self, fn, *args, on_success=None, on_error=None) -> None:
        lane   = self._lane()
        worker = CallWorker(fn, args)
        relay  = _Relay(on_success, on_error, self._release)
        self._active[relay] = (worker, None)

        worker.result.connect(relay.deliver_result)
        worker.error.connect(relay.deliver_error)
        worker.finished.connect(relay.release)
        worker.finished.connect(worker.deleteLater)
        lane.job.emit(worker)

    def _lane(self) -> _SerialLane:
        if self._writer_lane is None:
            self._writer_thread = QThread(self._parent)
            self._writer_lane   = _SerialLane()
            self._writer_lane.moveToThread(self._writer_thread)
            self._writer_thread.finished.connect(self._writer_lane.deleteLater)
            self._writer_thread.start()
            logger.debug("Writer thread started")
        return self._writer_lane

    def _start_worker(self, worker: QObject, thread: QThread, relay: _Relay) -> None:
        """Wire up and start a worker/thread pair."""
        self._active[relay] = (worker, thread)

        worker.moveToThread(thread)
        thread.started.connect(worker.run)

        # Generic cleanup
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(relay.release)
        thread.finished.connect(thread.deleteLater)

        thread.start()

    def _release(self, relay: _Relay) -> None:
        self._active.pop(relay, None)
        relay.deleteLater()

    @property
    def active_count(self) -> int:
        return len(self._active)

    def shutdown(self, timeout_ms: int = 3000) -> None:
        """Wait for running calls; used when the window closes."""
        for _, thread in list(self._active.values()):
            if thread is not None:
                thread.quit()
                thread.wait(timeout_ms)
        if self._writer_thread is not None:
            self._writer_lane.job.emit(None)
            self._writer_thread.wait(timeout_ms)
