"""
Background Workers (Threading)
==============================
This module contains the QThread subclass that runs one diagram render and
the dispatcher that owns the live workers.

Why is this file needed?
------------------------
1. Responsiveness: mermaid-cli takes hundreds of milliseconds per call. If we
   ran it on the main thread, the editor would freeze while typing.
2. Signals: Results are handed back with Qt Signals, so they are applied on
   the main thread in the order the event loop delivers them.

Classes:
    RenderWorker: Runs a single RenderRequest through the renderer.
    RenderDispatcher: Starts workers, re-emits their results, waits on shutdown.
"""
from __future__ import annotations

import logging
from typing import Optional, Set

from PySide6.QtCore import QObject, QThread, Signal

from flowcraft.controller.renderer import MermaidRenderer
from flowcraft.model.state import RenderRequest

logger = logging.getLogger(__name__)

# Extra seconds granted on shutdown beyond the renderer timeout
SHUTDOWN_GRACE_S: float = 2.0


class RenderWorker(QThread):
    # Signals to report back from the background
    render_finished = Signal(object, object)  # (RenderRequest, Rendered | Failed)
    error_occurred = Signal(object, str)  # (RenderRequest, message)

    def __init__(self, renderer: MermaidRenderer, request: RenderRequest, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.renderer = renderer
        self.request = request

    def run(self):
        try:
            logger.debug(f"Rendering session {self.request.session} in background thread...")
            outcome = self.renderer.render(self.request.text, self.request.config)
            self.render_finished.emit(self.request, outcome)
        except Exception as e:
            logger.error(f"Error in RenderWorker (session {self.request.session}): {e}")
            self.error_occurred.emit(self.request, str(e))


class RenderDispatcher(QObject):
    """
    Fire-and-forget render execution.

    Every submitted request gets its own worker; nothing is cancelled. The
    consumer decides which results still matter.
    """
    resolved = Signal(object, object)  # (RenderRequest, Rendered | Failed)
    faulted = Signal(object, str)  # (RenderRequest, message)

    def __init__(self, renderer: MermaidRenderer, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.renderer = renderer
        self._workers: Set[RenderWorker] = set()
        self._closed = False

    @property
    def active_count(self) -> int:
        return len(self._workers)

    def submit(self, request: RenderRequest) -> None:
        if self._closed:
            raise RuntimeError("Render dispatcher has been shut down")

        worker = RenderWorker(self.renderer, request)
        # Worker signals are emitted from the worker thread; the dispatcher lives
        # on the main thread, so these connections are queued.
        worker.render_finished.connect(self._on_worker_finished)
        worker.error_occurred.connect(self._on_worker_error)
        worker.finished.connect(lambda w=worker: self._release(w))

        self._workers.add(worker)
        worker.start()

    def shutdown(self, timeout_ms: Optional[int] = None) -> None:
        """
        Stop accepting requests and wait for running workers.

        The default wait covers the renderer timeout, after which every
        worker has returned. A worker still running when the wait ends stays
        referenced here until its `finished` signal releases it; a running
        QThread must never be garbage collected.
        """
        self._closed = True
        if timeout_ms is None:
            timeout_ms = int((self.renderer.timeout + SHUTDOWN_GRACE_S) * 1000)
        for worker in list(self._workers):
            if worker.wait(timeout_ms):
                self._workers.discard(worker)
            else:
                logger.warning(f"Render worker for session {worker.request.session} did not finish in time.")

    def _on_worker_finished(self, request: RenderRequest, outcome: object) -> None:
        if self._closed:
            return
        self.resolved.emit(request, outcome)

    def _on_worker_error(self, request: RenderRequest, message: str) -> None:
        if self._closed:
            return
        self.faulted.emit(request, message)

    def _release(self, worker: RenderWorker) -> None:
        self._workers.discard(worker)
        worker.deleteLater()
