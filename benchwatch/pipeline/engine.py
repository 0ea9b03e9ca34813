"""Background worker that re-evaluates the pipeline on poll ticks and webhooks."""

from __future__ import annotations

import logging
import queue
import threading

from benchwatch.pipeline.orchestrator import BenchmarkPipeline

logger = logging.getLogger(__name__)

_STOP = object()


class Engine:
    """Serialises pipeline evaluations on a single worker thread.

    Triggers arriving while one is already queued are coalesced, since every
    evaluation looks at the current head anyway.
    """

    def __init__(self, pipeline: BenchmarkPipeline, poll_interval_s: float = 300.0) -> None:
        self.pipeline = pipeline
        self._poll_interval_s = poll_interval_s
        self._queue: queue.Queue[object] = queue.Queue(maxsize=1)
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()

    def trigger(self, reason: str) -> bool:
        """Queue an evaluation; returns ``False`` if one was already pending."""
        try:
            self._queue.put_nowait(reason)
        except queue.Full:
            logger.debug("Evaluation already pending, dropping trigger %r", reason)
            return False
        logger.info("Evaluation requested (%s)", reason)
        return True

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name="benchwatch-engine", daemon=True)
        self._thread.start()
        self.trigger("startup")

    def stop(self, timeout_s: float | None = None) -> None:
        if self._thread is None:
            return
        self._stopping.set()
        try:
            self._queue.put_nowait(_STOP)
        except queue.Full:
            # A pending trigger wakes the worker, which then sees the flag.
            logger.debug("Trigger pending, worker will stop after waking")
        self._thread.join(timeout_s)
        self._thread = None

    def _run(self) -> None:
        while True:
            try:
                reason = self._queue.get(timeout=self._poll_interval_s)
            except queue.Empty:
                reason = "poll"
            if reason is _STOP or self._stopping.is_set():
                return
            try:
                outcome = self.pipeline.evaluate()
            except Exception:
                logger.exception("Pipeline evaluation (%s) failed", reason)
                continue
            if not outcome.skipped:
                logger.info(
                    "Benchmarked %s: result at %s, notified=%s",
                    outcome.commit.short,
                    outcome.result_path,
                    outcome.notified,
                )
