"""
In-process analysis channel.

A single daemon thread takes requests off a FIFO queue and resolves one
Future per request. Between repair attempts the thread yields and checks
whether the request was cancelled, so a long repair sequence never holds
the channel past the host's interest in it.

Usage:
    with AnalysisChannel() as channel:
        task = channel.submit("/src", "/main.js", text, force=True)
        response = task.result(timeout=5)
"""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from queue import Queue
from typing import Optional

from outerscope.parser.errors import AnalysisCancelled
from outerscope.parser.pipeline import Analyzer
from outerscope.parser.response import AnalysisResponse

logger = logging.getLogger(__name__)


@dataclass
class AnalysisTask:
    """One submitted request and the future that will carry its response."""
    directory: str
    filename: str
    text: str
    force: bool
    future: Future = field(default_factory=Future)
    _cancel_requested: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def source(self) -> str:
        return self.directory + self.filename

    def cancel(self) -> bool:
        """
        Cancel the request.

        A queued request is cancelled outright. A running one stops at its
        next repair boundary and its future raises AnalysisCancelled.
        Returns False only if the response was already delivered.
        """
        if self.future.done():
            return False
        self._cancel_requested.set()
        self.future.cancel()
        return True

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def result(self, timeout: Optional[float] = None) -> AnalysisResponse:
        return self.future.result(timeout=timeout)


class AnalysisChannel:
    """Sequential, cancellable analysis on a background thread."""

    def __init__(self, analyzer: Optional[Analyzer] = None):
        self.analyzer = analyzer or Analyzer()
        self._queue: "Queue[Optional[AnalysisTask]]" = Queue()
        self._thread: Optional[threading.Thread] = None

    def __enter__(self) -> "AnalysisChannel":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, daemon=True, name="AnalysisChannel")
        self._thread.start()

    def submit(self, directory: str, filename: str, text: str, force: bool = True) -> AnalysisTask:
        """Queue a request; its future resolves to an AnalysisResponse."""
        if self._thread is None:
            raise RuntimeError("AnalysisChannel is not started")
        task = AnalysisTask(directory, filename, text, force)
        self._queue.put(task)
        return task

    def close(self, timeout: Optional[float] = None) -> None:
        """Finish queued requests, then stop the thread."""
        if self._thread is None:
            return
        self._queue.put(None)
        self._thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while True:
            task = self._queue.get()
            if task is None:
                break
            if not task.future.set_running_or_notify_cancel():
                continue
            try:
                task.future.set_result(self._process(task))
            except AnalysisCancelled as e:
                logger.info(str(e))
                task.future.set_exception(e)
            except Exception as e:
                logger.exception(f"Analysis of {task.source} crashed")
                task.future.set_exception(e)

    def _process(self, task: AnalysisTask) -> AnalysisResponse:
        session = None
        for session in self.analyzer.parser.iter_attempts(task.text, task.force, source=task.source):
            if session.done:
                break
            # Suspension point between repair attempts
            time.sleep(0)
            if task.cancel_requested:
                raise AnalysisCancelled(task.source, session.attempts)
        return self.analyzer.respond(task.directory, task.filename, task.text, session)
