"""
Analysis Pool — supervisor for long-lived analysis worker processes.

Each worker is a fully isolated process running analysis_worker. The pool:
- Spawns workers and waits for their ready signal
- Routes requests round-robin
- Kills a worker that exceeds the request timeout (respawned on next use)
- Respawns crashed workers and recycles them after N analyses
- Shuts down cleanly on shutdown()

Usage:
    from outerscope.parser.analysis_pool import AnalysisPool

    with AnalysisPool(num_workers=2) as pool:
        result = pool.analyze("/src", "/main.js", text, force=True)
        if result.success:
            identifiers = result.response["identifiers"]
"""

import json
import logging
import os
import subprocess
import sys
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from outerscope.config import get_config
from outerscope.hints import SCOPE_MSG_TYPE
from outerscope.parser.scope_serde import deserialize_message

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT_MS = 30000
IPC_BUFFER_SECONDS = 2.0  # added to the request timeout for pipe overhead
WORKER_RECYCLE_AFTER = 5000  # respawn worker after this many analyses

WORKER_MODULE = "outerscope.parser.analysis_worker"


@dataclass
class PoolResult:
    """Result from a pool request."""
    success: bool
    response: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


def _src_root() -> Path:
    """Directory that contains the outerscope package."""
    # This file is at <src>/outerscope/parser/analysis_pool.py
    return Path(__file__).resolve().parent.parent.parent


class WorkerProcess:
    """
    Wrapper around a single analysis worker subprocess.

    Handles:
    - Spawning the worker
    - Sending requests via stdin
    - Reading responses via stdout on a background thread
    - Killing on timeout
    """

    def __init__(self, worker_id: int, max_retries: Optional[int] = None,
                 recycle_after: int = WORKER_RECYCLE_AFTER):
        self.worker_id = worker_id
        self.max_retries = max_retries
        self.recycle_after = recycle_after
        self.process: Optional[subprocess.Popen] = None
        self.pid: Optional[int] = None
        self.analysis_count = 0
        self.lock = threading.Lock()
        self._reader_thread: Optional[threading.Thread] = None
        self._pending_requests: Dict[str, threading.Event] = {}
        self._pending_responses: Dict[str, dict] = {}
        self._closed = False

    def start(self) -> bool:
        """
        Start the worker subprocess.

        Returns True if the worker started and sent its ready signal.
        """
        env = dict(os.environ)
        src_root = str(_src_root())
        env["PYTHONPATH"] = os.pathsep.join(p for p in (src_root, env.get("PYTHONPATH")) if p)
        if self.max_retries is not None:
            env["OUTERSCOPE_MAX_RETRIES"] = str(self.max_retries)

        try:
            # stderr is inherited so worker logs reach the host
            self.process = subprocess.Popen(
                [sys.executable, "-m", WORKER_MODULE],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                env=env,
                bufsize=1,  # Line buffered
            )
        except OSError as e:
            logger.error(f"Failed to spawn worker {self.worker_id}: {e}")
            return False

        try:
            ready_line = self.process.stdout.readline()
            if not ready_line:
                logger.error(f"Worker {self.worker_id} closed stdout immediately")
                self.kill()
                return False

            ready_msg = deserialize_message(ready_line.strip())
            if not ready_msg.get("ready"):
                logger.error(f"Worker {self.worker_id} sent unexpected ready: {ready_msg}")
                self.kill()
                return False
        except (OSError, ValueError) as e:
            logger.error(f"Worker {self.worker_id} failed during startup: {e}")
            self.kill()
            return False

        self.pid = ready_msg.get("pid", self.process.pid)
        self.analysis_count = 0
        self._closed = False
        self._reader_thread = threading.Thread(
            target=self._read_responses,
            daemon=True,
            name=f"AnalysisWorker-{self.worker_id}-reader",
        )
        self._reader_thread.start()
        return True

    def _read_responses(self):
        """
        Background thread that reads responses from worker stdout.

        Runs until end of file, so replies written just before the worker
        exits are still delivered. Requests still waiting after that are
        woken with no response.
        """
        process = self.process
        while process is not None:
            try:
                line = process.stdout.readline()
            except (OSError, ValueError):
                break
            if not line:
                break

            try:
                response = deserialize_message(line.strip())
            except json.JSONDecodeError:
                logger.warning(f"Worker {self.worker_id} wrote a non-JSON line")
                continue

            if response.get("recycle"):
                # Worker exits after this; next request respawns it
                continue

            req_id = response.get("id")
            event = self._pending_requests.get(req_id) if req_id else None
            if event is not None:
                self._pending_responses[req_id] = response
                event.set()

        self._closed = True
        for event in list(self._pending_requests.values()):
            event.set()

    def is_alive(self) -> bool:
        """Check if worker process is still running."""
        return self.process is not None and self.process.poll() is None

    def needs_recycle(self) -> bool:
        return self.analysis_count >= self.recycle_after

    def analyze(self, directory: str, filename: str, text: str, force: bool,
                timeout_ms: int = DEFAULT_TIMEOUT_MS) -> PoolResult:
        """Send one analysis request to this worker and wait for the reply."""
        if not self.is_alive():
            return PoolResult(
                success=False,
                error_type="WorkerDead",
                error="Worker process is not alive",
            )

        req_id = str(uuid.uuid4())
        request = {
            "kind": SCOPE_MSG_TYPE,
            "id": req_id,
            "dir": directory,
            "file": filename,
            "text": text,
            "force": force,
        }

        response_event = threading.Event()
        self._pending_requests[req_id] = response_event
        if self._closed:
            response_event.set()

        try:
            with self.lock:
                self.process.stdin.write(json.dumps(request) + "\n")
                self.process.stdin.flush()

            timeout_sec = (timeout_ms / 1000) + IPC_BUFFER_SECONDS
            if not response_event.wait(timeout=timeout_sec):
                logger.warning(f"Worker {self.worker_id} timed out on {directory}{filename}; killing it")
                self.kill()
                return PoolResult(
                    success=False,
                    error_type="AnalysisTimeout",
                    error=f"Analysis timeout after {timeout_ms}ms: {directory}{filename}",
                )

            response = self._pending_responses.pop(req_id, None)
            if response is None:
                # Woken by the reader at end of file: the worker is gone
                process = self.process
                exit_code = process.poll() if process is not None else None
                logger.warning(f"Worker {self.worker_id} exited during {directory}{filename} (exit code {exit_code})")
                return PoolResult(
                    success=False,
                    error_type="WorkerCrashed",
                    error=f"Worker process exited before replying (exit code {exit_code})",
                )

            self.analysis_count += 1
            return PoolResult(
                success=bool(response.get("success")),
                response=response,
                error=response.get("error"),
                error_type=response.get("error_type"),
            )

        except (BrokenPipeError, OSError) as e:
            return PoolResult(
                success=False,
                error_type="WorkerCrashed",
                error=f"Worker process crashed: {e}",
            )
        finally:
            self._pending_requests.pop(req_id, None)
            self._pending_responses.pop(req_id, None)

    def kill(self):
        """Kill the worker process."""
        if self.process:
            try:
                self.process.kill()
                self.process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning(f"Worker {self.worker_id} did not die cleanly: {e}")
            self.process = None
            self.pid = None

    def shutdown(self):
        """Gracefully shut down the worker."""
        if self.process and self.is_alive():
            try:
                with self.lock:
                    self.process.stdin.write(json.dumps({"command": "shutdown"}) + "\n")
                    self.process.stdin.flush()
                self.process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired):
                self.kill()
        self.process = None
        self.pid = None


class AnalysisPool:
    """
    Pool of persistent analysis workers.

    Manages worker lifecycle:
    - Spawns workers on start()
    - Routes requests to workers round-robin
    - Respawns crashed/timed-out workers
    - Recycles workers after N analyses
    """

    def __init__(self, num_workers: Optional[int] = None,
                 max_retries: Optional[int] = None,
                 timeout_ms: Optional[int] = None):
        # Anything not given comes from the configuration
        config = get_config()
        self.num_workers = num_workers if num_workers is not None else config.num_workers
        self.max_retries = max_retries if max_retries is not None else config.max_retries
        self.timeout_ms = timeout_ms if timeout_ms is not None else config.request_timeout_ms
        self.recycle_after = config.recycle_after or WORKER_RECYCLE_AFTER
        self.workers: List[WorkerProcess] = []
        self._worker_lock = threading.Lock()
        self._next_worker = 0
        self._running = False

    def __enter__(self) -> "AnalysisPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def start(self):
        """Start all workers in the pool."""
        if self._running:
            return

        self._running = True

        for i in range(self.num_workers):
            worker = WorkerProcess(i, self.max_retries, self.recycle_after)
            if worker.start():
                self.workers.append(worker)
                logger.info(f"Started worker {i} (pid={worker.pid})")
            else:
                logger.error(f"Failed to start worker {i}")

        if not self.workers:
            self._running = False
            raise RuntimeError("Failed to start any analysis workers")

        logger.info(f"Started {len(self.workers)}/{self.num_workers} workers")

    def _get_worker(self) -> Optional[WorkerProcess]:
        """Get next available worker (round-robin)."""
        with self._worker_lock:
            if not self.workers:
                return None

            worker = self.workers[self._next_worker % len(self.workers)]
            self._next_worker += 1

            if worker.is_alive() and not worker.needs_recycle():
                return worker

            worker_id = worker.worker_id
            worker.kill()

            new_worker = WorkerProcess(worker_id, self.max_retries, self.recycle_after)
            if not new_worker.start():
                logger.error(f"Failed to respawn worker {worker_id}")
                return None

            self.workers[self.workers.index(worker)] = new_worker
            logger.info(f"Respawned worker {worker_id} (pid={new_worker.pid})")
            return new_worker

    def analyze(self, directory: str, filename: str, text: str, force: bool = True,
                timeout_ms: Optional[int] = None) -> PoolResult:
        """
        Analyze a document on the next worker.

        A worker that times out or crashes is killed; the next call that
        lands on it respawns it.
        """
        if timeout_ms is None:
            timeout_ms = self.timeout_ms
        if not self._running:
            return PoolResult(
                success=False,
                error_type="PoolNotRunning",
                error="Analysis pool is not running",
            )

        worker = self._get_worker()
        if worker is None:
            return PoolResult(
                success=False,
                error_type="NoWorkerAvailable",
                error="No analysis worker available",
            )

        return worker.analyze(directory, filename, text, force, timeout_ms)

    def get_stats(self) -> dict:
        """Get pool statistics."""
        return {
            "num_workers": len(self.workers),
            "target_workers": self.num_workers,
            "running": self._running,
            "workers": [
                {
                    "id": w.worker_id,
                    "pid": w.pid,
                    "alive": w.is_alive(),
                    "analysis_count": w.analysis_count,
                }
                for w in self.workers
            ],
        }

    def shutdown(self):
        """Shut down all workers."""
        self._running = False

        for worker in self.workers:
            worker.shutdown()

        self.workers.clear()
        logger.info("Pool shutdown complete")
