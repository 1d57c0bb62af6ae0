"""
Analysis Worker — long-lived subprocess answering scope analysis requests.

THIS IS A SUBPROCESS ENTRY POINT. The host talks to it through AnalysisPool.

Protocol:
- Host spawns this process
- Worker imports esprima and the analyzer ONCE at startup
- Worker reads JSON lines from stdin and writes JSON lines to stdout
- Requests are answered strictly in arrival order
- Logging goes to stderr; stdout carries only protocol messages
- Worker exits when stdin closes, on a shutdown command, or to recycle

Request format (JSON line):
    {"kind": "scopeAnalysis", "dir": "/src", "file": "/main.js",
     "text": "...", "force": true, "id": "uuid"}

Response format (JSON line):
    {"kind": "scopeAnalysis", "dir": ..., "file": ..., "length": 123,
     "scope": {...} | null, "globals": [...], "identifiers": [...],
     "properties": [...], "literals": [...], "associations": {...},
     "success": true, "id": "uuid"}

Messages of any other kind are logged and get no response.

Usage:
    python -m outerscope.parser.analysis_worker
"""

import json
import logging
import os
import signal
import sys
from typing import Any, Dict, Optional, TextIO

from outerscope.hints import SCOPE_MSG_TYPE
from outerscope.parser.pipeline import Analyzer
from outerscope.parser.response import FailedAnalysis
from outerscope.parser.scope_serde import serialize_message

logger = logging.getLogger(__name__)

# Recycle after this many analyses to bound memory growth
MAX_ANALYSES_BEFORE_RECYCLE = 5000


def _setup_signal_handlers():
    """Ignore SIGINT in worker - let the host handle it."""
    try:
        signal.signal(signal.SIGINT, signal.SIG_IGN)
    except (ValueError, OSError):
        pass  # Not supported on this platform/thread


def _describe(request: Dict[str, Any]) -> str:
    """Short form of a request for log lines (never the full text)."""
    brief = {k: v for k, v in request.items() if k != "text"}
    if "text" in request:
        brief["text"] = f"<{len(str(request['text']))} chars>"
    return json.dumps(brief, default=str)


def handle_request(request: Dict[str, Any], analyzer: Analyzer) -> Optional[Dict[str, Any]]:
    """
    Handle a single request.

    Returns the response message, or None for messages that get no reply.
    """
    if request.get("kind") != SCOPE_MSG_TYPE:
        logger.warning(f"Unknown message: {_describe(request)}")
        return None

    directory = str(request.get("dir", ""))
    filename = str(request.get("file", ""))
    text = request.get("text")
    force = request.get("force") is True

    if not isinstance(text, str):
        logger.warning(f"Request without text: {_describe(request)}")
        response = FailedAnalysis(dir=directory, file=filename, length=0).to_message()
        response["error_type"] = "InvalidRequest"
        response["error"] = "Request must carry 'text' as a string"
    else:
        try:
            response = analyzer.analyze(directory, filename, text, force).to_message()
        except Exception as e:
            logger.exception(f"Analysis of {directory}{filename} crashed")
            response = FailedAnalysis(dir=directory, file=filename, length=len(text)).to_message()
            response["error_type"] = type(e).__name__
            response["error"] = str(e)

    if "id" in request:
        response["id"] = request["id"]
    return response


def _write(stdout: TextIO, message: Dict[str, Any]) -> None:
    stdout.write(serialize_message(message) + "\n")
    stdout.flush()


def worker_main(stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None,
                analyzer: Optional[Analyzer] = None,
                recycle_after: Optional[int] = None) -> int:
    """
    Main worker loop. Reads JSON lines from stdin, writes responses to stdout.

    Returns the number of analyses performed.
    """
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    if analyzer is None or recycle_after is None:
        from outerscope.config import get_config
        config = get_config()
        if analyzer is None:
            analyzer = Analyzer(max_retries=config.max_retries)
        if recycle_after is None:
            recycle_after = config.recycle_after or MAX_ANALYSES_BEFORE_RECYCLE

    # Signal ready to host
    _write(stdout, {"ready": True, "pid": os.getpid()})

    analysis_count = 0
    for line in stdin:
        line = line.strip()
        if not line:
            continue

        try:
            request = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid request JSON: {e}")
            continue

        if not isinstance(request, dict):
            logger.warning(f"Unknown message: {line[:200]}")
            continue

        if request.get("command") == "shutdown":
            break

        response = handle_request(request, analyzer)
        if response is None:
            continue

        _write(stdout, response)
        analysis_count += 1

        # Exit so the host can respawn a fresh worker
        if analysis_count >= recycle_after:
            _write(stdout, {"recycle": True, "analyses": analysis_count})
            break

    return analysis_count


def main(log_level: Optional[str] = None) -> int:
    """Process entry point: stderr logging, SIGINT ignored, then the loop."""
    logging.basicConfig(
        level=(log_level or os.environ.get("OUTERSCOPE_LOG_LEVEL", "WARNING")).upper(),
        format="[worker %(process)d] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    _setup_signal_handlers()
    worker_main()
    return 0


if __name__ == "__main__":
    sys.exit(main())
