"""
Tests for the in-process analysis channel.
"""

import threading

import pytest

from outerscope.parser import AnalysisCancelled, Analyzer, FatalSyntaxError, parse_javascript
from outerscope.parser.channel import AnalysisChannel


class GatedParse:
    """Blocks the first call until released, then fails it on line 1."""

    def __init__(self):
        self.started = threading.Event()
        self.gate = threading.Event()
        self.calls = 0

    def __call__(self, text):
        self.calls += 1
        if self.calls == 1:
            self.started.set()
            self.gate.wait(timeout=10)
            raise FatalSyntaxError("Unexpected token", line_number=1, index=0, column=0)
        return parse_javascript(text)


class TestChannel:
    """Test request handling on the background thread."""

    def test_submit_and_result(self):
        with AnalysisChannel() as channel:
            task = channel.submit("/src", "/main.js", "var a = 1;", force=True)
            response = task.result(timeout=10)
        assert response.success
        assert [t.value for t in response.identifiers] == ["a"]

    def test_requests_complete_in_order(self):
        finished = []
        with AnalysisChannel() as channel:
            tasks = [channel.submit("/src", f"/f{i}.js", f"var v{i};") for i in range(5)]
            for task in tasks:
                task.future.add_done_callback(lambda f, name=task.filename: finished.append(name))
            for task in tasks:
                task.result(timeout=10)
        assert finished == [f"/f{i}.js" for i in range(5)]

    def test_failure_is_a_response(self):
        with AnalysisChannel() as channel:
            response = channel.submit("/src", "/bad.js", "var = ;", force=False).result(timeout=10)
        assert not response.success

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            AnalysisChannel().submit("/src", "/main.js", "")

    def test_close_is_idempotent(self):
        channel = AnalysisChannel()
        channel.start()
        channel.close(timeout=10)
        channel.close(timeout=10)


class TestCancellation:
    """Test cancelling queued and running requests."""

    def test_cancel_running_request_between_attempts(self):
        parse = GatedParse()
        with AnalysisChannel(Analyzer(parse_fn=parse)) as channel:
            task = channel.submit("/src", "/main.js", "var = ;\nvar a;\n", force=True)
            assert parse.started.wait(timeout=10)
            assert task.cancel()
            parse.gate.set()
            with pytest.raises(AnalysisCancelled):
                task.result(timeout=10)
        assert parse.calls == 1

    def test_cancel_queued_request(self):
        parse = GatedParse()
        with AnalysisChannel(Analyzer(parse_fn=parse)) as channel:
            first = channel.submit("/src", "/first.js", "var = ;\nvar a;\n", force=True)
            assert parse.started.wait(timeout=10)
            second = channel.submit("/src", "/second.js", "var b;", force=True)
            assert second.cancel()
            parse.gate.set()
            response = first.result(timeout=10)
        assert response.success
        assert second.future.cancelled()
        assert parse.calls == 2

    def test_cancel_after_completion(self):
        with AnalysisChannel() as channel:
            task = channel.submit("/src", "/main.js", "var a;")
            task.result(timeout=10)
            assert not task.cancel()
