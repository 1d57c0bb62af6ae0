"""
Tests for the analysis pipeline and response assembly.
"""

import json

from conftest import offsets_of, scope_of, token_map
from outerscope.parser import (
    Analyzer,
    FailedAnalysis,
    ScopeAnalysis,
    ScopeOutcome,
    analyze,
    assemble,
)
from outerscope.hints import make_token


def all_tokens(response):
    return (
        list(response.identifiers)
        + list(response.properties)
        + list(response.literals)
    )


class TestSuccessfulAnalysis:
    """Test responses for documents that parse."""

    def test_identifiers(self, analyzer, simple_source):
        response = analyzer.analyze("/src", "/main.js", simple_source, allow_repair=True)
        assert isinstance(response, ScopeAnalysis)
        assert response.success
        ids = token_map(response.identifiers)
        assert ids["a"] == [simple_source.index("a = 1"), simple_source.index("a + b"), simple_source.index("a);")]
        assert len(ids["b"]) == 2
        assert response.length == len(simple_source)

    def test_properties_carry_path(self, analyzer):
        text = "var o = {}; o.name = 1; console.log(o.name);"
        response = analyzer.analyze("/src", "/main.js", text, allow_repair=True)
        props = {t.value: t for t in response.properties}
        assert props["name"].positions == tuple(offsets_of(text, "name"))
        assert props["name"].path == "/src/main.js"
        assert props["log"].path == "/src/main.js"

    def test_literals(self, analyzer):
        text = 'var s = "hi"; var n = 42; f("hi", 42.0, true);'
        response = analyzer.analyze("/src", "/main.js", text, allow_repair=True)
        lits = {t.value: t for t in response.literals}
        assert set(lits) == {"hi", 42}
        assert lits["hi"].kind == "string"
        assert lits[42].kind == "number"
        assert lits[42].positions == (text.index("42"), text.index("42.0"))
        assert all(t.literal for t in response.literals)

    def test_associations(self, analyzer):
        text = "var x = {}; x.foo = 1; x.foo = 2; x.bar = 3;"
        response = analyzer.analyze("/src", "/main.js", text, allow_repair=True)
        assert response.associations == {"x": {"foo": 2, "bar": 1}}

    def test_explicit_globals(self, analyzer):
        text = "/*global foo, bar:true */\nfoo(bar);\n"
        response = analyzer.analyze("/src", "/main.js", text, allow_repair=True)
        assert [t.value for t in response.globals] == ["bar", "foo"]
        assert all(t.is_global and t.positions == () for t in response.globals)

    def test_jslint_globals(self, analyzer):
        text = "/*jslint node:true */\nrequire('fs');\n"
        response = analyzer.analyze("/src", "/main.js", text, allow_repair=True)
        values = [t.value for t in response.globals]
        assert "require" in values
        assert len(values) == 14

    def test_empty_document(self, analyzer):
        response = analyzer.analyze("/src", "/empty.js", "", allow_repair=True)
        assert response.success
        assert response.identifiers == ()
        assert response.associations == {}
        assert response.length == 0

    def test_positions_in_bounds_and_ascending(self, analyzer):
        text = (
            "/*global $ */\n"
            "var app = {cfg: {depth: 3}};\n"
            "function run(app, n) {\n"
            "    for (var i = 0; i < n; i++) { app.cfg.depth += i; }\n"
            "    return $('#x').text('done ' + app.cfg.depth);\n"
            "}\n"
            "run(app, 10);\n"
        )
        response = analyzer.analyze("/src", "/app.js", text, allow_repair=True)
        for token in all_tokens(response):
            positions = list(token.positions)
            assert all(0 <= p < len(text) for p in positions)
            assert all(a < b for a, b in zip(positions, positions[1:]))

    def test_deterministic(self, analyzer, simple_source):
        first = analyzer.analyze("/src", "/main.js", simple_source, allow_repair=True).to_message()
        second = analyzer.analyze("/src", "/main.js", simple_source, allow_repair=True).to_message()
        assert json.dumps(first) == json.dumps(second)


class TestRepairedAnalysis:
    """Test responses for documents that need repair."""

    def test_blanked_line_contributes_nothing(self, analyzer, broken_source):
        response = analyzer.analyze("/src", "/main.js", broken_source, allow_repair=True)
        assert response.success
        line3_start = broken_source.index("var c")
        line3_end = broken_source.index("\n", line3_start)
        for token in all_tokens(response):
            assert not any(line3_start <= p < line3_end for p in token.positions)
        ids = token_map(response.identifiers)
        assert "c" not in ids
        assert {"a", "b", "d"} <= set(ids)
        assert response.length == len(broken_source)

    def test_carriage_return_document_keeps_later_lines(self, analyzer, broken_source):
        text = broken_source.replace("\n", "\r")
        response = analyzer.analyze("/src", "/main.js", text, allow_repair=True)
        assert response.success
        ids = token_map(response.identifiers)
        assert "c" not in ids
        assert {"a", "b", "d"} <= set(ids)

    def test_failure_without_repair(self, analyzer, broken_source):
        response = analyzer.analyze("/src", "/main.js", broken_source, allow_repair=False)
        assert isinstance(response, FailedAnalysis)
        assert not response.success
        assert response.scope is None
        assert response.identifiers == ()
        assert response.globals == ()
        assert response.associations == {}
        assert response.length == len(broken_source)

    def test_single_broken_line_repairs_to_empty(self, analyzer):
        response = analyzer.analyze("/src", "/main.js", "var = ;", allow_repair=True)
        assert response.success
        assert response.identifiers == ()

    def test_exhausted_budget_fails(self, scripted_parse):
        analyzer = Analyzer(parse_fn=scripted_parse(range(1, 50)), max_retries=2)
        text = "\n".join(["var a;"] * 10)
        response = analyzer.analyze("/src", "/main.js", text, allow_repair=True)
        assert not response.success

    def test_scope_build_recursion_is_a_failure(self):
        def too_deep(tree):
            raise RecursionError("maximum recursion depth exceeded")

        analyzer = Analyzer(build_scope=too_deep)
        response = analyzer.analyze("/src", "/main.js", "var a;", allow_repair=True)
        assert isinstance(response, FailedAnalysis)

    def test_module_level_analyze(self, simple_source):
        response = analyze("/src", "/main.js", simple_source)
        assert response.success


class TestMessages:
    """Test the protocol message form of a response."""

    def test_success_message(self, analyzer):
        text = "/*global g */\nvar x = {}; x.p = 'v';\n"
        message = analyzer.analyze("/src", "/main.js", text, allow_repair=True).to_message()
        assert message["kind"] == "scopeAnalysis"
        assert message["dir"] == "/src"
        assert message["file"] == "/main.js"
        assert message["length"] == len(text)
        assert message["success"] is True
        assert message["scope"]["range"][1] <= len(text)
        assert message["globals"] == [{"value": "g", "positions": [], "global": True}]
        assert {"value": "v", "positions": [text.index("'v'")], "literal": True, "kind": "string"} in message["literals"]
        assert message["associations"] == {"x": {"p": 1}}
        json.dumps(message)

    def test_message_is_strict_json(self, analyzer):
        text = "var big = 1e999; var small = -1e999;"
        message = analyzer.analyze("/src", "/main.js", text, allow_repair=True).to_message()
        assert message["literals"] == []
        json.dumps(message, allow_nan=False)

    def test_failure_message(self):
        message = FailedAnalysis(dir="/src", file="/main.js", length=12).to_message()
        assert message == {
            "kind": "scopeAnalysis",
            "dir": "/src",
            "file": "/main.js",
            "length": 12,
            "scope": None,
            "globals": [],
            "identifiers": [],
            "properties": [],
            "literals": [],
            "associations": {},
            "success": False,
        }


class TestAssemble:
    """Test assembling responses directly."""

    def test_no_outcome(self):
        response = assemble("/d", "/f.js", 5, None)
        assert isinstance(response, FailedAnalysis)
        assert response.length == 5

    def test_outcome_globals_are_marked(self):
        outcome = ScopeOutcome(scope=scope_of("var a;"), globals=[make_token("window")])
        response = assemble("/d", "/f.js", 6, outcome)
        assert response.success
        assert [t.is_global for t in response.globals] == [True]
        assert token_map(response.identifiers) == {"a": [4]}
