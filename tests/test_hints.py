"""
Tests for hint tokens and the static vocabulary.
"""

import pytest

from outerscope.hints import (
    JSL_GLOBAL_DEFS,
    KEYWORDS,
    LITERALS,
    SCOPE_MSG_TYPE,
    Token,
    annotate_globals,
    annotate_literals,
    annotate_with_path,
    make_token,
    maybe_identifier,
    split_path,
)


class TestToken:
    """Test token construction and wire form."""

    def test_make_token_defaults_to_no_positions(self):
        token = make_token("window")
        assert token.value == "window"
        assert token.positions == ()

    def test_make_token_keeps_positions(self):
        token = make_token("x", [3, 10])
        assert token.positions == (3, 10)

    def test_plain_token_dict(self):
        assert make_token("x", [1]).to_dict() == {"value": "x", "positions": [1]}

    def test_tokens_are_immutable(self):
        token = make_token("x")
        with pytest.raises(AttributeError):
            token.value = "y"

    def test_equal_tokens_compare_equal(self):
        assert make_token("x", [1, 2]) == Token("x", (1, 2))


class TestDecoration:
    """Test the annotate_* helpers."""

    def test_globals_flag(self):
        [token] = annotate_globals([make_token("foo")])
        assert token.is_global
        assert token.to_dict() == {"value": "foo", "positions": [], "global": True}

    def test_path_is_dir_plus_file(self):
        [token] = annotate_with_path([make_token("bar", [5])], "/src", "/main.js")
        assert token.path == "/src/main.js"
        assert token.to_dict()["path"] == "/src/main.js"

    def test_literal_kind_follows_value_type(self):
        tokens = annotate_literals([make_token("hi", [0]), make_token(42, [8]), make_token(1.5, [12])])
        assert [t.kind for t in tokens] == ["string", "number", "number"]
        assert all(t.literal for t in tokens)

    def test_literal_kind_override(self):
        [token] = annotate_literals([make_token(7)], kind="string")
        assert token.kind == "string"

    def test_decoration_does_not_mutate_input(self):
        original = make_token("x", [1])
        annotate_globals([original])
        assert not original.is_global
        assert "global" not in original.to_dict()


class TestHelpers:
    """Test the small string helpers."""

    def test_split_path(self):
        assert split_path("/project/src/main.js") == {"dir": "/project/src", "file": "/main.js"}

    def test_split_path_rebuilds_original(self):
        parts = split_path("/a/b/c.js")
        assert parts["dir"] + parts["file"] == "/a/b/c.js"

    def test_split_path_without_separator(self):
        assert split_path("main.js") == {"dir": "", "file": "main.js"}

    def test_maybe_identifier(self):
        assert maybe_identifier("foo")
        assert maybe_identifier("$")
        assert maybe_identifier('"quoted key"')
        assert not maybe_identifier("")
        assert not maybe_identifier("+=")

    def test_maybe_identifier_is_ascii_only(self):
        assert not maybe_identifier("\u00e9")
        assert not maybe_identifier("\u0661")
        assert maybe_identifier("caf\u00e9")


class TestVocabulary:
    """Test keywords, literal keywords and JSLint presets."""

    def test_message_kind(self):
        assert SCOPE_MSG_TYPE == "scopeAnalysis"

    def test_keywords(self):
        values = {t.value for t in KEYWORDS}
        assert {"function", "return", "typeof", "var"} <= values
        assert all(t.positions == () for t in KEYWORDS)

    def test_literal_keywords(self):
        assert [t.value for t in LITERALS] == ["true", "false", "null", "undefined"]

    def test_preset_names(self):
        assert set(JSL_GLOBAL_DEFS) == {"browser", "devel", "node", "rhino", "windows"}

    def test_browser_preset_spelling(self):
        values = [t.value for t in JSL_GLOBAL_DEFS["browser"]]
        assert "clearInterval" in values
        assert "window" in values

    def test_node_preset(self):
        values = [t.value for t in JSL_GLOBAL_DEFS["node"]]
        assert len(values) == 14
        assert {"require", "module", "exports", "__dirname"} <= set(values)

    def test_presets_share_tokens(self):
        browser = {t.value: t for t in JSL_GLOBAL_DEFS["browser"]}
        node = {t.value: t for t in JSL_GLOBAL_DEFS["node"]}
        assert browser["setTimeout"] is node["setTimeout"]

    def test_presets_are_read_only(self):
        with pytest.raises(TypeError):
            JSL_GLOBAL_DEFS["custom"] = ()
