"""Tests for the plugin registry and plugin dispatch."""

from __future__ import annotations

import logging

import pytest

import mermaid_ast.plugins as plugins_module
from mermaid_ast import (
    Diagnostic,
    DiagramPlugin,
    FlowchartAST,
    ParseResult,
    Plugin,
    PluginRegistry,
    Span,
    get_registry,
    parse,
    use,
)


def make_plugin(name="timeline", keyword="timeline", parse_fn=None, detect_fn=None):
    def default_parse(source):
        return ParseResult(ast={"plugin": name, "source": source})

    return Plugin(
        name=name,
        diagrams=[
            DiagramPlugin(
                type=keyword,
                detect=detect_fn or (lambda line: line.split()[0] == keyword),
                parse=parse_fn or default_parse,
            )
        ],
    )


@pytest.fixture
def registry():
    return PluginRegistry()


# ============================================================================
# Registry
# ============================================================================


class TestRegistry:
    def test_register_appends_in_order(self, registry):
        first, second = make_plugin("a"), make_plugin("b")
        registry.register(first)
        registry.register(second)
        assert [p.name for p in registry] == ["a", "b"]
        assert len(registry) == 2

    def test_plugins_is_a_copy(self, registry):
        registry.register(make_plugin())
        registry.plugins.clear()
        assert len(registry) == 1

    def test_non_callable_parse_raises(self, registry):
        bad = Plugin(name="bad", diagrams=[DiagramPlugin(type="x", detect=lambda line: True, parse="nope")])
        with pytest.raises(TypeError, match="callable"):
            registry.register(bad)
        assert len(registry) == 0

    def test_non_callable_detect_raises(self, registry):
        bad = Plugin(name="bad", diagrams=[DiagramPlugin(type="x", detect=None, parse=lambda s: None)])
        with pytest.raises(TypeError):
            registry.register(bad)

    def test_detect_returns_first_match(self, registry):
        registry.register(make_plugin("first", detect_fn=lambda line: True))
        registry.register(make_plugin("second", detect_fn=lambda line: True))
        plugin, diagram = registry.detect("anything")
        assert plugin.name == "first"

    def test_raising_detector_is_skipped(self, registry, caplog):
        def explode(line):
            raise RuntimeError("boom")

        registry.register(make_plugin("broken", detect_fn=explode))
        registry.register(make_plugin("working"))
        with caplog.at_level(logging.ERROR, logger="mermaid_ast.plugins"):
            plugin, _ = registry.detect("timeline")
        assert plugin.name == "working"
        assert any("broken" in r.getMessage() for r in caplog.records)


# ============================================================================
# Dispatch through plugins
# ============================================================================


class TestPluginDispatch:
    def test_plugin_handles_unknown_keyword(self, registry):
        registry.register(make_plugin())
        result = parse("timeline\n  2024 : launch", plugins=registry)
        assert result.ast == {"plugin": "timeline", "source": "timeline\n  2024 : launch"}
        assert result.diagnostics == []

    def test_builtin_keywords_take_precedence(self, registry):
        calls = []
        registry.register(make_plugin("greedy", detect_fn=lambda line: True, parse_fn=calls.append))
        result = parse("graph TD\n  A-->B", plugins=registry)
        assert isinstance(result.ast, FlowchartAST)
        assert calls == []

    def test_dict_result_is_accepted(self, registry):
        warning = Diagnostic(severity="warning", message="odd", span=Span(line=2))
        registry.register(make_plugin(parse_fn=lambda source: {"ast": "tree", "diagnostics": [warning]}))
        result = parse("timeline", plugins=registry)
        assert result.ast == "tree"
        assert result.diagnostics == [warning]

    def test_front_matter_is_kept_for_plugins(self, registry):
        registry.register(make_plugin())
        result = parse("---\ntitle: T\n---\ntimeline", plugins=registry)
        assert result.front_matter == {"title": "T"}
        assert result.ast["plugin"] == "timeline"

    def test_raising_parser_becomes_an_error(self, registry, caplog):
        def explode(source):
            raise ValueError("bad input")

        registry.register(make_plugin(parse_fn=explode))
        with caplog.at_level(logging.ERROR, logger="mermaid_ast.dispatcher"):
            result = parse("timeline", plugins=registry)
        assert result.ast is None
        assert len(result.errors) == 1
        assert "bad input" in result.errors[0].message
        assert any(r.exc_info for r in caplog.records)

    def test_unsupported_result_becomes_an_error(self, registry):
        registry.register(make_plugin(parse_fn=lambda source: 42))
        result = parse("timeline", plugins=registry)
        assert result.ast is None
        assert result.has_errors

    def test_no_matching_plugin_is_unrecognized(self, registry):
        registry.register(make_plugin())
        result = parse("journey", plugins=registry)
        assert result.ast is None
        assert result.errors[0].message == "unrecognized diagram type"


# ============================================================================
# Process-wide registry
# ============================================================================


class TestDefaultRegistry:
    @pytest.fixture(autouse=True)
    def fresh_default(self, monkeypatch):
        monkeypatch.setattr(plugins_module, "_default_registry", PluginRegistry())

    def test_use_registers_globally(self):
        use(make_plugin())
        assert len(get_registry()) == 1
        assert parse("timeline").ast["plugin"] == "timeline"

    def test_explicit_registry_overrides_default(self):
        use(make_plugin())
        result = parse("timeline", plugins=PluginRegistry())
        assert result.ast is None

    def test_default_registry_starts_empty(self):
        assert len(get_registry()) == 0
        assert parse("timeline").ast is None
