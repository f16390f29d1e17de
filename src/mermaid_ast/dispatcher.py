from __future__ import annotations

import logging
import re
from typing import Any

from .class_diagram.parser import parse_class_diagram
from .diagnostics import DiagnosticCollector
from .er.parser import parse_er_diagram
from .gantt.parser import parse_gantt_chart
from .mindmap.parser import parse_mindmap
from .parser import parse_flowchart, parse_state_diagram
from .pie.parser import parse_pie_chart
from .plugins import DiagramPlugin, Plugin, PluginRegistry, get_registry
from .scanner import first_significant_line, read_front_matter, scan_lines
from .sequence.parser import parse_sequence_diagram
from .types import DiagramType, ParseOptions, ParseResult

logger = logging.getLogger(__name__)

# ============================================================================
# Dialect dispatcher
#
# Detects the dialect from the first token of the first significant line and
# hands the scanned lines to that dialect's parser. Keywords are compared
# case-insensitively; plugins are consulted only when no built-in keyword
# matches.
# ============================================================================

DIAGRAM_KEYWORDS: dict[str, DiagramType] = {
    "graph": "flowchart",
    "flowchart": "flowchart",
    "statediagram": "state",
    "statediagram-v2": "state",
    "sequencediagram": "sequence",
    "classdiagram": "class",
    "classdiagram-v2": "class",
    "erdiagram": "er",
    "pie": "pie",
    "gantt": "gantt",
    "mindmap": "mindmap",
}

UNRECOGNIZED_MESSAGE = "unrecognized diagram type"

_PARSERS = {
    "state": parse_state_diagram,
    "sequence": parse_sequence_diagram,
    "class": parse_class_diagram,
    "er": parse_er_diagram,
    "pie": parse_pie_chart,
    "gantt": parse_gantt_chart,
    "mindmap": parse_mindmap,
}


def detect_diagram_type(source: str) -> DiagramType | None:
    """Detect the built-in dialect of `source`, ignoring plugins."""
    first = first_significant_line(source)
    if first is None:
        return None
    return DIAGRAM_KEYWORDS.get(_first_token(first.text))


def dispatch(
    source: str,
    plugins: PluginRegistry | None = None,
    options: ParseOptions | None = None,
) -> ParseResult:
    """Parse diagram text of any supported dialect.

    Never raises for malformed input: problems are reported as diagnostics,
    and an unrecognised diagram kind yields `ast=None` with a single error.
    `plugins` defaults to the process-wide registry.
    """
    if options is None:
        options = ParseOptions()
    registry = plugins if plugins is not None else get_registry()

    diagnostics = DiagnosticCollector()
    front_matter: dict[str, Any] = {}
    if options.front_matter is not False:
        front_matter = read_front_matter(source, diagnostics)

    first = first_significant_line(source)
    kind = DIAGRAM_KEYWORDS.get(_first_token(first.text)) if first is not None else None

    if kind is None:
        match = registry.detect(first.text) if first is not None else None
        if match is not None:
            plugin, diagram = match
            return _run_plugin(plugin, diagram, source, diagnostics, front_matter)
        diagnostics.error(
            UNRECOGNIZED_MESSAGE,
            1,
            suggestions=[
                "Expected the first line to start with one of: "
                + ", ".join(sorted(set(DIAGRAM_KEYWORDS))),
            ],
        )
        return ParseResult(ast=None, diagnostics=diagnostics.items, front_matter=front_matter)

    logger.debug("Detected %s diagram", kind)
    split = options.split_statements is not False and kind in ("flowchart", "state")
    lines = scan_lines(source, split_statements=split)

    if kind == "flowchart":
        ast, found = parse_flowchart(lines, default_direction=options.default_direction or "TD")
    else:
        ast, found = _PARSERS[kind](lines)

    diagnostics.extend(found)
    return ParseResult(ast=ast, diagnostics=diagnostics.items, front_matter=front_matter)


# Public alias
parse = dispatch


def _first_token(text: str) -> str:
    return re.split(r"[\s;]", text, maxsplit=1)[0].lower()


def _run_plugin(
    plugin: Plugin,
    diagram: DiagramPlugin,
    source: str,
    diagnostics: DiagnosticCollector,
    front_matter: dict[str, Any],
) -> ParseResult:
    logger.debug("Plugin %r handles %s diagram", plugin.name, diagram.type)
    try:
        result = diagram.parse(source)
    except Exception as exc:
        logger.exception("Plugin %r failed to parse %s diagram", plugin.name, diagram.type)
        diagnostics.error(f"Plugin {plugin.name!r} failed to parse {diagram.type} diagram: {exc}", 1)
        return ParseResult(ast=None, diagnostics=diagnostics.items, front_matter=front_matter)

    if isinstance(result, ParseResult):
        ast, found = result.ast, result.diagnostics
    elif isinstance(result, dict):
        ast, found = result.get("ast"), list(result.get("diagnostics") or [])
    else:
        logger.warning(
            "Plugin %r returned %s instead of a parse result", plugin.name, type(result).__name__
        )
        diagnostics.error(
            f"Plugin {plugin.name!r} returned an unsupported result for {diagram.type} diagram", 1
        )
        return ParseResult(ast=None, diagnostics=diagnostics.items, front_matter=front_matter)

    diagnostics.extend(list(found))
    return ParseResult(ast=ast, diagnostics=diagnostics.items, front_matter=front_matter)
