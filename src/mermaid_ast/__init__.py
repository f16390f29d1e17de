"""mermaid-ast -- Parse Mermaid diagram text into typed ASTs with diagnostics."""

from __future__ import annotations

from .types import (
    Diagnostic,
    DiagramAST,
    DiagramType,
    Direction,
    EdgeKind,
    EdgeStyle,
    FlowchartAST,
    FlowchartEdge,
    FlowchartNode,
    FlowchartSubgraph,
    NodeShape,
    ParseOptions,
    ParseResult,
    Severity,
    Span,
)
from .dispatcher import DIAGRAM_KEYWORDS, detect_diagram_type, dispatch, parse
from .plugins import DiagramPlugin, Plugin, PluginRegistry, get_registry, use

from .sequence.types import SequenceAST
from .class_diagram.types import ClassAST
from .er.types import ErAST
from .pie.types import PieAST
from .gantt.types import GanttAST
from .mindmap.types import MindmapAST

__all__ = [
    "parse",
    "dispatch",
    "detect_diagram_type",
    "DIAGRAM_KEYWORDS",
    "use",
    "get_registry",
    "Plugin",
    "DiagramPlugin",
    "PluginRegistry",
    "ParseOptions",
    "ParseResult",
    "Diagnostic",
    "Severity",
    "Span",
    "DiagramAST",
    "DiagramType",
    "Direction",
    "EdgeKind",
    "EdgeStyle",
    "NodeShape",
    "FlowchartAST",
    "FlowchartEdge",
    "FlowchartNode",
    "FlowchartSubgraph",
    "SequenceAST",
    "ClassAST",
    "ErAST",
    "PieAST",
    "GanttAST",
    "MindmapAST",
]
