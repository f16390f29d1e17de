from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Union

if TYPE_CHECKING:
    from .class_diagram.types import ClassAST
    from .er.types import ErAST
    from .gantt.types import GanttAST
    from .mindmap.types import MindmapAST
    from .pie.types import PieAST
    from .sequence.types import SequenceAST

# ============================================================================
# Result envelope shared by every dialect
# ============================================================================

Severity = Literal["error", "warning"]

DiagramType = Literal[
    "flowchart",
    "state",
    "sequence",
    "class",
    "er",
    "pie",
    "gantt",
    "mindmap",
]


@dataclass(slots=True, frozen=True)
class Span:
    """Source location: 1-based line, optional 1-based column."""

    line: int
    column: int | None = None


@dataclass(slots=True)
class Diagnostic:
    severity: Severity
    message: str
    span: Span
    suggestions: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"line {self.span.line}: {self.severity}: {self.message}"


@dataclass(slots=True)
class ParseResult:
    """Uniform `{ast, diagnostics}` envelope returned for every input.

    `ast` is None only when the diagram kind could not be recognised
    (or a plugin parser failed).
    """

    ast: DiagramAST | Any | None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    # Parsed YAML front matter (`---` block before the header), if any
    front_matter: dict[str, Any] = field(default_factory=dict)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "error"]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "warning"]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == "error" for d in self.diagnostics)


# ============================================================================
# Flowchart / state diagram AST
# ============================================================================

Direction = Literal["TD", "TB", "LR", "BT", "RL"]

NodeShape = Literal[
    "rectangle",        # [text]
    "rounded",          # (text)
    "decision",         # {text}
    "stadium",          # ([text])
    "circle",           # ((text))
    "subroutine",       # [[text]]
    "doublecircle",     # (((text)))
    "hexagon",          # {{text}}
    "cylinder",         # [(text)]
    "asymmetric",       # >text]
    "trapezoid",        # [/text\]
    "trapezoid-alt",    # [\text/]
    "parallelogram",    # [/text/]
    "parallelogram-alt",  # [\text\]
    # state diagram pseudostates
    "state-start",
    "state-end",
]

EdgeKind = Literal[
    "solid-arrow",      # -->
    "dotted-arrow",     # -.->
    "thick-arrow",      # ==>
    "open-link",        # ---
    "dotted-link",      # -.-
    "thick-link",       # ===
    "invisible-link",   # ~~~
    "circle-arrow",     # --o
    "cross-arrow",      # --x
]

EdgeStyle = Literal["solid", "dotted", "thick", "invisible"]


@dataclass(slots=True)
class FlowchartNode:
    id: str
    label: str
    shape: NodeShape
    # Position in first-mention order, stable across parses
    declared_order: int = 0
    # Created by reference only; label/shape may still be filled in later
    implicit: bool = False
    line: int = 0

    @property
    def display_label(self) -> str:
        return self.label or self.id


@dataclass(slots=True)
class FlowchartEdge:
    source: str
    target: str
    kind: EdgeKind
    label: str | None = None
    style: EdgeStyle = "solid"
    has_arrow_start: bool = False
    has_arrow_end: bool = True
    line: int = 0


@dataclass(slots=True)
class FlowchartSubgraph:
    id: str
    label: str
    node_ids: list[str] = field(default_factory=list)
    children: list[FlowchartSubgraph] = field(default_factory=list)
    parent: str | None = None
    direction: Direction | None = None
    line: int = 0


@dataclass(slots=True)
class FlowchartAST:
    type: Literal["flowchart", "state"]
    direction: Direction
    nodes: dict[str, FlowchartNode] = field(default_factory=dict)
    edges: list[FlowchartEdge] = field(default_factory=list)
    subgraphs: list[FlowchartSubgraph] = field(default_factory=list)
    class_defs: dict[str, dict[str, str]] = field(default_factory=dict)
    class_assignments: dict[str, list[str]] = field(default_factory=dict)
    node_styles: dict[str, dict[str, str]] = field(default_factory=dict)
    # Keyed by edge index, or "default"
    link_styles: dict[int | str, dict[str, str]] = field(default_factory=dict)

    def iter_subgraphs(self):
        """Yield every subgraph, parents before children."""
        stack = list(reversed(self.subgraphs))
        while stack:
            sg = stack.pop()
            yield sg
            stack.extend(reversed(sg.children))

    def find_subgraph(self, subgraph_id: str) -> FlowchartSubgraph | None:
        for sg in self.iter_subgraphs():
            if sg.id == subgraph_id:
                return sg
        return None

    def subgraph_members(self, subgraph_id: str) -> list[str]:
        """Node ids owned by a subgraph or any of its descendants."""
        root = self.find_subgraph(subgraph_id)
        if root is None:
            return []
        members: list[str] = []
        stack = [root]
        while stack:
            sg = stack.pop()
            members.extend(nid for nid in sg.node_ids if nid not in members)
            stack.extend(reversed(sg.children))
        return members


DiagramAST = Union[
    FlowchartAST,
    "SequenceAST",
    "ClassAST",
    "ErAST",
    "PieAST",
    "GanttAST",
    "MindmapAST",
]


# ============================================================================
# Parse options: user-facing configuration
# ============================================================================


@dataclass(slots=True)
class ParseOptions:
    # Flowchart direction used when the header omits one (default "TD")
    default_direction: Direction | None = None
    # Treat ";" as a statement separator in flowchart/state text (default on)
    split_statements: bool | None = None
    # Parse a leading YAML front-matter block (default on)
    front_matter: bool | None = None
