from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..diagnostics import DiagnosticCollector
from ..scanner import SourceLine
from ..types import Diagnostic
from .types import MindmapAST, MindmapNode, MindmapShape

# ============================================================================
# Mindmap parser
#
# The tree is given by indentation (tabs count as two columns):
#   mindmap
#     root((Central idea))
#       Origins
#         ::icon(fa fa-book)
#         Long history
#       [Research]
#         :::urgent large
#
# Node shapes, matched on the whole line after an optional id prefix:
#   [text] square   (text) rounded   ((text)) circle
#   ))text(( bang   )text( cloud     {{text}} hexagon   text default
# ============================================================================

# (opener, closer, shape), longest openers first
SHAPES: list[tuple[str, str, MindmapShape]] = [
    ("((", "))", "circle"),
    ("))", "((", "bang"),
    ("{{", "}}", "hexagon"),
    ("(", ")", "rounded"),
    (")", "(", "cloud"),
    ("[", "]", "square"),
]

_ICON_RE = re.compile(r"^::icon\((.*)\)$")
_CLASS_RE = re.compile(r"^:::\s*(.+)$")
_SHAPE_PATTERNS = [
    (
        re.compile(rf"^[^\s()\[\]{{}}]*{re.escape(opener)}(.*?){re.escape(closer)}$"),
        shape,
    )
    for opener, closer, shape in SHAPES
]


@dataclass
class _ParserState:
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)
    root: MindmapNode | None = None
    root_indent: int = 0
    # (node, indent) of the open ancestors
    stack: list[tuple[MindmapNode, int]] = field(default_factory=list)
    last: MindmapNode | None = None
    next_id: int = 0


def parse_mindmap(lines: list[SourceLine]) -> tuple[MindmapAST, list[Diagnostic]]:
    """Parse a Mermaid mindmap.

    Expects lines[0] to be the "mindmap" header. A mindmap without any
    node yields an AST with no root and an error.
    """
    state = _ParserState()

    for line in lines[1:]:
        _parse_line(line, state)

    if state.root is None:
        state.diagnostics.error(
            "Mindmap must have at least one root node",
            lines[0].number if lines else 1,
        )
    return MindmapAST(root=state.root), state.diagnostics.items


def _parse_line(line: SourceLine, state: _ParserState) -> None:
    text = line.text

    # --- Decorations for the previous node ---
    m = _ICON_RE.match(text)
    if m:
        if state.last is None:
            state.diagnostics.warning("Icon without a node", line.number, line.column)
        else:
            state.last.icon = m.group(1).strip()
        return

    m = _CLASS_RE.match(text)
    if m:
        if state.last is None:
            state.diagnostics.warning("Class list without a node", line.number, line.column)
        else:
            state.last.classes.extend(c for c in m.group(1).split() if c not in state.last.classes)
        return

    node = _parse_node(line, state)
    if node is None:
        return
    state.last = node

    if state.root is None:
        state.root = node
        state.root_indent = line.indent
        state.stack = [(node, line.indent)]
        return

    while state.stack and state.stack[-1][1] >= line.indent:
        state.stack.pop()

    if not state.stack:
        state.diagnostics.warning(
            f"Node '{node.label}' is not indented below the root; attaching it to the root",
            line.number,
            line.column,
        )
        state.stack = [(state.root, state.root_indent)]
        state.root.children.append(node)
        state.stack.append((node, line.indent))
        return

    parent = state.stack[-1][0]
    parent.children.append(node)
    state.stack.append((node, line.indent))


def _parse_node(line: SourceLine, state: _ParserState) -> MindmapNode | None:
    label = line.text
    shape: MindmapShape = "default"
    for pattern, candidate in _SHAPE_PATTERNS:
        m = pattern.match(line.text)
        if m:
            label = m.group(1)
            shape = candidate
            break

    label = _unquote(label.strip())
    if not label:
        state.diagnostics.warning(f"Empty node label: {line.text}", line.number, line.column)
        return None

    node = MindmapNode(id=f"node-{state.next_id}", label=label, shape=shape, line=line.number)
    state.next_id += 1
    return node


def _unquote(text: str) -> str:
    if len(text) >= 4 and text.startswith('"`') and text.endswith('`"'):
        return text[2:-2].strip()
    for quote in ('"', "`"):
        if len(text) >= 2 and text[0] == text[-1] == quote:
            return text[1:-1].strip()
    return text
