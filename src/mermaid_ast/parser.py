from __future__ import annotations

import re
from dataclasses import dataclass, field

from .diagnostics import DiagnosticCollector
from .registry import Registry
from .scanner import SourceLine
from .types import (
    Diagnostic,
    Direction,
    EdgeKind,
    EdgeStyle,
    FlowchartAST,
    FlowchartEdge,
    FlowchartNode,
    FlowchartSubgraph,
    NodeShape,
)

# ============================================================================
# Flowchart and state diagram parser
#
# Single forward pass over scanned lines. Nodes live in a Registry keyed by
# id; subgraphs (flowchart) and composite states (state diagram) are kept on
# an explicit scope stack. Style directives are collected as metadata and
# checked against the final node set once topology parsing is done.
# ============================================================================

DIRECTIONS = ("TD", "TB", "LR", "BT", "RL")

_ID = r"\w+(?:-\w+)*"


@dataclass
class _ParserState:
    ast: FlowchartAST
    nodes: Registry[FlowchartNode] = field(default_factory=Registry)
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)
    subgraph_stack: list[FlowchartSubgraph] = field(default_factory=list)
    # node id -> subgraph currently owning it
    owners: dict[str, FlowchartSubgraph] = field(default_factory=dict)
    # style/class target -> first line referencing it
    style_refs: dict[str, int] = field(default_factory=dict)
    link_style_refs: dict[int, int] = field(default_factory=dict)
    start_count: int = 0
    end_count: int = 0
    anonymous_count: int = 0


def parse_flowchart(
    lines: list[SourceLine],
    default_direction: Direction = "TD",
) -> tuple[FlowchartAST, list[Diagnostic]]:
    """Parse a flowchart whose header ("graph TD", "flowchart LR") is lines[0]."""
    state = _ParserState(ast=FlowchartAST(type="flowchart", direction=default_direction))

    if lines:
        _parse_header(lines[0], state)

    for line in lines[1:]:
        _parse_flowchart_line(line, state)

    return _finish(state, closer="end")


def parse_state_diagram(
    lines: list[SourceLine],
) -> tuple[FlowchartAST, list[Diagnostic]]:
    """Parse a state diagram ("stateDiagram-v2") into the flowchart AST shape."""
    state = _ParserState(ast=FlowchartAST(type="state", direction="TD"))
    in_note = False

    for line in lines[1:]:
        if in_note:
            if re.match(r"^end\s+note$", line.text, re.IGNORECASE):
                in_note = False
            continue
        in_note = _parse_state_line(line, state)

    if in_note:
        state.diagnostics.warning("Unclosed note block closed at end of input", lines[-1].number)

    return _finish(state, closer="}")


# ============================================================================
# Flowchart statements
# ============================================================================


def _parse_header(header: SourceLine, state: _ParserState) -> None:
    m = re.match(r"^(?:graph|flowchart)(?:\s+(\S+))?\s*$", header.text, re.IGNORECASE)
    if not m:
        state.diagnostics.warning(
            f'Invalid header: "{header.text}". Expected "graph TD", "flowchart LR", etc.',
            header.number,
            header.column,
        )
        return
    token = m.group(1)
    if token is None:
        return
    direction = token.upper()
    if direction in DIRECTIONS:
        state.ast.direction = direction  # type: ignore[assignment]
    else:
        state.diagnostics.warning(
            f'Unknown direction "{token}"; using {state.ast.direction}',
            header.number,
            header.column,
            suggestions=list(DIRECTIONS),
        )


def _parse_flowchart_line(line: SourceLine, state: _ParserState) -> None:
    text = line.text

    if _parse_style_directive(line, state):
        return

    # --- direction override ---
    m = re.match(r"^direction\s+(TD|TB|LR|BT|RL)\s*$", text, re.IGNORECASE)
    if m:
        direction: Direction = m.group(1).upper()  # type: ignore[assignment]
        if state.subgraph_stack:
            state.subgraph_stack[-1].direction = direction
        else:
            state.ast.direction = direction
        return

    # --- subgraph start ---
    m = re.match(r"^subgraph\b\s*(.*)$", text)
    if m:
        _open_subgraph(m.group(1).strip(), line, state)
        return

    # --- subgraph end ---
    if text == "end":
        if not _close_scope(state):
            state.diagnostics.error("Unexpected 'end' without an open subgraph", line.number, line.column)
        return

    # --- interaction directives have no structural meaning ---
    if re.match(r"^(?:click|href|callback)\b", text):
        state.diagnostics.warning(f"Ignoring interaction directive: {text}", line.number, line.column)
        return

    _parse_edge_line(line, state)


def _open_subgraph(rest: str, line: SourceLine, state: _ParserState) -> None:
    if not rest:
        state.anonymous_count += 1
        sg_id = f"subgraph{state.anonymous_count}"
        label = ""
        state.diagnostics.error("Subgraph is missing an id", line.number, line.column)
    else:
        bracket_match = re.match(r"^([\w-]+)\s*\[(.+)\]$", rest)
        if bracket_match:
            sg_id = bracket_match.group(1)
            label = _unquote(bracket_match.group(2))
        else:
            label = _unquote(rest)
            sg_id = re.sub(r"[^\w]", "", label.replace(" ", "_")) or f"subgraph{state.anonymous_count + 1}"

    parent = state.subgraph_stack[-1].id if state.subgraph_stack else None
    state.subgraph_stack.append(
        FlowchartSubgraph(id=sg_id, label=label, parent=parent, line=line.number)
    )


def _close_scope(state: _ParserState) -> bool:
    if not state.subgraph_stack:
        return False
    completed = state.subgraph_stack.pop()
    if state.subgraph_stack:
        state.subgraph_stack[-1].children.append(completed)
    else:
        state.ast.subgraphs.append(completed)
    return True


def _finish(state: _ParserState, closer: str) -> tuple[FlowchartAST, list[Diagnostic]]:
    while state.subgraph_stack:
        open_scope = state.subgraph_stack[-1]
        kind = "subgraph" if closer == "end" else "composite state"
        state.diagnostics.warning(
            f"Unclosed {kind} '{open_scope.id}' closed at end of input (missing '{closer}')",
            open_scope.line,
        )
        _close_scope(state)

    state.ast.nodes = state.nodes.as_dict()

    known = set(state.ast.nodes)
    known.update(sg.id for sg in state.ast.iter_subgraphs())
    for target, line_no in state.style_refs.items():
        if target not in known:
            state.diagnostics.warning(
                f"Style directive references undeclared node '{target}'", line_no
            )
    for index, line_no in state.link_style_refs.items():
        if index >= len(state.ast.edges):
            state.diagnostics.warning(
                f"linkStyle index {index} is out of range ({len(state.ast.edges)} edges)",
                line_no,
            )

    return state.ast, state.diagnostics.items


# ============================================================================
# Style directives (shared by flowchart and state diagrams)
# ============================================================================

_ID_LIST = r"[\w-]+(?:\s*,\s*[\w-]+)*"


def _parse_style_directive(line: SourceLine, state: _ParserState) -> bool:
    text = line.text
    ast = state.ast

    # --- classDef ---
    m = re.match(rf"^classDef\s+({_ID_LIST})(?:\s+(.+))?$", text)
    if m:
        props = _parse_style_props(m.group(2) or "")
        if not props:
            state.diagnostics.warning("classDef has no style properties", line.number, line.column)
        for name in _split_ids(m.group(1)):
            ast.class_defs[name] = dict(props)
        return True

    # --- class assignment ---
    m = re.match(rf"^class\s+({_ID_LIST})\s+([\w-]+)\s*$", text)
    if m:
        for nid in _split_ids(m.group(1)):
            _assign_class(state, nid, m.group(2))
            state.style_refs.setdefault(nid, line.number)
        return True

    # --- style statement ---
    m = re.match(rf"^style\s+({_ID_LIST})\s+(.+)$", text)
    if m:
        props = _parse_style_props(m.group(2))
        for nid in _split_ids(m.group(1)):
            existing = ast.node_styles.get(nid, {})
            existing.update(props)
            ast.node_styles[nid] = existing
            state.style_refs.setdefault(nid, line.number)
        return True

    # --- linkStyle ---
    m = re.match(r"^linkStyle\s+(default|\d+(?:\s*,\s*\d+)*)\s+(.+)$", text)
    if m:
        props = _parse_style_props(m.group(2))
        targets: list[int | str] = (
            ["default"] if m.group(1) == "default" else [int(s) for s in _split_ids(m.group(1))]
        )
        for target in targets:
            existing = ast.link_styles.get(target, {})
            existing.update(props)
            ast.link_styles[target] = existing
            if isinstance(target, int):
                state.link_style_refs.setdefault(target, line.number)
        return True

    if re.match(r"^(?:classDef|class|style|linkStyle)\s", text):
        state.diagnostics.error(f"Malformed style directive: {text}", line.number, line.column)
        return True

    return False


def _assign_class(state: _ParserState, node_id: str, class_name: str) -> None:
    assigned = state.ast.class_assignments.setdefault(node_id, [])
    if class_name not in assigned:
        assigned.append(class_name)


def _split_ids(text: str) -> list[str]:
    return [s.strip() for s in text.split(",") if s.strip()]


def _parse_style_props(props_str: str) -> dict[str, str]:
    """Parse 'fill:#f00,stroke:#333' into a dict."""
    props: dict[str, str] = {}
    for pair in props_str.rstrip(";").split(","):
        colon_idx = pair.find(":")
        if colon_idx > 0:
            key = pair[:colon_idx].strip()
            val = pair[colon_idx + 1 :].strip()
            if key and val:
                props[key] = val
    return props


# ============================================================================
# Flowchart edge line parser
# ============================================================================

# "A -- text --> B", "A -. text .-> B", "A == text ==> B"
TEXT_ARROW_REGEX = re.compile(
    r"^(?P<start>[<ox])?(?P<open>--|==|-\.)\s+(?P<label>.+?)\s+"
    r"(?P<line>-{2,}|\.+-|={2,})(?P<end>>|[ox](?=\s|$))?"
)
# "-->", "---", "-.->", "==>", "~~~", "<-->", "o--o", "--x", "-->|text|"
ARROW_REGEX = re.compile(
    r"^(?P<start>[<ox])?(?P<line>-{2,}|-\.+-?|={2,}|~{3,})"
    r"(?P<end>>|[ox](?=[\s|]|$))?"
    r"(?:\s*\|(?P<label>[^|]*)\|)?"
)
UNKNOWN_ARROW_REGEX = re.compile(r"^(?P<token>[-=.~<>*+]{2,})(?:\s*\|(?P<label>[^|]*)\|)?")

_ARROW_KINDS: dict[EdgeStyle, tuple[EdgeKind, EdgeKind]] = {
    # style: (with arrow head, without)
    "solid": ("solid-arrow", "open-link"),
    "dotted": ("dotted-arrow", "dotted-link"),
    "thick": ("thick-arrow", "thick-link"),
    "invisible": ("invisible-link", "invisible-link"),
}

# Bracket pairs -> shape, longest/most specific opener first
SHAPE_BRACKETS: list[tuple[str, str, NodeShape]] = [
    ("(((", ")))", "doublecircle"),
    ("([", "])", "stadium"),
    ("((", "))", "circle"),
    ("[[", "]]", "subroutine"),
    ("[(", ")]", "cylinder"),
    ("[/", "\\]", "trapezoid"),
    ("[\\", "/]", "trapezoid-alt"),
    ("[/", "/]", "parallelogram"),
    ("[\\", "\\]", "parallelogram-alt"),
    ("{{", "}}", "hexagon"),
    (">", "]", "asymmetric"),
    ("[", "]", "rectangle"),
    ("(", ")", "rounded"),
    ("{", "}", "decision"),
]


def _node_pattern(opener: str, closer: str) -> re.Pattern[str]:
    # Unquoted labels may not contain the closing bracket character
    label = rf'(?:"([^"]*)"|([^{re.escape(closer[-1])}]+?))'
    return re.compile(rf"^({_ID}){re.escape(opener)}{label}{re.escape(closer)}")


NODE_PATTERNS: list[tuple[re.Pattern[str], NodeShape]] = [
    (_node_pattern(opener, closer), shape) for opener, closer, shape in SHAPE_BRACKETS
]

BARE_NODE_REGEX = re.compile(rf"^({_ID})")
CLASS_SHORTHAND_REGEX = re.compile(r"^:::([\w][\w-]*)")


def _parse_edge_line(line: SourceLine, state: _ParserState) -> None:
    remaining = line.text

    first_group = _consume_node_group(remaining, line, state)
    if first_group is None:
        state.diagnostics.warning(f"Skipping unrecognized line: {line.text}", line.number, line.column)
        return

    prev_group_ids, remaining = first_group
    remaining = remaining.strip()

    while remaining:
        arrow = _match_arrow(remaining, line, state)
        if arrow is None:
            state.diagnostics.warning(
                f"Skipping unrecognized text: {remaining}",
                line.number,
                line.column + len(line.text) - len(remaining),
            )
            return

        kind, style, has_arrow_start, has_arrow_end, edge_label, consumed = arrow
        remaining = remaining[consumed:].strip()

        next_group = _consume_node_group(remaining, line, state)
        if next_group is None:
            state.diagnostics.error(
                f"Edge is missing a target node: {line.text}", line.number, line.column
            )
            return

        next_ids, remaining = next_group
        remaining = remaining.strip()

        for source_id in prev_group_ids:
            for target_id in next_ids:
                state.ast.edges.append(
                    FlowchartEdge(
                        source=source_id,
                        target=target_id,
                        kind=kind,
                        label=edge_label,
                        style=style,
                        has_arrow_start=has_arrow_start,
                        has_arrow_end=has_arrow_end,
                        line=line.number,
                    )
                )

        prev_group_ids = next_ids


def _match_arrow(
    text: str,
    line: SourceLine,
    state: _ParserState,
) -> tuple[EdgeKind, EdgeStyle, bool, bool, str | None, int] | None:
    """Match the arrow at the start of `text`.

    Returns (kind, style, has_arrow_start, has_arrow_end, label, consumed).
    """
    m = TEXT_ARROW_REGEX.match(text)
    if m:
        style = _style_from_token(m.group("open"))
        start, end = m.group("start"), m.group("end")
        label = _unquote(m.group("label").strip()) or None
        return _edge_kind(style, start, end), style, bool(start), bool(end), label, m.end()

    m = ARROW_REGEX.match(text)
    if m:
        style = _style_from_token(m.group("line"))
        start, end = m.group("start"), m.group("end")
        label = _unquote((m.group("label") or "").strip()) or None
        return _edge_kind(style, start, end), style, bool(start), bool(end), label, m.end()

    m = UNKNOWN_ARROW_REGEX.match(text)
    if m and re.search(r"[-=~.]", m.group("token")):
        state.diagnostics.warning(
            f'Unknown arrow "{m.group("token")}"; treating it as a plain link',
            line.number,
            line.column + len(line.text) - len(text),
            suggestions=["-->", "---", "-.->", "==>"],
        )
        label = _unquote((m.group("label") or "").strip()) or None
        return "open-link", "solid", False, False, label, m.end()

    return None


def _style_from_token(token: str) -> EdgeStyle:
    if token.startswith("~"):
        return "invisible"
    if "." in token:
        return "dotted"
    if token.startswith("="):
        return "thick"
    return "solid"


def _edge_kind(style: EdgeStyle, start: str | None, end: str | None) -> EdgeKind:
    head = end or start
    if style == "invisible":
        return "invisible-link"
    if head == "o":
        return "circle-arrow"
    if head == "x":
        return "cross-arrow"
    with_head, without_head = _ARROW_KINDS[style]
    return with_head if head else without_head


def _consume_node_group(
    text: str,
    line: SourceLine,
    state: _ParserState,
) -> tuple[list[str], str] | None:
    first = _consume_node(text, line, state)
    if not first:
        return None

    ids = [first[0]]
    remaining = first[1].strip()

    while remaining.startswith("&"):
        remaining = remaining[1:].strip()
        nxt = _consume_node(remaining, line, state)
        if not nxt:
            break
        ids.append(nxt[0])
        remaining = nxt[1].strip()

    return ids, remaining


def _consume_node(
    text: str,
    line: SourceLine,
    state: _ParserState,
) -> tuple[str, str] | None:
    node_id: str | None = None
    remaining = text

    for pattern, shape in NODE_PATTERNS:
        m = pattern.match(text)
        if m:
            node_id = m.group(1)
            label = m.group(2) if m.group(2) is not None else m.group(3).strip()
            _declare_node(state, node_id, label, shape, line.number)
            remaining = text[m.end() :]
            break

    if node_id is None:
        bare_match = BARE_NODE_REGEX.match(text)
        if bare_match:
            node_id = bare_match.group(1)
            _reference_node(state, node_id, line.number)
            remaining = text[bare_match.end() :]

    if node_id is None:
        return None

    class_match = CLASS_SHORTHAND_REGEX.match(remaining)
    if class_match:
        _assign_class(state, node_id, class_match.group(1))
        remaining = remaining[class_match.end() :]

    return node_id, remaining


# ============================================================================
# Node registry helpers
# ============================================================================


def _declare_node(
    state: _ParserState,
    node_id: str,
    label: str,
    shape: NodeShape,
    line_no: int,
) -> FlowchartNode:
    node, created = state.nodes.ensure(
        node_id,
        lambda nid, order: FlowchartNode(
            id=nid, label=label, shape=shape, declared_order=order, line=line_no
        ),
    )
    if not created:
        if node.implicit:
            node.label = label
            node.shape = shape
            node.implicit = False
        elif (node.label, node.shape) != (label, shape):
            state.diagnostics.warning(
                f"Node '{node_id}' is already declared on line {node.line}; keeping its first definition",
                line_no,
            )
    _claim_node(state, node_id)
    return node


def _reference_node(
    state: _ParserState,
    node_id: str,
    line_no: int,
    shape: NodeShape = "rectangle",
) -> FlowchartNode:
    node, _ = state.nodes.ensure(
        node_id,
        lambda nid, order: FlowchartNode(
            id=nid, label="", shape=shape, declared_order=order, implicit=True, line=line_no
        ),
    )
    _claim_node(state, node_id)
    return node


def _claim_node(state: _ParserState, node_id: str) -> None:
    """Record membership in the innermost open scope.

    A node keeps the first subgraph that mentioned it, unless a subgraph
    nested inside that owner mentions it again.
    """
    if not state.subgraph_stack:
        return
    current = state.subgraph_stack[-1]
    owner = state.owners.get(node_id)
    if owner is current:
        return
    if owner is not None:
        if not any(sg is owner for sg in state.subgraph_stack):
            return
        owner.node_ids.remove(node_id)
    current.node_ids.append(node_id)
    state.owners[node_id] = current


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1]
    return text


# ============================================================================
# State diagram statements
# ============================================================================

STATE_ID = r"(\[\*\]|[\w-]+)"
TRANSITION_REGEX = re.compile(rf"^{STATE_ID}\s*-->\s*{STATE_ID}(?:\s*:\s*(.*))?$")


def _parse_state_line(line: SourceLine, state: _ParserState) -> bool:
    """Handle one state-diagram statement. Returns True when a note block opens."""
    text = line.text

    if _parse_style_directive(line, state):
        return False

    # --- direction override ---
    m = re.match(r"^direction\s+(TD|TB|LR|BT|RL)\s*$", text, re.IGNORECASE)
    if m:
        d: Direction = m.group(1).upper()  # type: ignore[assignment]
        if state.subgraph_stack:
            state.subgraph_stack[-1].direction = d
        else:
            state.ast.direction = d
        return False

    # --- composite state start ---
    m = re.match(r'^state\s+(?:"([^"]+)"\s+as\s+)?([\w-]+)\s*\{$', text)
    if m:
        label = m.group(1) or m.group(2)
        sid = m.group(2)
        parent = state.subgraph_stack[-1].id if state.subgraph_stack else None
        state.subgraph_stack.append(
            FlowchartSubgraph(id=sid, label=label, parent=parent, line=line.number)
        )
        return False

    # --- composite state end ---
    if text == "}":
        if not _close_scope(state):
            state.diagnostics.error("Unexpected '}' without an open composite state", line.number, line.column)
        return False

    # --- concurrency separator ---
    if text == "--":
        return False

    # --- notes carry no topology ---
    m = re.match(r"^note\s+(?:left|right)\s+of\s+[\w-]+(\s*:\s*.+)?$", text, re.IGNORECASE)
    if m:
        return m.group(1) is None

    # --- state alias ---
    m = re.match(r'^state\s+"([^"]+)"\s+as\s+([\w-]+)\s*$', text)
    if m:
        _declare_node(state, m.group(2), m.group(1), "rounded", line.number)
        return False

    # --- choice / fork / join pseudostates ---
    m = re.match(r"^state\s+([\w-]+)\s+<<(choice|fork|join)>>\s*$", text)
    if m:
        shape: NodeShape = "decision" if m.group(2) == "choice" else "rectangle"
        _declare_node(state, m.group(1), "", shape, line.number)
        return False

    # --- transition ---
    m = TRANSITION_REGEX.match(text)
    if m:
        source_id = _state_endpoint(state, m.group(1), "start", line.number)
        target_id = _state_endpoint(state, m.group(2), "end", line.number)
        edge_label = (m.group(3) or "").strip() or None
        state.ast.edges.append(
            FlowchartEdge(
                source=source_id,
                target=target_id,
                kind="solid-arrow",
                label=edge_label,
                line=line.number,
            )
        )
        return False

    # --- state description ---
    m = re.match(r"^([\w-]+)\s*:\s*(.+)$", text)
    if m:
        _declare_node(state, m.group(1), m.group(2).strip(), "rounded", line.number)
        return False

    # --- bare state declaration ---
    m = re.match(r"^(?:state\s+)?([\w-]+)$", text)
    if m:
        _reference_node(state, m.group(1), line.number, shape="rounded")
        return False

    state.diagnostics.warning(f"Skipping unrecognized line: {text}", line.number, line.column)
    return False


def _state_endpoint(state: _ParserState, raw_id: str, role: str, line_no: int) -> str:
    if raw_id != "[*]":
        _reference_node(state, raw_id, line_no, shape="rounded")
        return raw_id

    if role == "start":
        state.start_count += 1
        count = state.start_count
        shape: NodeShape = "state-start"
    else:
        state.end_count += 1
        count = state.end_count
        shape = "state-end"
    pseudo_id = f"_{role}{count if count > 1 else ''}"
    _declare_node(state, pseudo_id, "", shape, line_no)
    return pseudo_id
