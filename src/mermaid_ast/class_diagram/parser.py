from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..diagnostics import DiagnosticCollector
from ..registry import Registry
from ..scanner import SourceLine
from ..types import Diagnostic
from .types import (
    ClassAST,
    ClassEntity,
    ClassMember,
    ClassNamespace,
    ClassNote,
    ClassRelationship,
    MarkerAt,
    RelationshipKind,
    Visibility,
)

# ============================================================================
# Class diagram parser
#
# Parses Mermaid classDiagram syntax into a ClassAST.
#
# Supported syntax:
#   class Animal { +String name; +eat() void }
#   class Shape { <<abstract>> }
#   class Square~Shape~       class Animal["Friendly animal"]
#   <<interface>> Shape
#   Animal <|-- Dog           (inheritance)
#   Car *-- Engine            (composition)
#   Car o-- Wheel             (aggregation)
#   A --> B                   (association)
#   A ..> B                   (dependency)
#   A ..|> B                  (realization)
#   A "1" --> "*" B : label   (with multiplicity + label)
#   Animal : +String name     (inline attribute)
#   namespace MyNamespace { class A { } }
#   note for Animal "text"    direction LR
# ============================================================================

# Relationship connectors: [left marker] link [right marker]
_LEFT_MARKERS = {"<|": "triangle", "*": "diamond-filled", "o": "diamond-open", "<": "arrow", "": None}
_RIGHT_MARKERS = {"|>": "triangle", "*": "diamond-filled", "o": "diamond-open", ">": "arrow", "": None}
_LINKS = {"--": "solid", "..": "dashed"}


def _marker_kind(marker: str | None, link: str) -> RelationshipKind:
    if marker == "triangle":
        return "inheritance" if link == "solid" else "realization"
    if marker == "diamond-filled":
        return "composition"
    if marker == "diamond-open":
        return "aggregation"
    return "association" if link == "solid" else "dependency"


def _build_connectors() -> dict[str, tuple[RelationshipKind, MarkerAt]]:
    table: dict[str, tuple[RelationshipKind, MarkerAt]] = {}
    for left, left_marker in _LEFT_MARKERS.items():
        for link_token, link in _LINKS.items():
            for right, right_marker in _RIGHT_MARKERS.items():
                if left_marker and right_marker:
                    marker_at: MarkerAt = "both"
                elif left_marker:
                    marker_at = "from"
                elif right_marker:
                    marker_at = "to"
                else:
                    marker_at = "none"
                # The left marker decides the kind of two-headed connectors
                kind = _marker_kind(left_marker or right_marker, link)
                table[left + link_token + right] = (kind, marker_at)
    return table


CONNECTORS: dict[str, tuple[RelationshipKind, MarkerAt]] = _build_connectors()

# FROM ["mult"] CONNECTOR ["mult"] TO [: label], longest connector first
_MULTIPLICITY = r"(?:\d+|\*|n|many)(?:\.\.(?:\d+|\*|n|many))?"
_CONNECTOR = "|".join(re.escape(c) for c in sorted(CONNECTORS, key=len, reverse=True))


def _relationship_pattern(gap: str) -> re.Pattern[str]:
    return re.compile(
        r"^(?P<from>[\w.$][\w.$~,-]*?)"
        rf'(?:\s*"(?P<from_quoted>[^"]*)"|\s+(?P<from_bare>{_MULTIPLICITY}))?'
        rf"{gap}(?P<connector>{_CONNECTOR}){gap}"
        rf'(?:"(?P<to_quoted>[^"]*)"\s*|(?P<to_bare>{_MULTIPLICITY})\s+)?'
        r"(?P<to>[\w.$][\w.$~,-]*)"
        r"(?:\s*:\s*(?P<label>.*))?$"
    )


# Spaced connectors win: `A -- owner` links to owner via `--`, not `--o`
_SPACED_RELATIONSHIP_RE = _relationship_pattern(r"\s+")
_COMPACT_RELATIONSHIP_RE = _relationship_pattern(r"\s*")

_CLASS_RE = re.compile(r'^class\s+(?P<name>[^\s{\["]+)(?:\s*\[\s*"(?P<label>[^"]*)"\s*\])?\s*(?P<rest>.*)$')
_ANNOTATION_RE = re.compile(r"^<<\s*([^>]+?)\s*>>$")
_ANNOTATE_CLASS_RE = re.compile(r"^<<\s*([^>]+?)\s*>>\s+(\S+)$")
_NAMESPACE_RE = re.compile(r"^namespace\s+(\S+)\s*\{$")
_DIRECTION_RE = re.compile(r"^direction\s+(TB|TD|BT|LR|RL)$")
_NOTE_RE = re.compile(r'^note\s+(?:for\s+(\S+)\s+)?"(.*)"$')
_INLINE_MEMBER_RE = re.compile(r"^(\S+?)\s*:\s*(.+)$")
_CLASS_ID_RE = re.compile(r"^([\w.$-]+)(?:~(.+)~)?$")
_TOKEN_RE = re.compile(r'"[^"]*"|\S+')
_MULTIPLICITY_RE = re.compile(r"^(?:\d+|\*|n|many)(?:\.\.(?:\d+|\*|n|many))?$")
_METHOD_RE = re.compile(r"^(?P<name>[^(]+)\((?P<params>[^)]*)\)(?P<classifier>[$*])?\s*(?P<ret>.*)$")


@dataclass
class _ParserState:
    ast: ClassAST = field(default_factory=ClassAST)
    classes: Registry[ClassEntity] = field(default_factory=Registry)
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)
    # Class whose `{ ... }` body is open
    body: ClassEntity | None = None
    body_line: int = 0
    namespace: ClassNamespace | None = None
    namespace_line: int = 0


def parse_class_diagram(lines: list[SourceLine]) -> tuple[ClassAST, list[Diagnostic]]:
    """Parse a Mermaid class diagram.

    Expects lines[0] to be the "classDiagram" header.
    """
    state = _ParserState()

    for line in lines[1:]:
        _parse_line(line, state)

    if state.body is not None:
        state.diagnostics.warning(
            f"Class body of '{state.body.id}' closed at end of input (missing '}}')",
            state.body_line,
        )
        state.body = None
    if state.namespace is not None:
        state.diagnostics.warning(
            f"Namespace '{state.namespace.name}' closed at end of input (missing '}}')",
            state.namespace_line,
        )
        state.ast.namespaces.append(state.namespace)
        state.namespace = None

    state.ast.classes = state.classes.values()
    return state.ast, state.diagnostics.items


def _parse_line(line: SourceLine, state: _ParserState) -> None:
    text = line.text

    # --- Inside a class body block ---
    if state.body is not None:
        if text == "}":
            state.body = None
            return
        if not text.startswith("class "):
            _parse_body_line(text, state.body, line, state)
            return
        state.diagnostics.warning(
            f"Class body of '{state.body.id}' not closed before the next class (missing '}}')",
            line.number,
            line.column,
        )
        state.body = None

    # --- Namespace block start ---
    m = _NAMESPACE_RE.match(text)
    if m:
        if state.namespace is not None:
            state.diagnostics.warning(
                f"Namespace '{m.group(1)}' inside '{state.namespace.name}' is not nested; "
                "closing the outer namespace",
                line.number,
                line.column,
            )
            state.ast.namespaces.append(state.namespace)
        state.namespace = ClassNamespace(name=m.group(1))
        state.namespace_line = line.number
        return

    # --- Namespace end / stray brace ---
    if text == "}":
        if state.namespace is not None:
            state.ast.namespaces.append(state.namespace)
            state.namespace = None
        else:
            state.diagnostics.error("Unexpected '}' without an open block", line.number, line.column)
        return

    # --- Class declaration: bare, with label, with body ---
    m = _CLASS_RE.match(text)
    if m:
        _parse_class_declaration(m, line, state)
        return

    # --- Annotation line: `<<interface>> Shape` ---
    m = _ANNOTATE_CLASS_RE.match(text)
    if m:
        cls = _declare_class(state, m.group(2))
        cls.annotation = m.group(1)
        return

    m = _DIRECTION_RE.match(text)
    if m:
        state.ast.direction = m.group(1)  # type: ignore[assignment]
        return

    m = _NOTE_RE.match(text)
    if m:
        class_id = m.group(1)
        if class_id is not None:
            _ensure_class(state, class_id)
        state.ast.notes.append(ClassNote(text=m.group(2), class_id=class_id, line=line.number))
        return

    # --- Relationship ---
    # Pattern: FROM ["mult"] CONNECTOR ["mult"] TO [: label]
    if _parse_relationship(line, state):
        return

    # --- Inline member: `ClassName : +String name` ---
    m = _INLINE_MEMBER_RE.match(text)
    if m:
        cls = _ensure_class(state, m.group(1))
        _add_member(m.group(2), cls, line, state)
        return

    state.diagnostics.warning(f"Skipping unrecognized line: {text}", line.number, line.column)


def _parse_class_declaration(match: re.Match[str], line: SourceLine, state: _ParserState) -> None:
    cls = _declare_class(state, match.group("name"))
    if match.group("label") is not None:
        cls.label = match.group("label")

    rest = match.group("rest").strip()
    if rest == "{":
        state.body = cls
        state.body_line = line.number
    elif rest.startswith("{") and rest.endswith("}"):
        # Single-line body: `class Shape { <<interface>> }`
        for part in rest[1:-1].split(";"):
            if part.strip():
                _parse_body_line(part.strip(), cls, line, state)
    elif rest:
        state.diagnostics.warning(
            f"Ignoring unexpected text after class '{cls.id}': {rest}",
            line.number,
            line.column,
        )


def _parse_body_line(text: str, cls: ClassEntity, line: SourceLine, state: _ParserState) -> None:
    # Check for annotation like <<interface>>
    m = _ANNOTATION_RE.match(text)
    if m:
        cls.annotation = m.group(1)
        return
    _add_member(text, cls, line, state)


def _add_member(text: str, cls: ClassEntity, line: SourceLine, state: _ParserState) -> None:
    member = _parse_member(text)
    if member is None:
        state.diagnostics.warning(
            f"Ignoring member of '{cls.id}' without a name: {text.strip()}",
            line.number,
            line.column,
        )
        return
    cls.members.append(member)


def _parse_relationship(line: SourceLine, state: _ParserState) -> bool:
    """Parse a relationship statement.

    Returns False when the line has no connector token at all, so the caller
    can try other statement kinds. A malformed relationship is reported and
    counts as handled.
    """
    m = _SPACED_RELATIONSHIP_RE.match(line.text) or _COMPACT_RELATIONSHIP_RE.match(line.text)
    if m is None:
        return _report_bad_relationship(line, state)

    from_id = _class_id(m.group("from"))
    to_id = _class_id(m.group("to"))
    kind, marker_at = CONNECTORS[m.group("connector")]
    label = m.group("label")
    rel = ClassRelationship(
        from_=from_id,
        to=to_id,
        kind=kind,
        marker_at=marker_at,
        from_multiplicity=_first_of(m.group("from_quoted"), m.group("from_bare")),
        to_multiplicity=_first_of(m.group("to_quoted"), m.group("to_bare")),
        label=(label.strip() or None) if label is not None else None,
        line=line.number,
    )
    # Ensure both classes exist
    _ensure_class(state, from_id)
    _ensure_class(state, to_id)
    state.ast.relationships.append(rel)
    return True


def _report_bad_relationship(line: SourceLine, state: _ParserState) -> bool:
    """Report a line that has a connector-like token but no valid relationship.

    Returns False when nothing on the line looks like a connector.
    """
    head = line.text.partition(":")[0]
    tokens = _TOKEN_RE.findall(head)
    connector = next(
        (token for idx, token in enumerate(tokens) if idx > 0 and _is_connector_like(token)),
        None,
    )
    if connector is None:
        return False

    if connector not in CONNECTORS:
        state.diagnostics.error(
            f"Unknown relationship connector '{connector}'",
            line.number,
            line.column,
            suggestions=["<|--", "*--", "o--", "-->", "..>", "..|>", "--", ".."],
        )
    else:
        state.diagnostics.error(
            f"Malformed relationship: {line.text}",
            line.number,
            line.column,
            suggestions=['Expected: From ["1"] --> ["*"] To : label'],
        )
    return True


def _first_of(*values: str | None) -> str | None:
    return next((v for v in values if v is not None), None)


def _is_connector_like(token: str) -> bool:
    if token.startswith('"') or _MULTIPLICITY_RE.match(token):
        return False
    return "--" in token or ".." in token


def _parse_member(line: str) -> ClassMember | None:
    """Parse a class member line (attribute or method)."""
    trimmed = line.strip().rstrip(";").strip()
    if not trimmed:
        return None

    # Extract visibility prefix
    visibility: Visibility = ""
    rest = trimmed
    if rest[0] in "+-#~":
        visibility = rest[0]  # type: ignore[assignment]
        rest = rest[1:].strip()
    if not rest or rest in ("$", "*"):
        return None

    # Check if it's a method (has parentheses)
    m = _METHOD_RE.match(rest)
    if m:
        ret = m.group("ret").strip()
        classifier = m.group("classifier") or ""
        if ret and ret[-1] in "$*":
            classifier = classifier or ret[-1]
            ret = ret[:-1].strip()
        params = m.group("params").strip()
        return ClassMember(
            visibility=visibility,
            name=m.group("name").strip(),
            member_kind="method",
            type=_render_generics(ret.lstrip(":").strip()) or None,
            parameters=_render_generics(params) if params else None,
            is_static=classifier == "$",
            is_abstract=classifier == "*",
        )

    # It's an attribute: "Type name" or just "name"
    classifier = ""
    if rest[-1] in "$*":
        classifier = rest[-1]
        rest = rest[:-1].strip()
    parts = rest.split()
    if len(parts) >= 2:
        type_: str | None = parts[0]
        name = " ".join(parts[1:])
    else:
        type_ = None
        name = rest

    return ClassMember(
        visibility=visibility,
        name=name,
        member_kind="field",
        type=_render_generics(type_) if type_ else None,
        is_static=classifier == "$",
        is_abstract=classifier == "*",
    )


def _render_generics(text: str) -> str:
    """Render Mermaid's `~T~` generic markers as `<T>`.

    Within a token the first half of the tildes open and the second half
    close, so `List~List~int~~` becomes `List<List<int>>`.
    """
    out = []
    for token in re.split(r"(\s+)", text):
        count = token.count("~")
        if count == 0 or count % 2:
            out.append(token)
            continue
        chars = []
        seen = 0
        for ch in token:
            if ch == "~":
                chars.append("<" if seen < count // 2 else ">")
                seen += 1
            else:
                chars.append(ch)
        out.append("".join(chars))
    return "".join(out)


def _class_id(token: str) -> str:
    m = _CLASS_ID_RE.match(token)
    return m.group(1) if m else token


def _declare_class(state: _ParserState, name: str) -> ClassEntity:
    """Create or complete a class from an explicit declaration."""
    m = _CLASS_ID_RE.match(name)
    cls_id = m.group(1) if m else name
    cls = _ensure_class(state, cls_id)
    cls.implicit = False
    if m and m.group(2):
        cls.label = f"{cls_id}{_render_generics('~' + m.group(2) + '~')}"
    if state.namespace is not None and cls_id not in state.namespace.class_ids:
        state.namespace.class_ids.append(cls_id)
    return cls


def _ensure_class(state: _ParserState, cls_id: str) -> ClassEntity:
    """Ensure a class exists in the registry, creating an implicit one if needed."""
    cls, _ = state.classes.ensure(
        cls_id,
        lambda id_, order: ClassEntity(id=id_, label=id_, declared_order=order, implicit=True),
    )
    return cls
