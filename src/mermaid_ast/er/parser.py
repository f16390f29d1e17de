from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..diagnostics import DiagnosticCollector
from ..registry import Registry
from ..scanner import SourceLine
from ..types import Diagnostic
from .types import Cardinality, ErAST, ErAttribute, ErEntity, ErRelationship, KeyTag

# ============================================================================
# ER diagram parser
#
# Parses Mermaid erDiagram syntax into an ErAST.
#
# Supported syntax:
#   CUSTOMER ||--o{ ORDER : places
#   PERSON many(0) optionally to 0+ NAMED-DRIVER : is
#   CUSTOMER["Customer account"] {
#     string name PK
#     int age
#     string email UK "user email"
#   }
#
# Cardinality notation (either orientation on either side):
#   ||  exactly one
#   |o  zero or one (also o|)
#   }|  one or more (also |{)
#   }o  zero or more (also o{ and {o)
#
# Line style:
#   --  identifying (solid line), also "to"
#   ..  non-identifying (dashed line), also "optionally to"
# ============================================================================

CARDINALITY_GLYPHS: dict[str, Cardinality] = {
    "|o": "zero-or-one",
    "o|": "zero-or-one",
    "||": "exactly-one",
    "}o": "zero-or-many",
    "o{": "zero-or-many",
    "{o": "zero-or-many",
    "}|": "one-or-many",
    "|{": "one-or-many",
}

CARDINALITY_WORDS: dict[str, Cardinality] = {
    "zero or one": "zero-or-one",
    "one or zero": "zero-or-one",
    "only one": "exactly-one",
    "1": "exactly-one",
    "zero or more": "zero-or-many",
    "zero or many": "zero-or-many",
    "many(0)": "zero-or-many",
    "0+": "zero-or-many",
    "one or more": "one-or-many",
    "one or many": "one-or-many",
    "many(1)": "one-or-many",
    "1+": "one-or-many",
}

FALLBACK_CARDINALITY: Cardinality = "zero-or-many"

KEY_TAGS: frozenset[KeyTag] = frozenset({"PK", "FK", "UK"})

_ID = r'(?:"[^"]+"|[\w-]+)'
_GLYPH_REL_RE = re.compile(
    rf"^({_ID})\s+([^\s.\-]{{1,3}})(--|\.\.)([^\s.\-]{{1,3}})\s+({_ID})(?:\s*:\s*(.*))?$"
)
_WORDS = "|".join(re.escape(w) for w in sorted(CARDINALITY_WORDS, key=len, reverse=True))
_WORD_REL_RE = re.compile(
    rf"^({_ID})\s+({_WORDS})\s+(optionally to|to)\s+({_WORDS})\s+({_ID})(?:\s*:\s*(.*))?$"
)
_ENTITY_RE = re.compile(rf'^({_ID})(?:\s*\[\s*"?([^"\]]*)"?\s*\])?\s*(\{{\s*\}}?)?$')
_ATTRIBUTE_RE = re.compile(r"^(\S+)\s+(\S+)(?:\s+(.+))?$")


@dataclass
class _ParserState:
    ast: ErAST = field(default_factory=ErAST)
    entities: Registry[ErEntity] = field(default_factory=Registry)
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)
    # Entity whose attribute block is open
    body: ErEntity | None = None
    body_line: int = 0


def parse_er_diagram(lines: list[SourceLine]) -> tuple[ErAST, list[Diagnostic]]:
    """Parse a Mermaid ER diagram.

    Expects lines[0] to be the "erDiagram" header.
    """
    state = _ParserState()

    for line in lines[1:]:
        _parse_line(line, state)

    if state.body is not None:
        state.diagnostics.warning(
            f"Attribute block of '{state.body.id}' closed at end of input (missing '}}')",
            state.body_line,
        )
        state.body = None

    state.ast.entities = state.entities.values()
    return state.ast, state.diagnostics.items


def _parse_line(line: SourceLine, state: _ParserState) -> None:
    text = line.text

    # --- Inside entity body ---
    if state.body is not None:
        if text == "}":
            state.body = None
            return
        if not (_GLYPH_REL_RE.match(text) or _WORD_REL_RE.match(text)):
            # Attribute line: type name [PK|FK|UK [...]] ["comment"]
            attr = _parse_attribute(line, state.diagnostics)
            if attr is not None:
                state.body.attributes.append(attr)
            return
        state.diagnostics.warning(
            f"Attribute block of '{state.body.id}' not closed before a relationship (missing '}}')",
            line.number,
            line.column,
        )
        state.body = None

    if text == "}":
        state.diagnostics.error("Unexpected '}' without an open entity block", line.number, line.column)
        return

    # --- Relationship: `ENTITY1 cardinality1--cardinality2 ENTITY2 : label` ---
    m = _GLYPH_REL_RE.match(text)
    if m:
        card1 = _glyph_cardinality(m.group(2), line, state.diagnostics)
        card2 = _glyph_cardinality(m.group(4), line, state.diagnostics)
        _add_relationship(m, card1, card2, m.group(3) == "--", line, state)
        return

    # --- Relationship with word aliases: `A one or more to zero or many B : label` ---
    m = _WORD_REL_RE.match(text)
    if m:
        card1 = CARDINALITY_WORDS[m.group(2)]
        card2 = CARDINALITY_WORDS[m.group(4)]
        _add_relationship(m, card1, card2, m.group(3) == "to", line, state)
        return

    # --- Entity declaration: `ENTITY`, `ENTITY {`, `ENTITY["Label"] {` ---
    m = _ENTITY_RE.match(text)
    if m:
        entity = _ensure_entity(state, _unquote(m.group(1)))
        entity.implicit = False
        if m.group(2):
            entity.label = m.group(2).strip()
        brace = m.group(3)
        if brace is not None and not brace.endswith("}"):
            state.body = entity
            state.body_line = line.number
        return

    if "--" in text or ".." in text:
        state.diagnostics.error(
            f"Invalid relationship syntax: {text}",
            line.number,
            line.column,
            suggestions=["Expected: ENTITY1 ||--o{ ENTITY2 : label"],
        )
        return

    state.diagnostics.warning(f"Skipping unrecognized line: {text}", line.number, line.column)


def _add_relationship(
    match: re.Match[str],
    card1: Cardinality,
    card2: Cardinality,
    identifying: bool,
    line: SourceLine,
    state: _ParserState,
) -> None:
    entity1 = _unquote(match.group(1))
    entity2 = _unquote(match.group(5))
    label = match.group(6)
    if label is None:
        state.diagnostics.warning(
            f"Relationship {entity1} - {entity2} has no label (expected ': label')",
            line.number,
            line.column,
        )
    else:
        label = _unquote(label.strip())

    # Ensure both entities exist
    _ensure_entity(state, entity1)
    _ensure_entity(state, entity2)
    state.ast.relationships.append(
        ErRelationship(
            entity1=entity1,
            entity2=entity2,
            cardinality1=card1,
            cardinality2=card2,
            identifying=identifying,
            label=label or None,
            line=line.number,
        )
    )


def _glyph_cardinality(glyph: str, line: SourceLine, diagnostics: DiagnosticCollector) -> Cardinality:
    cardinality = CARDINALITY_GLYPHS.get(glyph)
    if cardinality is None:
        diagnostics.error(
            f"Unknown cardinality '{glyph}', assuming {FALLBACK_CARDINALITY}",
            line.number,
            line.column,
            suggestions=sorted(CARDINALITY_GLYPHS),
        )
        return FALLBACK_CARDINALITY
    return cardinality


def _parse_attribute(line: SourceLine, diagnostics: DiagnosticCollector) -> ErAttribute | None:
    """Parse an attribute line inside an entity block.

    Format: type name [PK|FK|UK [, ...]] ["comment"]
    """
    m = _ATTRIBUTE_RE.match(line.text)
    if not m:
        diagnostics.error(
            f"Attribute needs a type and a name: {line.text}",
            line.number,
            line.column,
        )
        return None

    rest = (m.group(3) or "").strip()

    # Extract quoted comment first
    comment: str | None = None
    comment_match = re.search(r'"([^"]*)"', rest)
    if comment_match:
        comment = comment_match.group(1)
        rest = (rest[: comment_match.start()] + rest[comment_match.end() :]).strip()

    # Extract key constraints
    tags: set[KeyTag] = set()
    for part in re.split(r"[\s,]+", rest):
        if not part:
            continue
        upper = part.upper()
        if upper in KEY_TAGS:
            tags.add(upper)  # type: ignore[arg-type]
        else:
            diagnostics.warning(
                f"Unknown key constraint '{part}' on attribute '{m.group(2)}'",
                line.number,
                line.column,
                suggestions=sorted(KEY_TAGS),
            )

    return ErAttribute(type=m.group(1), name=m.group(2), key_tags=frozenset(tags), comment=comment)


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1]
    return text


def _ensure_entity(state: _ParserState, entity_id: str) -> ErEntity:
    """Ensure an entity exists in the registry, creating an implicit one if needed."""
    entity, _ = state.entities.ensure(
        entity_id,
        lambda id_, order: ErEntity(id=id_, label=id_, declared_order=order, implicit=True),
    )
    return entity
