from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..diagnostics import DiagnosticCollector
from ..registry import Registry
from ..scanner import SourceLine
from ..types import Diagnostic
from .types import (
    ActorType,
    ArrowHead,
    Block,
    BlockType,
    Box,
    Branch,
    LineStyle,
    Message,
    MessageKind,
    Note,
    NotePosition,
    Participant,
    SequenceAST,
    SequenceItem,
)

# ============================================================================
# Sequence diagram parser
#
# Parses Mermaid sequenceDiagram syntax into a SequenceAST.
#
# Supported syntax:
#   participant A as Alice
#   actor B as Bob
#   A->>B: Solid arrow            A-->>B: Dashed arrow (reply)
#   A->B: Solid line              A-->B: Dashed line
#   A-xB: Cross                   A--xB: Dashed cross
#   A-)B: Async                   A--)B: Dashed async
#   A<<->>B: Bidirectional        A<<-->>B: Dashed bidirectional
#   A->>+B: Activate target       A-->>-B: Deactivate source
#   loop/alt/opt/par/critical/break/rect Label ... end
#   else / and / option Label     (new branch in the open block)
#   Note left of A: Text          Note over A,B: Text
#   box Label ... end             autonumber        title Text
# ============================================================================

_ACTOR_RE = re.compile(r"^(participant|actor)\s+(\S+?)(?:\s+as\s+(.+))?$")
_NOTE_RE = re.compile(r"^note\s+(left of|right of|over)\s+([^:]+?)\s*:\s*(.*)$", re.IGNORECASE)
_BLOCK_RE = re.compile(r"^(loop|alt|opt|par|critical|break|rect)(?:\s+(.*))?$")
_DIVIDER_RE = re.compile(r"^(else|and|option)(?:\s+(.*))?$")
_BOX_RE = re.compile(r"^box(?:\s+(.*))?$")
_ACTIVATION_RE = re.compile(r"^(activate|deactivate)\s+(\S+)$")
_TITLE_RE = re.compile(r"^title(?:\s*:\s*|\s+)(.+)$")
_MSG_RE = re.compile(
    r"^(?P<from>[^\s:<>+-][^:]*?)\s*"
    r"(?P<arrow><<-->>|<<->>|-->>|->>|--x|--\)|-->|-x|-\)|->)\s*"
    r"(?P<mark>[+-]?)\s*"
    r"(?P<to>[^\s:<>+-][^:]*?)\s*"
    r"(?::\s*(?P<text>.*))?$"
)
_ARROWISH_RE = re.compile(r"-[->x)]|<<-")

# arrow -> (kind, line style, arrow head, bidirectional)
ARROWS: dict[str, tuple[MessageKind, LineStyle, ArrowHead, bool]] = {
    "->>": ("sync", "solid", "filled", False),
    "-->>": ("reply", "dashed", "filled", False),
    "->": ("sync", "solid", "none", False),
    "-->": ("reply", "dashed", "none", False),
    "-x": ("sync", "solid", "cross", False),
    "--x": ("reply", "dashed", "cross", False),
    "-)": ("async", "solid", "open", False),
    "--)": ("async", "dashed", "open", False),
    "<<->>": ("sync", "solid", "filled", True),
    "<<-->>": ("reply", "dashed", "filled", True),
}

# divider keyword -> block type it belongs to
DIVIDERS: dict[str, BlockType] = {
    "else": "alt",
    "and": "par",
    "option": "critical",
}

_NOTE_POSITIONS: dict[str, NotePosition] = {
    "left of": "left-of",
    "right of": "right-of",
    "over": "over",
}


@dataclass
class _Frame:
    block: Block
    branch: Branch


@dataclass
class _ParserState:
    ast: SequenceAST = field(default_factory=SequenceAST)
    participants: Registry[Participant] = field(default_factory=Registry)
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)
    block_stack: list[_Frame] = field(default_factory=list)
    open_box: Box | None = None
    next_index: int = 0

    @property
    def current_items(self) -> list[SequenceItem]:
        if self.block_stack:
            return self.block_stack[-1].branch.items
        return self.ast.items


def parse_sequence_diagram(lines: list[SourceLine]) -> tuple[SequenceAST, list[Diagnostic]]:
    """Parse a Mermaid sequence diagram.

    Expects lines[0] to be the "sequenceDiagram" header.
    """
    state = _ParserState()

    for line in lines[1:]:
        _parse_line(line, state)

    while state.block_stack:
        frame = state.block_stack[-1]
        state.diagnostics.warning(
            f"Unclosed '{frame.block.kind}' block closed at end of input (missing 'end')",
            frame.block.line,
        )
        _close_block(state)

    if state.open_box is not None:
        state.diagnostics.warning(
            "Unclosed box closed at end of input (missing 'end')", state.open_box.line
        )
        state.ast.boxes.append(state.open_box)
        state.open_box = None

    state.ast.participants = state.participants.values()
    return state.ast, state.diagnostics.items


def _parse_line(line: SourceLine, state: _ParserState) -> None:
    text = line.text

    # --- Participant / Actor declaration ---
    m = _ACTOR_RE.match(text)
    if m:
        _declare_participant(state, m.group(2), m.group(3), m.group(1), line)  # type: ignore[arg-type]
        return

    # --- Note ---
    m = _NOTE_RE.match(text)
    if m:
        _parse_note(m, line, state)
        return

    # --- Box start ---
    m = _BOX_RE.match(text)
    if m:
        if state.open_box is not None or state.block_stack:
            state.diagnostics.error("A box cannot be nested", line.number, line.column)
            return
        state.open_box = Box(label=(m.group(1) or "").strip(), line=line.number)
        return

    # --- Block start: loop, alt, opt, par, critical, break, rect ---
    m = _BLOCK_RE.match(text)
    if m:
        label = (m.group(2) or "").strip()
        block = Block(
            kind=m.group(1),  # type: ignore[arg-type]
            label=label,
            branches=[Branch(condition=label or None)],
            line=line.number,
        )
        state.block_stack.append(_Frame(block=block, branch=block.branches[0]))
        return

    # --- Block divider: else, and, option ---
    m = _DIVIDER_RE.match(text)
    if m:
        _open_branch(m.group(1), (m.group(2) or "").strip(), line, state)
        return

    # --- Block / box end ---
    if text == "end":
        if state.block_stack:
            _close_block(state)
        elif state.open_box is not None:
            state.ast.boxes.append(state.open_box)
            state.open_box = None
        else:
            state.diagnostics.error(
                "Unexpected 'end' without an open block", line.number, line.column
            )
        return

    if text == "autonumber" or text.startswith("autonumber "):
        state.ast.autonumber = True
        return

    m = _TITLE_RE.match(text)
    if m:
        state.ast.title = m.group(1).strip()
        return

    # --- activate / deactivate explicit commands ---
    # Lifeline activation only affects rendering; the participant is still registered
    m = _ACTIVATION_RE.match(text)
    if m:
        _ensure_participant(state, m.group(2))
        return

    # --- Message ---
    m = _MSG_RE.match(text)
    if m:
        _parse_message(m, line, state)
        return

    if _ARROWISH_RE.search(text):
        state.diagnostics.error(
            f"Invalid message syntax: {text}",
            line.number,
            line.column,
            suggestions=["Expected: A->>B: message", "Arrows: " + ", ".join(ARROWS)],
        )
        return

    state.diagnostics.warning(f"Skipping unrecognized line: {text}", line.number, line.column)


def _parse_message(match: re.Match[str], line: SourceLine, state: _ParserState) -> None:
    """Parse a message match and append it to the current frame."""
    from_ = match.group("from").strip()
    to = match.group("to").strip()
    arrow = match.group("arrow")
    activation_mark = match.group("mark")
    text = match.group("text")

    if text is None:
        state.diagnostics.warning(
            f"Message {from_}{arrow}{to} has no text (expected ': text')",
            line.number,
            line.column,
        )

    # Ensure both participants exist, in order of first reference
    _ensure_participant(state, from_)
    _ensure_participant(state, to)

    kind, line_style, arrow_head, bidirectional = ARROWS[arrow]
    msg = Message(
        from_=from_,
        to=to,
        text=(text or "").strip(),
        kind=kind,
        sequence_index=state.next_index,
        line_style=line_style,
        arrow_head=arrow_head,
        bidirectional=bidirectional,
        activate=activation_mark == "+",
        deactivate=activation_mark == "-",
        line=line.number,
    )
    state.next_index += 1
    state.current_items.append(msg)


def _parse_note(match: re.Match[str], line: SourceLine, state: _ParserState) -> None:
    position = _NOTE_POSITIONS[re.sub(r"\s+", " ", match.group(1).lower())]
    participant_ids = [s.strip() for s in match.group(2).split(",") if s.strip()]

    if len(participant_ids) > 2:
        state.diagnostics.warning(
            "A note spans at most two participants; extra ones are kept as written",
            line.number,
            line.column,
        )
    if position != "over" and len(participant_ids) > 1:
        state.diagnostics.warning(
            f"'{match.group(1)}' notes attach to a single participant",
            line.number,
            line.column,
        )

    for pid in participant_ids:
        _ensure_participant(state, pid)

    state.current_items.append(
        Note(
            text=match.group(3).strip(),
            position=position,
            participant_ids=participant_ids,
            line=line.number,
        )
    )


def _open_branch(keyword: str, label: str, line: SourceLine, state: _ParserState) -> None:
    if not state.block_stack:
        state.diagnostics.error(
            f"Unexpected '{keyword}' outside a block", line.number, line.column
        )
        return

    frame = state.block_stack[-1]
    expected = DIVIDERS[keyword]
    if frame.block.kind != expected:
        state.diagnostics.warning(
            f"'{keyword}' belongs in a '{expected}' block, not '{frame.block.kind}'",
            line.number,
            line.column,
        )

    branch = Branch(condition=label or None)
    frame.block.branches.append(branch)
    frame.branch = branch


def _close_block(state: _ParserState) -> None:
    completed = state.block_stack.pop()
    state.current_items.append(completed.block)


def _declare_participant(
    state: _ParserState,
    pid: str,
    alias: str | None,
    actor_type: ActorType,
    line: SourceLine,
) -> None:
    label = alias.strip() if alias else pid
    participant, created = state.participants.ensure(
        pid,
        lambda id_, order: Participant(id=id_, label=label, type=actor_type, declared_order=order),
    )
    if not created:
        if participant.implicit:
            # Order was fixed by the first reference; only the presentation changes
            participant.label = label
            participant.type = actor_type
            participant.implicit = False
        else:
            state.diagnostics.warning(
                f"Participant '{pid}' is already declared", line.number, line.column
            )

    if state.open_box is not None and pid not in state.open_box.participant_ids:
        state.open_box.participant_ids.append(pid)


def _ensure_participant(state: _ParserState, pid: str) -> Participant:
    """Ensure a participant exists, creating a default participant if not."""
    participant, _ = state.participants.ensure(
        pid,
        lambda id_, order: Participant(
            id=id_, label=id_, type="participant", declared_order=order, implicit=True
        ),
    )
    return participant
