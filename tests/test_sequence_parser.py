"""Tests for the sequence diagram parser.

Covers: participants, actors, messages (solid/dashed, filled/open arrows),
activation/deactivation, blocks (loop/alt/opt/par/critical), notes, boxes,
auto-created participants and recovery diagnostics.
"""

from __future__ import annotations

import pytest

from mermaid_ast import SequenceAST, parse
from mermaid_ast.sequence import Block, Message, Note


def parse_seq(text: str):
    result = parse(text)
    assert isinstance(result.ast, SequenceAST)
    return result.ast, result.diagnostics


def messages(diagnostics, severity: str) -> list[str]:
    return [d.message for d in diagnostics if d.severity == severity]


# ============================================================================
# Actor / Participant declarations
# ============================================================================


class TestParticipants:
    def test_parses_participant_declarations(self):
        d, _ = parse_seq(
            "sequenceDiagram\n"
            "  participant A as Alice\n"
            "  participant B as Bob\n"
            "  A->>B: Hello"
        )
        assert len(d.participants) == 2
        assert d.participants[0].id == "A"
        assert d.participants[0].label == "Alice"
        assert d.participants[0].type == "participant"

    def test_parses_actor_declarations_stick_figures(self):
        d, _ = parse_seq(
            "sequenceDiagram\n"
            "  actor U as User\n"
            "  participant S as System\n"
            "  U->>S: Click"
        )
        assert d.participants[0].is_actor is True
        assert d.participants[1].is_actor is False

    def test_auto_creates_participants_from_messages(self):
        d, _ = parse_seq("sequenceDiagram\n  Alice->>Bob: Hello")
        assert [p.id for p in d.participants] == ["Alice", "Bob"]
        assert d.participants[0].label == "Alice"
        assert d.participants[0].implicit is True

    def test_later_declaration_keeps_first_seen_order(self):
        d, diagnostics = parse_seq(
            "sequenceDiagram\n"
            "  A->>B: hi\n"
            "  participant B as Bobby"
        )
        assert [p.id for p in d.participants] == ["A", "B"]
        bob = d.participant("B")
        assert bob.label == "Bobby"
        assert bob.implicit is False
        assert bob.declared_order == 1
        assert diagnostics == []

    def test_duplicate_declaration_warns(self):
        d, diagnostics = parse_seq(
            "sequenceDiagram\n  participant A\n  participant A as Again"
        )
        assert len(d.participants) == 1
        assert d.participants[0].label == "A"
        assert any("already declared" in m for m in messages(diagnostics, "warning"))

    def test_activate_registers_participant(self):
        d, _ = parse_seq("sequenceDiagram\n  activate Worker\n  deactivate Worker")
        assert [p.id for p in d.participants] == ["Worker"]


# ============================================================================
# Messages
# ============================================================================


class TestMessages:
    @pytest.mark.parametrize(
        "arrow, kind, line_style, head",
        [
            ("->>", "sync", "solid", "filled"),
            ("-->>", "reply", "dashed", "filled"),
            ("->", "sync", "solid", "none"),
            ("-->", "reply", "dashed", "none"),
            ("-x", "sync", "solid", "cross"),
            ("--x", "reply", "dashed", "cross"),
            ("-)", "async", "solid", "open"),
            ("--)", "async", "dashed", "open"),
        ],
    )
    def test_arrow_table(self, arrow, kind, line_style, head):
        d, diagnostics = parse_seq(f"sequenceDiagram\n  A{arrow}B: hi")
        msg = d.messages[0]
        assert (msg.from_, msg.to, msg.text) == ("A", "B", "hi")
        assert msg.kind == kind
        assert msg.line_style == line_style
        assert msg.arrow_head == head
        assert diagnostics == []

    @pytest.mark.parametrize("arrow, line_style", [("<<->>", "solid"), ("<<-->>", "dashed")])
    def test_bidirectional_arrows(self, arrow, line_style):
        d, _ = parse_seq(f"sequenceDiagram\n  A{arrow}B: sync")
        assert d.messages[0].bidirectional is True
        assert d.messages[0].line_style == line_style

    def test_spaces_around_arrow(self):
        d, _ = parse_seq("sequenceDiagram\n  Alice ->> Bob : Hello there")
        msg = d.messages[0]
        assert (msg.from_, msg.to, msg.text) == ("Alice", "Bob", "Hello there")

    def test_activation_markers(self):
        d, _ = parse_seq(
            "sequenceDiagram\n"
            "  A->>+B: request\n"
            "  B-->>-A: response"
        )
        assert d.messages[0].activate is True
        assert d.messages[0].to == "B"
        assert d.messages[1].deactivate is True
        assert d.messages[1].to == "A"

    def test_hyphenated_participant_ids(self):
        d, _ = parse_seq("sequenceDiagram\n  web-server->>db: query")
        assert d.messages[0].from_ == "web-server"
        assert d.messages[0].to == "db"

    def test_message_without_text_warns(self):
        d, diagnostics = parse_seq("sequenceDiagram\n  A->>B")
        assert d.messages[0].text == ""
        assert any("has no text" in m for m in messages(diagnostics, "warning"))

    def test_invalid_message_is_an_error(self):
        d, diagnostics = parse_seq("sequenceDiagram\n  A->>: nobody")
        assert d.messages == []
        assert any("Invalid message syntax" in m for m in messages(diagnostics, "error"))

    def test_sequence_index_is_global(self):
        d, _ = parse_seq(
            "sequenceDiagram\n"
            "  A->>B: one\n"
            "  alt ok\n"
            "    B->>A: two\n"
            "  else fail\n"
            "    B->>A: three\n"
            "  end\n"
            "  A->>B: four"
        )
        assert [m.sequence_index for m in d.messages] == [0, 1, 2, 3]
        assert [m.text for m in d.messages] == ["one", "two", "three", "four"]


# ============================================================================
# Blocks
# ============================================================================


class TestBlocks:
    def test_loop_block(self):
        d, _ = parse_seq(
            "sequenceDiagram\n"
            "  loop Every minute\n"
            "    A->>B: ping\n"
            "  end"
        )
        block = d.items[0]
        assert isinstance(block, Block)
        assert block.kind == "loop"
        assert block.label == "Every minute"
        assert len(block.branches) == 1
        assert block.branches[0].condition == "Every minute"

    def test_alt_else_branches(self):
        d, _ = parse_seq(
            "sequenceDiagram\n"
            "  alt success\n"
            "    A->>B: ok\n"
            "  else failure\n"
            "    A->>B: error\n"
            "  end"
        )
        block = d.items[0]
        assert [b.condition for b in block.branches] == ["success", "failure"]
        assert [len(b.items) for b in block.branches] == [1, 1]

    @pytest.mark.parametrize("kind, divider", [("par", "and"), ("critical", "option")])
    def test_other_dividers(self, kind, divider):
        d, diagnostics = parse_seq(
            f"sequenceDiagram\n  {kind} first\n  A->>B: x\n  {divider} second\n  A->>B: y\n  end"
        )
        assert [b.condition for b in d.items[0].branches] == ["first", "second"]
        assert diagnostics == []

    def test_nested_blocks(self):
        d, _ = parse_seq(
            "sequenceDiagram\n"
            "  loop outer\n"
            "    opt inner\n"
            "      A->>B: deep\n"
            "    end\n"
            "  end"
        )
        outer = d.items[0]
        inner = outer.branches[0].items[0]
        assert (outer.kind, inner.kind) == ("loop", "opt")
        assert inner.branches[0].items[0].text == "deep"

    def test_mismatched_divider_warns_but_branches(self):
        d, diagnostics = parse_seq(
            "sequenceDiagram\n  loop x\n  A->>B: a\n  else y\n  A->>B: b\n  end"
        )
        assert len(d.items[0].branches) == 2
        assert any("belongs in a 'alt' block" in m for m in messages(diagnostics, "warning"))

    def test_divider_outside_block_is_an_error(self):
        _, diagnostics = parse_seq("sequenceDiagram\n  A->>B: a\n  else nope")
        assert any("outside a block" in m for m in messages(diagnostics, "error"))

    def test_unmatched_end_is_an_error_and_parsing_continues(self):
        d, diagnostics = parse_seq("sequenceDiagram\n  end\n  A->>B: after")
        assert len(d.messages) == 1
        errors = [x for x in diagnostics if x.severity == "error"]
        assert len(errors) == 1
        assert errors[0].span.line == 2

    def test_unclosed_block_closes_at_end_of_input(self):
        d, diagnostics = parse_seq("sequenceDiagram\n  loop forever\n  A->>B: again")
        assert isinstance(d.items[0], Block)
        assert len(d.messages) == 1
        assert any("Unclosed 'loop' block" in m for m in messages(diagnostics, "warning"))


# ============================================================================
# Notes, boxes and header options
# ============================================================================


class TestNotes:
    @pytest.mark.parametrize(
        "text, position",
        [
            ("Note left of A: hi", "left-of"),
            ("Note right of A: hi", "right-of"),
            ("note over A: hi", "over"),
        ],
    )
    def test_positions(self, text, position):
        d, _ = parse_seq(f"sequenceDiagram\n  {text}")
        note = d.items[0]
        assert isinstance(note, Note)
        assert note.position == position
        assert note.participant_ids == ["A"]
        assert note.text == "hi"

    def test_note_over_two_participants(self):
        d, _ = parse_seq("sequenceDiagram\n  Note over A,B: shared")
        assert d.notes[0].participant_ids == ["A", "B"]
        assert [p.id for p in d.participants] == ["A", "B"]

    def test_notes_interleave_with_messages(self):
        d, _ = parse_seq(
            "sequenceDiagram\n  A->>B: one\n  Note right of B: thinking\n  B->>A: two"
        )
        assert [type(item) for item in d.items] == [Message, Note, Message]

    def test_note_inside_block_stays_in_block(self):
        d, _ = parse_seq("sequenceDiagram\n  loop l\n    Note over A: inside\n  end")
        assert len(d.items) == 1
        assert isinstance(d.items[0].branches[0].items[0], Note)


class TestBoxesAndOptions:
    def test_box_groups_participants(self):
        d, diagnostics = parse_seq(
            "sequenceDiagram\n"
            "  box Aqua Backend\n"
            "    participant A\n"
            "    participant B\n"
            "  end\n"
            "  A->>B: hi"
        )
        assert diagnostics == []
        assert len(d.boxes) == 1
        assert d.boxes[0].label == "Aqua Backend"
        assert d.boxes[0].participant_ids == ["A", "B"]
        assert d.items[0].text == "hi"

    def test_autonumber_and_title(self):
        d, _ = parse_seq("sequenceDiagram\n  title Checkout\n  autonumber\n  A->>B: hi")
        assert d.title == "Checkout"
        assert d.autonumber is True

    def test_title_with_colon(self):
        d, _ = parse_seq("sequenceDiagram\n  title: Checkout flow")
        assert d.title == "Checkout flow"

    def test_participant_named_like_title_keyword(self):
        d, diagnostics = parse_seq("sequenceDiagram\n  titleholder->>Bob: hi")
        assert d.title is None
        assert [p.id for p in d.participants] == ["titleholder", "Bob"]
        msg = d.messages[0]
        assert (msg.from_, msg.to, msg.text, msg.sequence_index) == ("titleholder", "Bob", "hi", 0)
        assert diagnostics == []

    def test_unrecognized_line_warns(self):
        d, diagnostics = parse_seq("sequenceDiagram\n  A->>B: hi\n  what is this")
        assert len(d.messages) == 1
        assert messages(diagnostics, "warning") == ["Skipping unrecognized line: what is this"]


class TestSequenceScenario:
    def test_participants_items_and_indices(self):
        d, diagnostics = parse_seq(
            "sequenceDiagram\n"
            "participant Alice\n"
            "actor Bob\n"
            "Alice->>Bob: Hello\n"
            "Bob-->>Alice: Hi\n"
            "loop Every minute\n"
            "Alice->>Bob: Ping\n"
            "Bob-->>Alice: Pong\n"
            "end\n"
            "Note over Alice,Bob: Done"
        )
        assert diagnostics == []
        assert [(p.id, p.is_actor) for p in d.participants] == [("Alice", False), ("Bob", True)]
        assert [type(item) for item in d.items] == [Message, Message, Block, Note]
        block = d.items[2]
        assert len(block.branches[0].items) == 2
        assert all(isinstance(i, Message) for i in block.branches[0].items)
        assert [m.sequence_index for m in d.messages] == [0, 1, 2, 3]
