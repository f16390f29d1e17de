from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Literal, Union

# ============================================================================
# Sequence diagram types
#
# Models the parsed representation of a Mermaid sequence diagram.
# Sequence diagrams show participant interactions over time: messages, notes
# and nested control blocks (loop/alt/opt/par/...) in source order.
# ============================================================================

ActorType = Literal["participant", "actor"]
MessageKind = Literal["sync", "async", "reply"]
LineStyle = Literal["solid", "dashed"]
ArrowHead = Literal["filled", "open", "cross", "none"]
BlockType = Literal["loop", "alt", "opt", "par", "critical", "break", "rect"]
NotePosition = Literal["left-of", "right-of", "over"]


@dataclass(slots=True)
class Participant:
    id: str
    label: str
    # 'participant' renders as a box, 'actor' renders as a stick figure
    type: ActorType
    # Left-to-right lifeline position, fixed by first appearance
    declared_order: int = 0
    # Created by a message/note reference rather than a declaration
    implicit: bool = False

    @property
    def is_actor(self) -> bool:
        return self.type == "actor"


@dataclass(slots=True)
class Message:
    from_: str
    to: str
    text: str
    kind: MessageKind
    # Global, strictly increasing across the whole diagram
    sequence_index: int
    line_style: LineStyle = "solid"
    arrow_head: ArrowHead = "filled"
    # <<->> / <<-->> arrows point both ways
    bidirectional: bool = False
    # Activate the target lifeline (+)
    activate: bool = False
    # Deactivate the source lifeline (-)
    deactivate: bool = False
    line: int = 0


@dataclass(slots=True)
class Note:
    text: str
    position: NotePosition
    participant_ids: list[str]
    line: int = 0


@dataclass(slots=True)
class Branch:
    # Condition/label of this branch ("else ..."/"and ..."); the first branch
    # carries the block label
    condition: str | None = None
    items: list[SequenceItem] = field(default_factory=list)


@dataclass(slots=True)
class Block:
    kind: BlockType
    label: str
    branches: list[Branch] = field(default_factory=list)
    line: int = 0


SequenceItem = Union[Message, Note, Block]


@dataclass(slots=True)
class Box:
    """A `box ... end` group of participants."""

    label: str
    participant_ids: list[str] = field(default_factory=list)
    line: int = 0


@dataclass(slots=True)
class SequenceAST:
    """Parsed sequence diagram -- logical structure from mermaid text."""

    type: Literal["sequence"] = "sequence"
    # Ordered list of participants (lifeline order)
    participants: list[Participant] = field(default_factory=list)
    # Top-level messages, notes and blocks in source order
    items: list[SequenceItem] = field(default_factory=list)
    boxes: list[Box] = field(default_factory=list)
    title: str | None = None
    autonumber: bool = False

    @property
    def messages(self) -> list[Message]:
        """Every message, including nested ones, in sequence order."""
        return [item for item in walk_items(self.items) if isinstance(item, Message)]

    @property
    def notes(self) -> list[Note]:
        return [item for item in walk_items(self.items) if isinstance(item, Note)]

    def participant(self, participant_id: str) -> Participant | None:
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None


def walk_items(items: list[SequenceItem]) -> Iterator[SequenceItem]:
    """Depth-first walk over items and the contents of nested blocks."""
    for item in items:
        yield item
        if isinstance(item, Block):
            for branch in item.branches:
                yield from walk_items(branch.items)
