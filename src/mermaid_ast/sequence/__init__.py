from __future__ import annotations

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
    walk_items,
)
from .parser import ARROWS, parse_sequence_diagram

__all__ = [
    "ActorType",
    "ArrowHead",
    "Block",
    "BlockType",
    "Box",
    "Branch",
    "LineStyle",
    "Message",
    "MessageKind",
    "Note",
    "NotePosition",
    "Participant",
    "SequenceAST",
    "SequenceItem",
    "walk_items",
    "ARROWS",
    "parse_sequence_diagram",
]
