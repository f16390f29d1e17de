from __future__ import annotations

from .types import Cardinality, ErAST, ErAttribute, ErEntity, ErRelationship, KeyTag
from .parser import CARDINALITY_GLYPHS, CARDINALITY_WORDS, parse_er_diagram

__all__ = [
    "Cardinality",
    "ErAST",
    "ErAttribute",
    "ErEntity",
    "ErRelationship",
    "KeyTag",
    "CARDINALITY_GLYPHS",
    "CARDINALITY_WORDS",
    "parse_er_diagram",
]
