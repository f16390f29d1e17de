from __future__ import annotations

from .types import (
    ClassAST,
    ClassEntity,
    ClassMember,
    ClassNamespace,
    ClassNote,
    ClassRelationship,
    MarkerAt,
    MemberKind,
    RelationshipKind,
    Visibility,
)
from .parser import CONNECTORS, parse_class_diagram

__all__ = [
    "ClassAST",
    "ClassEntity",
    "ClassMember",
    "ClassNamespace",
    "ClassNote",
    "ClassRelationship",
    "MarkerAt",
    "MemberKind",
    "RelationshipKind",
    "Visibility",
    "CONNECTORS",
    "parse_class_diagram",
]
