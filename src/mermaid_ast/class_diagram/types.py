from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ..types import Direction

# ============================================================================
# Class diagram types
#
# Models the parsed representation of a Mermaid class diagram.
# Class diagrams show UML class relationships, inheritance, composition, etc.
# ============================================================================

Visibility = Literal["+", "-", "#", "~", ""]

MemberKind = Literal["field", "method"]

RelationshipKind = Literal[
    "inheritance",   # A <|-- B   (solid line, hollow triangle)
    "composition",   # A *-- B    (solid line, filled diamond)
    "aggregation",   # A o-- B    (solid line, hollow diamond)
    "association",   # A --> B    (solid line, open arrow)
    "dependency",    # A ..> B    (dashed line, open arrow)
    "realization",   # A ..|> B   (dashed line, hollow triangle)
]

MarkerAt = Literal["from", "to", "both", "none"]


@dataclass(slots=True)
class ClassMember:
    """A single class member (attribute or method)."""

    # Visibility: + public, - private, # protected, ~ package, "" none
    visibility: Visibility
    name: str
    member_kind: MemberKind
    # Field type or method return type, generics rendered as <T>
    type: str | None = None
    # Raw parameter list of a method, without the parentheses
    parameters: str | None = None
    # Whether the member is static ($, underlined in UML)
    is_static: bool = False
    # Whether the member is abstract (*, italic in UML)
    is_abstract: bool = False

    @property
    def is_method(self) -> bool:
        return self.member_kind == "method"


@dataclass(slots=True)
class ClassEntity:
    """A class definition in the diagram."""

    id: str
    label: str
    # Annotation like <<interface>>, <<abstract>>, <<service>>, <<enumeration>>
    annotation: str | None = None
    # Fields and methods in declaration order
    members: list[ClassMember] = field(default_factory=list)
    declared_order: int = 0
    # Created by a relationship reference rather than a `class` statement
    implicit: bool = False

    @property
    def attributes(self) -> list[ClassMember]:
        return [m for m in self.members if m.member_kind == "field"]

    @property
    def methods(self) -> list[ClassMember]:
        return [m for m in self.members if m.member_kind == "method"]


@dataclass(slots=True)
class ClassRelationship:
    """A relationship between two classes."""

    from_: str
    to: str
    kind: RelationshipKind
    # Which end of the line carries the UML marker (triangle, diamond, arrow).
    # Determined by the connector syntax:
    #   - prefix markers like `<|--`, `*--`, `o--` -> 'from'
    #   - suffix markers like `..|>`, `-->`, `--*` -> 'to'
    #   - `<|--|>` -> 'both', bare `--` / `..` -> 'none'
    marker_at: MarkerAt
    # Multiplicity at the "from" end (e.g., "1", "*", "0..1")
    from_multiplicity: str | None = None
    # Multiplicity at the "to" end
    to_multiplicity: str | None = None
    label: str | None = None
    line: int = 0


@dataclass(slots=True)
class ClassNamespace:
    """A namespace grouping of classes."""

    name: str
    class_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ClassNote:
    text: str
    # None for a free-floating note
    class_id: str | None = None
    line: int = 0


@dataclass(slots=True)
class ClassAST:
    """Parsed class diagram -- logical structure from mermaid text."""

    type: Literal["class"] = "class"
    # All classes, in first-mention order
    classes: list[ClassEntity] = field(default_factory=list)
    relationships: list[ClassRelationship] = field(default_factory=list)
    namespaces: list[ClassNamespace] = field(default_factory=list)
    notes: list[ClassNote] = field(default_factory=list)
    direction: Direction | None = None

    def get_class(self, class_id: str) -> ClassEntity | None:
        for cls in self.classes:
            if cls.id == class_id:
                return cls
        return None
