from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# ============================================================================
# ER diagram types
#
# Models the parsed representation of a Mermaid ER diagram.
# ER diagrams show database entities, their attributes, and relationships.
# ============================================================================

# Cardinality notation (crow's foot):
#   'exactly-one'   ||         exactly one
#   'zero-or-one'   |o  o|     zero or one
#   'one-or-many'   }|  |{     one or more
#   'zero-or-many'  }o  o{     zero or more
Cardinality = Literal["zero-or-one", "exactly-one", "zero-or-many", "one-or-many"]

KeyTag = Literal["PK", "FK", "UK"]


@dataclass(slots=True)
class ErAttribute:
    """A single attribute (column) of an ER entity."""

    # Data type (string, int, varchar(255), etc.)
    type: str
    name: str
    # Key constraints; order-independent, duplicates collapse
    key_tags: frozenset[KeyTag] = frozenset()
    comment: str | None = None


@dataclass(slots=True)
class ErEntity:
    """An entity definition in an ER diagram."""

    id: str
    # Display name (same as id unless aliased with ID["Label"])
    label: str
    attributes: list[ErAttribute] = field(default_factory=list)
    declared_order: int = 0
    # Created by a relationship reference rather than a declaration
    implicit: bool = False


@dataclass(slots=True)
class ErRelationship:
    """A relationship between two entities."""

    entity1: str
    entity2: str
    # Cardinality at entity1's end
    cardinality1: Cardinality
    # Cardinality at entity2's end
    cardinality2: Cardinality
    # Identifying (solid line, --) or non-identifying (dashed line, ..)
    identifying: bool
    # Relationship verb (e.g., "places", "contains")
    label: str | None = None
    line: int = 0


@dataclass(slots=True)
class ErAST:
    """Parsed ER diagram -- logical structure from mermaid text."""

    type: Literal["er"] = "er"
    # All entities, in first-mention order
    entities: list[ErEntity] = field(default_factory=list)
    relationships: list[ErRelationship] = field(default_factory=list)

    def get_entity(self, entity_id: str) -> ErEntity | None:
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        return None
