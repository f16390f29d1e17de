from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Literal

# ============================================================================
# Mindmap types
# ============================================================================

MindmapShape = Literal["default", "square", "rounded", "circle", "bang", "cloud", "hexagon"]


@dataclass(slots=True)
class MindmapNode:
    # Generated "node-N", in source order
    id: str
    label: str
    shape: MindmapShape = "default"
    children: list[MindmapNode] = field(default_factory=list)
    # From a following `::icon(...)` line
    icon: str | None = None
    # From a following `:::class1 class2` line
    classes: list[str] = field(default_factory=list)
    line: int = 0

    def walk(self) -> Iterator[MindmapNode]:
        """Pre-order walk over this node and its descendants."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(slots=True)
class MindmapAST:
    # None only for a mindmap without any node
    root: MindmapNode | None = None
    type: Literal["mindmap"] = "mindmap"

    def nodes(self) -> list[MindmapNode]:
        return list(self.root.walk()) if self.root is not None else []
