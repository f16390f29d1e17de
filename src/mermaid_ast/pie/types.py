from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# ============================================================================
# Pie chart types
# ============================================================================


@dataclass(slots=True)
class PieSlice:
    label: str
    value: float
    line: int = 0


@dataclass(slots=True)
class PieAST:
    type: Literal["pie"] = "pie"
    title: str | None = None
    # `pie showData` renders the raw values next to the legend
    show_data: bool = False
    slices: list[PieSlice] = field(default_factory=list)

    @property
    def total(self) -> float:
        return sum(s.value for s in self.slices)
