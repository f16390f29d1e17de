from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# ============================================================================
# Gantt chart types
# ============================================================================

TaskTag = Literal["done", "active", "crit", "milestone"]


@dataclass(slots=True)
class GanttTask:
    label: str
    id: str | None = None
    # Status tags in source order (done, active, crit, milestone)
    tags: list[TaskTag] = field(default_factory=list)
    # Start date as written, or None when given by `after` / implied
    start: str | None = None
    end: str | None = None
    # Duration token such as "3d" or "12h"
    duration: str | None = None
    # `after a b` dependencies
    after_ids: list[str] = field(default_factory=list)
    line: int = 0


@dataclass(slots=True)
class GanttSection:
    # "" holds tasks declared before any `section`
    name: str
    tasks: list[GanttTask] = field(default_factory=list)


@dataclass(slots=True)
class GanttAST:
    type: Literal["gantt"] = "gantt"
    title: str | None = None
    date_format: str | None = None
    axis_format: str | None = None
    # e.g. ["weekends", "2024-01-01"]
    excludes: list[str] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)
    # todayMarker, tickInterval, weekday, inclusiveEndDates, topAxis
    settings: dict[str, str] = field(default_factory=dict)
    sections: list[GanttSection] = field(default_factory=list)

    @property
    def tasks(self) -> list[GanttTask]:
        return [task for section in self.sections for task in section.tasks]
