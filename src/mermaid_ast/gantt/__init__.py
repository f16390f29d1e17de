from __future__ import annotations

from .types import GanttAST, GanttSection, GanttTask, TaskTag
from .parser import TASK_TAGS, parse_gantt_chart

__all__ = ["GanttAST", "GanttSection", "GanttTask", "TaskTag", "TASK_TAGS", "parse_gantt_chart"]
