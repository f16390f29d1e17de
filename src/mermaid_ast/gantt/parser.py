from __future__ import annotations

import re

from ..diagnostics import DiagnosticCollector
from ..scanner import SourceLine
from ..types import Diagnostic
from .types import GanttAST, GanttSection, GanttTask, TaskTag

# ============================================================================
# Gantt chart parser
#
# Supported syntax:
#   title A Gantt Diagram        dateFormat YYYY-MM-DD
#   axisFormat %m/%d             excludes weekends, 2024-01-01
#   todayMarker off              weekday monday
#   section Planning
#   Research      :done, des1, 2024-01-06, 2024-01-08
#   Design        :active, des2, 2024-01-09, 3d
#   Review        :crit, after des1 des2, 2d
#   Launch        :milestone, 2024-02-01
#
# Task metadata after the tags:
#   3 parts -> id, start, end/duration
#   2 parts -> start, end/duration
#   1 part  -> end/duration
# ============================================================================

TASK_TAGS: tuple[TaskTag, ...] = ("done", "active", "crit", "milestone")

_KEYWORD_RE = re.compile(
    r"^(title|dateFormat|axisFormat|excludes|includes|section)\s+(.+)$", re.IGNORECASE
)
_SETTING_RE = re.compile(
    r"^(todayMarker|tickInterval|weekday|inclusiveEndDates|topAxis)(?:\s+(.+))?$", re.IGNORECASE
)
_TASK_RE = re.compile(r"^([^:]+?)\s*:\s*(.*)$")
_DURATION_RE = re.compile(r"^\d+(?:\.\d+)?(?:ms|[smhdwy])$")
_AFTER_RE = re.compile(r"^after\s+(.+)$")


def parse_gantt_chart(lines: list[SourceLine]) -> tuple[GanttAST, list[Diagnostic]]:
    """Parse a Mermaid gantt chart.

    Expects lines[0] to be the "gantt" header.
    """
    ast = GanttAST()
    diagnostics = DiagnosticCollector()
    sections: dict[str, GanttSection] = {}
    current: GanttSection | None = None

    for line in lines[1:]:
        text = line.text

        m = _KEYWORD_RE.match(text)
        if m:
            keyword = m.group(1).lower()
            value = m.group(2).strip()
            if keyword == "title":
                ast.title = value
            elif keyword == "dateformat":
                ast.date_format = value
            elif keyword == "axisformat":
                ast.axis_format = value
            elif keyword in ("excludes", "includes"):
                target = ast.excludes if keyword == "excludes" else ast.includes
                target.extend(p.strip() for p in value.split(",") if p.strip())
            else:
                current = sections.get(value)
                if current is None:
                    current = sections[value] = GanttSection(name=value)
            continue

        m = _SETTING_RE.match(text)
        if m:
            ast.settings[m.group(1)] = (m.group(2) or "").strip()
            continue

        m = _TASK_RE.match(text)
        if not m:
            diagnostics.error(
                f"Invalid task syntax: {text}",
                line.number,
                line.column,
                suggestions=["Expected: label : [tags,] [id,] [start,] end"],
            )
            continue

        task = _parse_task(m.group(1), m.group(2), line, diagnostics)
        if task is None:
            continue
        if current is None:
            # Tasks ahead of the first section land in an unnamed one
            current = sections.get("")
            if current is None:
                current = sections[""] = GanttSection(name="")
        current.tasks.append(task)

    ast.sections = list(sections.values())
    return ast, diagnostics.items


def _parse_task(
    label: str, metadata: str, line: SourceLine, diagnostics: DiagnosticCollector
) -> GanttTask | None:
    task = GanttTask(label=label.strip(), line=line.number)

    parts = [p.strip() for p in metadata.split(",")]
    while parts and parts[0] in TASK_TAGS:
        tag = parts.pop(0)
        if tag not in task.tags:
            task.tags.append(tag)  # type: ignore[arg-type]
    parts = [p for p in parts if p]

    if len(parts) > 3 or (not parts and "milestone" not in task.tags):
        diagnostics.error(
            f"Invalid task metadata for '{task.label}': {metadata}",
            line.number,
            line.column,
            suggestions=["Expected: [tags,] [id,] [start,] end"],
        )
        return None

    if len(parts) == 3:
        task.id = parts[0]
        start, end = parts[1], parts[2]
    elif len(parts) == 2:
        start, end = parts
    elif len(parts) == 1:
        start, end = None, parts[0]
    else:
        start, end = None, None

    if start is not None:
        after = _AFTER_RE.match(start)
        if after:
            task.after_ids = after.group(1).split()
        else:
            task.start = start

    if end is not None:
        after = _AFTER_RE.match(end)
        if after:
            task.after_ids = after.group(1).split()
        elif _DURATION_RE.match(end):
            task.duration = end
        else:
            task.end = end

    return task
