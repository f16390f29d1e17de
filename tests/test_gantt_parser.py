"""Tests for the gantt chart parser.

Covers: header keywords, sections, task tags, the three metadata layouts,
`after` dependencies, durations and recovery diagnostics.
"""

from __future__ import annotations

import pytest

from mermaid_ast import GanttAST, parse


def parse_gantt(text: str):
    result = parse(text)
    assert isinstance(result.ast, GanttAST)
    return result.ast, result.diagnostics


# ============================================================================
# Header keywords and sections
# ============================================================================


class TestChartSettings:
    def test_keywords(self):
        g, diagnostics = parse_gantt(
            "gantt\n"
            "  title A Gantt Diagram\n"
            "  dateFormat YYYY-MM-DD\n"
            "  axisFormat %m/%d\n"
            "  excludes weekends, 2024-01-01\n"
            "  todayMarker off"
        )
        assert diagnostics == []
        assert g.title == "A Gantt Diagram"
        assert g.date_format == "YYYY-MM-DD"
        assert g.axis_format == "%m/%d"
        assert g.excludes == ["weekends", "2024-01-01"]
        assert g.settings == {"todayMarker": "off"}

    def test_flag_setting_without_value(self):
        g, _ = parse_gantt("gantt\n  inclusiveEndDates")
        assert g.settings == {"inclusiveEndDates": ""}

    def test_sections_group_tasks(self):
        g, _ = parse_gantt(
            "gantt\n"
            "  section Planning\n"
            "  Research : 2024-01-06, 2024-01-08\n"
            "  section Build\n"
            "  Code : 5d\n"
            "  Test : 2d"
        )
        assert [s.name for s in g.sections] == ["Planning", "Build"]
        assert [len(s.tasks) for s in g.sections] == [1, 2]
        assert [t.label for t in g.tasks] == ["Research", "Code", "Test"]

    def test_tasks_before_any_section(self):
        g, _ = parse_gantt("gantt\n  Kickoff : 1d\n  section Later\n  Wrap : 1d")
        assert [s.name for s in g.sections] == ["", "Later"]

    def test_repeated_section_name_reuses_section(self):
        g, _ = parse_gantt("gantt\n  section A\n  x : 1d\n  section B\n  y : 1d\n  section A\n  z : 1d")
        assert [s.name for s in g.sections] == ["A", "B"]
        assert [t.label for t in g.sections[0].tasks] == ["x", "z"]


# ============================================================================
# Tasks
# ============================================================================


class TestTasks:
    def test_id_start_and_end(self):
        g, _ = parse_gantt("gantt\n  Research :done, des1, 2024-01-06, 2024-01-08")
        task = g.tasks[0]
        assert task.tags == ["done"]
        assert task.id == "des1"
        assert (task.start, task.end, task.duration) == ("2024-01-06", "2024-01-08", None)

    def test_start_and_duration(self):
        g, _ = parse_gantt("gantt\n  Design :active, 2024-01-09, 3d")
        task = g.tasks[0]
        assert task.id is None
        assert (task.start, task.duration, task.end) == ("2024-01-09", "3d", None)

    def test_duration_only(self):
        g, _ = parse_gantt("gantt\n  Polish : 12h")
        task = g.tasks[0]
        assert task.tags == []
        assert (task.start, task.duration) == (None, "12h")

    def test_after_dependencies(self):
        g, _ = parse_gantt("gantt\n  Review :crit, after des1 des2, 2d")
        task = g.tasks[0]
        assert task.tags == ["crit"]
        assert task.after_ids == ["des1", "des2"]
        assert task.start is None
        assert task.duration == "2d"

    def test_multiple_tags(self):
        g, _ = parse_gantt("gantt\n  Hotfix :crit, active, done, crit, 1d")
        assert g.tasks[0].tags == ["crit", "active", "done"]

    def test_milestone_without_dates(self):
        g, diagnostics = parse_gantt("gantt\n  Launch :milestone")
        assert g.tasks[0].tags == ["milestone"]
        assert diagnostics == []

    def test_milestone_with_date(self):
        g, _ = parse_gantt("gantt\n  Launch :milestone, m1, 2024-02-01, 0d")
        task = g.tasks[0]
        assert (task.id, task.start, task.duration) == ("m1", "2024-02-01", "0d")

    @pytest.mark.parametrize("metadata", ["", "done", "a, b, c, d"])
    def test_invalid_metadata_is_an_error(self, metadata):
        g, diagnostics = parse_gantt(f"gantt\n  Broken :{metadata}\n  Fine : 1d")
        assert [t.label for t in g.tasks] == ["Fine"]
        assert [d.severity for d in diagnostics] == ["error"]
        assert "Invalid task metadata" in diagnostics[0].message

    def test_line_without_colon_is_an_error(self):
        g, diagnostics = parse_gantt("gantt\n  just words\n  Fine : 1d")
        assert len(g.tasks) == 1
        assert diagnostics[0].severity == "error"
        assert diagnostics[0].span.line == 2
