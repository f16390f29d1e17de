from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml

from .diagnostics import DiagnosticCollector

# ============================================================================
# Line scanner
#
# Splits raw diagram text into logical lines shared by every dialect parser:
#   - blank lines and "%%" comment / "%%{init}%%" directive lines are dropped
#   - leading/trailing whitespace is stripped, indentation width is kept
#     (tabs count as TAB_WIDTH columns) for indentation-sensitive dialects
#   - a leading YAML front-matter block ("---" ... "---") is skipped
#   - optionally, ";" separates statements on one physical line
# ============================================================================

TAB_WIDTH = 2
FRONT_MATTER_FENCE = "---"


@dataclass(slots=True, frozen=True)
class SourceLine:
    # 1-based physical line number
    number: int
    # Statement text, whitespace-stripped
    text: str
    # Indentation width in columns
    indent: int
    # 1-based column of the first character of `text`
    column: int


def scan_lines(source: str, *, split_statements: bool = False) -> list[SourceLine]:
    raw_lines = source.splitlines()
    _, body_start = _front_matter_bounds(raw_lines)

    lines: list[SourceLine] = []
    for idx in range(body_start, len(raw_lines)):
        raw = raw_lines[idx]
        stripped = raw.strip()
        if not stripped or stripped.startswith("%%"):
            continue

        indent = _indent_width(raw)
        if not split_statements or ";" not in stripped:
            column = len(raw) - len(raw.lstrip()) + 1
            lines.append(SourceLine(idx + 1, stripped, indent, column))
            continue

        pos = 0
        for piece in raw.split(";"):
            text = piece.strip()
            if text and not text.startswith("%%"):
                column = pos + len(piece) - len(piece.lstrip()) + 1
                lines.append(SourceLine(idx + 1, text, indent, column))
            pos += len(piece) + 1

    return lines


def first_significant_line(source: str) -> SourceLine | None:
    """The first non-blank, non-comment line after any front matter."""
    lines = scan_lines(source)
    return lines[0] if lines else None


def read_front_matter(source: str, diagnostics: DiagnosticCollector) -> dict[str, Any]:
    """Parse the YAML front-matter block, if the text starts with one.

    Malformed YAML or a non-mapping document is reported as a warning and
    yields an empty dict.
    """
    raw_lines = source.splitlines()
    bounds, _ = _front_matter_bounds(raw_lines)
    if bounds is None:
        return {}

    open_idx, close_idx = bounds
    text = "\n".join(raw_lines[open_idx + 1 : close_idx])
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = open_idx + 2 + (mark.line if mark is not None else 0)
        diagnostics.warning(f"Invalid front matter: {_yaml_problem(exc)}", line)
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        diagnostics.warning(
            "Front matter must be a mapping; ignoring it", open_idx + 1
        )
        return {}
    return data


def _front_matter_bounds(
    raw_lines: list[str],
) -> tuple[tuple[int, int] | None, int]:
    """Locate the front-matter fences.

    Returns ((open_idx, close_idx) | None, index of the first body line).
    An opening fence without a closing one is not front matter.
    """
    open_idx = None
    for idx, raw in enumerate(raw_lines):
        if raw.strip():
            if raw.strip() == FRONT_MATTER_FENCE:
                open_idx = idx
            break
    if open_idx is None:
        return None, 0

    for idx in range(open_idx + 1, len(raw_lines)):
        if raw_lines[idx].strip() == FRONT_MATTER_FENCE:
            return (open_idx, idx), idx + 1
    return None, 0


def _indent_width(raw: str) -> int:
    width = 0
    for ch in raw:
        if ch == " ":
            width += 1
        elif ch == "\t":
            width += TAB_WIDTH
        else:
            break
    return width


def _yaml_problem(exc: yaml.YAMLError) -> str:
    problem = getattr(exc, "problem", None)
    if problem:
        return problem
    first, *_ = str(exc).splitlines() or ["malformed YAML"]
    return first
