from __future__ import annotations

import re

from ..diagnostics import DiagnosticCollector
from ..scanner import SourceLine
from ..types import Diagnostic
from .types import PieAST, PieSlice

# ============================================================================
# Pie chart parser
#
# Supported syntax:
#   pie showData
#   pie title Pets adopted by volunteers
#   title Key elements
#   "Dogs" : 386
#   "Cats" : 85.5
# ============================================================================

_HEADER_RE = re.compile(r"^pie(?P<show>\s+showData)?(?:\s+title\s+(?P<title>.+))?$", re.IGNORECASE)
_TITLE_RE = re.compile(r"^title\s+(.+)$", re.IGNORECASE)
_SLICE_RE = re.compile(r'^"([^"]+)"\s*:\s*(\S+)$')


def parse_pie_chart(lines: list[SourceLine]) -> tuple[PieAST, list[Diagnostic]]:
    """Parse a Mermaid pie chart.

    Expects lines[0] to be the "pie" header.
    """
    ast = PieAST()
    diagnostics = DiagnosticCollector()

    header = _HEADER_RE.match(lines[0].text)
    if header:
        ast.show_data = header.group("show") is not None
        if header.group("title"):
            ast.title = header.group("title").strip()
    else:
        diagnostics.warning(
            f"Ignoring unexpected text in header: {lines[0].text}", lines[0].number, lines[0].column
        )

    for line in lines[1:]:
        text = line.text

        if text.lower() == "showdata":
            ast.show_data = True
            continue

        m = _TITLE_RE.match(text)
        if m:
            ast.title = m.group(1).strip()
            continue

        m = _SLICE_RE.match(text)
        if m:
            value = _slice_value(m.group(2))
            if value is None:
                diagnostics.error(
                    f"Slice value must be a non-negative number, got '{m.group(2)}'",
                    line.number,
                    line.column,
                )
                continue
            ast.slices.append(PieSlice(label=m.group(1), value=value, line=line.number))
            continue

        diagnostics.warning(f"Skipping unrecognized line: {text}", line.number, line.column)

    return ast, diagnostics.items


def _slice_value(raw: str) -> float | None:
    if not re.fullmatch(r"\d+(?:\.\d+)?", raw):
        return None
    return float(raw)
