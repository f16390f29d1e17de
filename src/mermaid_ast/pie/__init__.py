from __future__ import annotations

from .types import PieAST, PieSlice
from .parser import parse_pie_chart

__all__ = ["PieAST", "PieSlice", "parse_pie_chart"]
