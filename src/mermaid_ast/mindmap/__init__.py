from __future__ import annotations

from .types import MindmapAST, MindmapNode, MindmapShape
from .parser import SHAPES, parse_mindmap

__all__ = ["MindmapAST", "MindmapNode", "MindmapShape", "SHAPES", "parse_mindmap"]
