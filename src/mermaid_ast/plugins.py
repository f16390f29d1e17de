from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

logger = logging.getLogger(__name__)

# ============================================================================
# Plugin registry
#
# Extra dialects are contributed as capability records: a `detect` predicate
# over the first significant line and a `parse` function over the full text.
# Registries are append-only and consulted in registration order, so the
# first plugin whose detector matches wins.
# ============================================================================


@dataclass(slots=True)
class DiagramPlugin:
    # Diagram kind reported for matches, e.g. "timeline"
    type: str
    # detect(first_line) -> bool; first_line is whitespace-stripped
    detect: Callable[[str], bool]
    # parse(source) -> ParseResult, or a {"ast": ..., "diagnostics": [...]} dict
    parse: Callable[[str], Any]


@dataclass(slots=True)
class Plugin:
    name: str
    diagrams: list[DiagramPlugin] = field(default_factory=list)


class PluginRegistry:
    def __init__(self) -> None:
        self._plugins: list[Plugin] = []

    def register(self, plugin: Plugin) -> None:
        """Append a plugin. Earlier registrations keep precedence."""
        for diagram in plugin.diagrams:
            if not callable(diagram.detect) or not callable(diagram.parse):
                raise TypeError(
                    f"Plugin {plugin.name!r}: diagram {diagram.type!r} needs callable detect and parse"
                )
        self._plugins.append(plugin)
        logger.debug(
            "Registered plugin %r (%s)",
            plugin.name,
            ", ".join(d.type for d in plugin.diagrams) or "no diagrams",
        )

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def diagrams(self) -> Iterator[tuple[Plugin, DiagramPlugin]]:
        for plugin in self._plugins:
            for diagram in plugin.diagrams:
                yield plugin, diagram

    def detect(self, first_line: str) -> tuple[Plugin, DiagramPlugin] | None:
        """Return the first registered diagram whose detector accepts the line.

        A detector that raises is logged and treated as a non-match.
        """
        for plugin, diagram in self.diagrams():
            try:
                matched = diagram.detect(first_line)
            except Exception:
                logger.exception(
                    "Detector of plugin %r (%s) failed", plugin.name, diagram.type
                )
                continue
            if matched:
                return plugin, diagram
        return None

    def __len__(self) -> int:
        return len(self._plugins)

    def __iter__(self) -> Iterator[Plugin]:
        return iter(list(self._plugins))


# Process-wide registry: starts empty, only grows through `use()`
_default_registry = PluginRegistry()


def use(plugin: Plugin) -> None:
    """Register a plugin with the process-wide registry."""
    _default_registry.register(plugin)


def get_registry() -> PluginRegistry:
    return _default_registry
