from __future__ import annotations

from .types import Diagnostic, Severity, Span

# ============================================================================
# Diagnostics collector
#
# Append-only log of recoverable parse problems. Every dialect parser owns
# one for the duration of a single call and hands its items back in the
# ParseResult. Recording a diagnostic never interrupts parsing.
# ============================================================================


class DiagnosticCollector:
    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def add(
        self,
        severity: Severity,
        message: str,
        line: int,
        column: int | None = None,
        suggestions: list[str] | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            severity=severity,
            message=message,
            span=Span(line=line, column=column),
            suggestions=list(suggestions or []),
        )
        self._items.append(diagnostic)
        return diagnostic

    def error(
        self,
        message: str,
        line: int,
        column: int | None = None,
        suggestions: list[str] | None = None,
    ) -> Diagnostic:
        return self.add("error", message, line, column, suggestions)

    def warning(
        self,
        message: str,
        line: int,
        column: int | None = None,
        suggestions: list[str] | None = None,
    ) -> Diagnostic:
        return self.add("warning", message, line, column, suggestions)

    def extend(self, diagnostics: list[Diagnostic]) -> None:
        self._items.extend(diagnostics)

    @property
    def items(self) -> list[Diagnostic]:
        """A copy of everything recorded so far, in recording order."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))
