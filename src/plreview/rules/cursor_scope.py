"""Cursor-scope aggregation: one consolidated issue per cursor declaration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from plreview.issues import LINE_BREAK

if TYPE_CHECKING:
    from plreview.issues import Issue
    from plreview.rules.context import AnalysisContext

logger = logging.getLogger(__name__)

CURSOR_HEADER = "Cursor declaration review findings:"


@dataclass(frozen=True)
class TableReference:
    """A table named in a FROM clause, at the line of its reference clause."""

    name: str
    line: int


def table_name_message(name: str) -> str:
    return f"{name}: table name should be in lowercase"


def cursor_name_message(name: str) -> str:
    return f"{name}: cursor name should be in lowercase"


@dataclass
class CursorScope:
    """Findings buffered while one cursor declaration is being traversed."""

    name: str
    line: int
    buffered_issues: list[tuple[int, str]] = field(default_factory=list)
    table_references: list[TableReference] = field(default_factory=list)

    def buffer(self, line: int, message: str) -> None:
        self.buffered_issues.append((line, message))

    def add_table_reference(self, name: str, line: int) -> None:
        self.table_references.append(TableReference(name, line))


def format_entries(entries: list[tuple[int, str]]) -> str:
    return LINE_BREAK.join(f"Line No: {line} :- {message}" for line, message in entries)


class CursorScopeAggregator:
    """Holds the single active cursor scope and flushes it on exit.

    Entering a cursor while another scope is active replaces that scope;
    scopes do not nest.
    """

    def __init__(self) -> None:
        self.active: CursorScope | None = None

    @property
    def is_active(self) -> bool:
        return self.active is not None

    def enter(self, name: str, line: int) -> CursorScope:
        if self.active is not None:
            logger.debug("Cursor %s replaces active scope %s", name, self.active.name)
        self.active = CursorScope(name=name, line=line)
        return self.active

    def buffer(self, line: int, message: str) -> None:
        if self.active is None:
            msg = "No active cursor scope to buffer into"
            raise RuntimeError(msg)
        self.active.buffer(line, message)

    def add_table_reference(self, name: str, line: int) -> None:
        if self.active is None:
            msg = "No active cursor scope to record a table reference in"
            raise RuntimeError(msg)
        self.active.add_table_reference(name, line)

    def exit(self, ctx: AnalysisContext) -> Issue | None:
        """Validate and flush the active scope; return the consolidated issue, if any."""
        scope = self.active
        if scope is None:
            return None

        if scope.name != scope.name.lower():
            scope.buffer(scope.line, cursor_name_message(scope.name))
        for reference in scope.table_references:
            if reference.name != reference.name.lower():
                scope.buffer(reference.line, table_name_message(reference.name))

        body = format_entries(scope.buffered_issues)
        issue = None
        if body:
            issue = ctx.report(scope.line, f"{CURSOR_HEADER}{LINE_BREAK}{body}")

        scope.buffered_issues.clear()
        scope.table_references.clear()
        self.active = None
        return issue
