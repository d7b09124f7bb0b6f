"""Syntax tree model consumed by the review rules."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class NodeKind(enum.Enum):
    """Closed set of node kinds produced by the parser."""

    SCRIPT = "script"
    BLOCK = "block"
    ROUTINE_BODY = "routine_body"
    ROUTINE_NAME = "routine_name"
    PARAMETER = "parameter"
    VARIABLE_DECLARATION = "variable_declaration"
    CURSOR_DECLARATION = "cursor_declaration"
    SELECT_STATEMENT = "select_statement"
    SELECT_LIST = "select_list"
    SELECT_ELEMENT = "select_element"
    TABLE_REFERENCE = "table_reference"
    TABLE_NAME = "table_name"
    INSERT_STATEMENT = "insert_statement"
    UPDATE_STATEMENT = "update_statement"
    DELETE_STATEMENT = "delete_statement"

    # Leaf parts, never dispatched on their own.
    IDENTIFIER = "identifier"
    DIRECTION = "direction"
    TYPE_SPEC = "type_spec"
    DEFAULT_VALUE = "default_value"
    EXPRESSION = "expression"
    COLUMN_ALIAS = "column_alias"


@dataclass(frozen=True, order=True)
class Position:
    """Start of a source element: 1-based line, 0-based column."""

    line: int
    column: int


@dataclass
class SyntaxNode:
    """A typed node with its start position and source text."""

    kind: NodeKind
    start: Position
    text: str = ""
    children: list[SyntaxNode] = field(default_factory=list)
    attrs: dict[str, object] = field(default_factory=dict)

    @property
    def line(self) -> int:
        return self.start.line

    @property
    def column(self) -> int:
        return self.start.column

    def child(self, kind: NodeKind) -> SyntaxNode | None:
        """Return the first direct child of *kind*, or ``None``."""
        for node in self.children:
            if node.kind is kind:
                return node
        return None

    def iter_tree(self) -> Iterator[SyntaxNode]:
        """Yield this node and all descendants in document order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def flag(self, name: str) -> bool:
        return bool(self.attrs.get(name, False))
