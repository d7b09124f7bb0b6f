"""Depth-first traversal driving enter/exit callbacks in document order."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from plreview.syntax.nodes import SyntaxNode


class TreeListener(Protocol):
    """Receives node entry and exit events during a walk."""

    def enter(self, node: SyntaxNode) -> None: ...

    def exit(self, node: SyntaxNode) -> None: ...


def walk(tree: SyntaxNode, listener: TreeListener) -> None:
    """Walk *tree* depth-first, calling ``enter`` before and ``exit`` after children.

    The walk is iterative so deeply nested sources cannot exhaust the
    interpreter stack.
    """
    stack: list[tuple[SyntaxNode, bool]] = [(tree, False)]
    while stack:
        node, visited = stack.pop()
        if visited:
            listener.exit(node)
            continue
        listener.enter(node)
        stack.append((node, True))
        for child in reversed(node.children):
            stack.append((child, False))
