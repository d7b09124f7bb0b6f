"""Syntax domain: token stream, tree model, best-effort parser and tree walk."""

from plreview.syntax.lexer import Token, tokenize
from plreview.syntax.nodes import NodeKind, Position, SyntaxNode
from plreview.syntax.parser import parse
from plreview.syntax.walker import TreeListener, walk

__all__ = [
    "NodeKind",
    "Position",
    "SyntaxNode",
    "Token",
    "TreeListener",
    "parse",
    "tokenize",
    "walk",
]
