"""Best-effort PL/SQL parser producing the tree the review rules walk.

The parser is deliberately forgiving: it recognises routines, declarations,
cursors, SELECT statements and DML heads, and treats everything else as noise
it steps over. It never raises on malformed input; the worst outcome is a
tree with fewer nodes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from plreview.syntax.lexer import NUMBER, STRING, WORD, Token, tokenize
from plreview.syntax.nodes import NodeKind, Position, SyntaxNode

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Keyword sets
# ---------------------------------------------------------------------------

# Words after END that close a construct other than BEGIN/CASE.
_END_COMPANIONS: frozenset[str] = frozenset({"IF", "LOOP", "WHILE", "FOR"})

# A DML or SELECT keyword preceded by one of these is not a statement head
# (FOR UPDATE, trigger events, grants, collection methods).
_NOT_SELECT_AFTER: frozenset[str] = frozenset({"GRANT", "REVOKE", ",", "."})
_NOT_STATEMENT_AFTER: frozenset[str] = _NOT_SELECT_AFTER | frozenset(
    {"FOR", "OF", "BEFORE", "AFTER", "OR", "ON", "INSTEAD"}
)

# Words that cannot name a cursor (REF CURSOR types, cursor expressions).
_NOT_CURSOR_NAME: frozenset[str] = frozenset({"RETURN", "IS", "FOR"})

_DML_KINDS: dict[str, NodeKind] = {
    "INSERT": NodeKind.INSERT_STATEMENT,
    "UPDATE": NodeKind.UPDATE_STATEMENT,
    "DELETE": NodeKind.DELETE_STATEMENT,
}

_FROM_END_WORDS: frozenset[str] = frozenset(
    {
        "WHERE", "GROUP", "ORDER", "HAVING", "CONNECT", "START", "UNION", "INTERSECT",
        "MINUS", "FOR", "INTO", "LOOP", "RETURNING", "FETCH", "OFFSET", "MODEL", "WINDOW",
    }
)

_JOIN_WORDS: frozenset[str] = frozenset({"JOIN", "APPLY"})

# Words that end an operand rather than start one; a trailing word after them
# is part of the expression, not a column alias.
_OPERATOR_WORDS: frozenset[str] = frozenset(
    {
        "AND", "OR", "NOT", "IS", "IN", "LIKE", "BETWEEN", "THEN", "ELSE", "WHEN",
        "CASE", "PRIOR", "DISTINCT", "AS", "ESCAPE",
    }
)

_NOT_ALIAS: frozenset[str] = frozenset({"END", "NULL"}) | _OPERATOR_WORDS


def _position(tok: Token) -> Position:
    return Position(tok.line, tok.column)


def _compact(tokens: Sequence[Token]) -> str:
    return "".join(tok.text for tok in tokens)


def _is_stop(tok: Token, stop_puncts: Sequence[str], stop_words: Sequence[str]) -> bool:
    """Return True if *tok* is one of the given stop tokens; empty sets never match."""
    return bool(stop_puncts and tok.is_punct(*stop_puncts)) or bool(
        stop_words and tok.is_word(*stop_words)
    )


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, source: str) -> None:
        self._source = source
        self._tokens = tokenize(source)
        self._pos = 0

    # -- token helpers ------------------------------------------------------

    @property
    def _eof(self) -> bool:
        return self._pos >= len(self._tokens)

    def _peek(self, ahead: int = 0) -> Token | None:
        index = self._pos + ahead
        if index < len(self._tokens):
            return self._tokens[index]
        return None

    def _previous(self) -> Token | None:
        if self._pos == 0:
            return None
        return self._tokens[self._pos - 1]

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def _at_word(self, *values: str) -> bool:
        tok = self._peek()
        return tok is not None and tok.is_word(*values)

    def _at_punct(self, *values: str) -> bool:
        tok = self._peek()
        return tok is not None and tok.is_punct(*values)

    def _slice(self, first: Token, last: Token) -> str:
        return self._source[first.offset : last.end]

    def _skip_statement(self) -> None:
        """Step over tokens up to and including the next top-level ``;``."""
        depth = 0
        while not self._eof:
            tok = self._advance()
            if tok.is_punct("("):
                depth += 1
            elif tok.is_punct(")"):
                depth = max(depth - 1, 0)
            elif tok.is_punct(";") and depth == 0:
                return

    def _skip_parens(self) -> None:
        depth = 0
        while not self._eof:
            tok = self._advance()
            if tok.is_punct("("):
                depth += 1
            elif tok.is_punct(")"):
                depth -= 1
                if depth <= 0:
                    return

    def _is_statement_head(self, excluded: frozenset[str] = _NOT_STATEMENT_AFTER) -> bool:
        prev = self._previous()
        return prev is None or prev.upper not in excluded

    def _at_cursor_declaration(self) -> bool:
        tok = self._peek()
        nxt = self._peek(1)
        prev = self._previous()
        if tok is None or not tok.is_word("CURSOR") or nxt is None or nxt.kind != WORD:
            return False
        return nxt.upper not in _NOT_CURSOR_NAME and (prev is None or not prev.is_word("REF"))

    # -- entry point --------------------------------------------------------

    def parse(self) -> SyntaxNode:
        root = SyntaxNode(NodeKind.SCRIPT, Position(1, 0))
        self._parse_statements(root, nested=False)
        return root

    # -- statements ---------------------------------------------------------

    def _parse_statements(self, parent: SyntaxNode, *, nested: bool) -> None:
        """Scan statements into *parent*; when *nested*, stop after the matching END."""
        depth = 0
        while not self._eof:
            tok = self._peek()
            assert tok is not None
            nxt = self._peek(1)

            if tok.is_word("END"):
                if nxt is not None and nxt.is_word(*_END_COMPANIONS):
                    self._advance()
                    self._advance()
                    continue
                if depth > 0:
                    depth -= 1
                    self._advance()
                    if self._at_word("CASE"):
                        self._advance()
                    continue
                self._advance()
                if nested:
                    self._finish_end()
                    return
                continue

            if tok.is_word("CASE"):
                depth += 1
                self._advance()
            elif tok.is_word("BEGIN"):
                self._advance()
                block = SyntaxNode(NodeKind.BLOCK, _position(tok))
                self._parse_statements(block, nested=True)
                parent.children.append(block)
            elif tok.is_word("DECLARE"):
                self._advance()
                block = SyntaxNode(NodeKind.BLOCK, _position(tok))
                self._parse_declarations(block)
                if self._at_word("BEGIN"):
                    self._advance()
                    self._parse_statements(block, nested=True)
                parent.children.append(block)
            elif tok.is_word("PROCEDURE", "FUNCTION"):
                node = self._parse_routine()
                if node is not None:
                    parent.children.append(node)
            elif self._at_cursor_declaration():
                parent.children.append(self._parse_cursor())
            elif tok.is_word("SELECT") and self._is_statement_head(_NOT_SELECT_AFTER):
                parent.children.append(self._parse_select())
            elif tok.upper in _DML_KINDS and tok.kind == WORD and self._is_statement_head():
                self._advance()
                parent.children.append(
                    SyntaxNode(_DML_KINDS[tok.upper], _position(tok), text=tok.upper)
                )
            else:
                self._advance()

    def _finish_end(self) -> None:
        """Consume the optional label and ``;`` after a block-closing END."""
        tok = self._peek()
        nxt = self._peek(1)
        if tok is not None and tok.kind == WORD and nxt is not None and nxt.is_punct(";"):
            self._advance()
        if self._at_punct(";"):
            self._advance()

    # -- routines -----------------------------------------------------------

    def _parse_routine(self) -> SyntaxNode | None:
        keyword = self._advance()
        routine = keyword.upper.lower()
        if not self._at_word():
            return None

        name_tokens = [self._advance()]
        while self._at_punct(".") and (nxt := self._peek(1)) is not None and nxt.kind == WORD:
            name_tokens.append(self._advance())
            name_tokens.append(self._advance())
        name = _compact(name_tokens)
        name_node = SyntaxNode(
            NodeKind.ROUTINE_NAME, _position(name_tokens[0]), text=name, attrs={"routine": routine}
        )

        parameters = self._parse_parameter_list() if self._at_punct("(") else []

        # RETURN clause and modifiers up to IS/AS (body) or ';' (forward declaration).
        depth = 0
        while not self._eof:
            tok = self._peek()
            assert tok is not None
            if depth == 0 and (tok.is_word("IS", "AS") or tok.is_punct(";")):
                break
            if depth == 0 and tok.is_word("BEGIN", "END", "PROCEDURE", "FUNCTION"):
                break
            if tok.is_punct("("):
                depth += 1
            elif tok.is_punct(")"):
                depth = max(depth - 1, 0)
            self._advance()

        if not self._at_word("IS", "AS"):
            if self._at_punct(";"):
                self._advance()
            return name_node

        self._advance()
        if self._at_word("LANGUAGE", "EXTERNAL"):
            self._skip_statement()
            return name_node

        body = SyntaxNode(
            NodeKind.ROUTINE_BODY,
            _position(keyword),
            text=name,
            children=[name_node, *parameters],
            attrs={"routine": routine},
        )
        self._parse_declarations(body)
        if self._at_word("BEGIN"):
            self._advance()
            self._parse_statements(body, nested=True)
        elif self._at_word("END"):
            self._advance()
            self._finish_end()
        return body

    def _parse_parameter_list(self) -> list[SyntaxNode]:
        self._advance()  # (
        parameters: list[SyntaxNode] = []
        while not self._eof and not self._at_punct(")"):
            if self._at_word():
                parameters.append(self._parse_parameter())
            else:
                self._collect_until(stop_puncts=(",", ")"))
            if self._at_punct(","):
                self._advance()
            elif not self._at_punct(")"):
                break
        if self._at_punct(")"):
            self._advance()
        return parameters

    def _parse_parameter(self) -> SyntaxNode:
        name_tok = self._advance()
        node = SyntaxNode(NodeKind.PARAMETER, _position(name_tok), text=name_tok.text)
        node.children.append(
            SyntaxNode(NodeKind.IDENTIFIER, _position(name_tok), text=name_tok.text)
        )

        direction: list[Token] = []
        if self._at_word("IN"):
            direction.append(self._advance())
            if self._at_word("OUT"):
                direction.append(self._advance())
        elif self._at_word("OUT"):
            direction.append(self._advance())
        if direction:
            node.children.append(
                SyntaxNode(
                    NodeKind.DIRECTION,
                    _position(direction[0]),
                    text=" ".join(tok.upper for tok in direction),
                )
            )
        if self._at_word("NOCOPY"):
            self._advance()

        type_tokens = self._collect_until(stop_puncts=(",", ")", ":="), stop_words=("DEFAULT",))
        if type_tokens:
            node.children.append(
                SyntaxNode(NodeKind.TYPE_SPEC, _position(type_tokens[0]), text=_compact(type_tokens))
            )

        if self._at_punct(":=") or self._at_word("DEFAULT"):
            default_tok = self._advance()
            value = self._collect_until(stop_puncts=(",", ")"))
            text = self._slice(value[0], value[-1]) if value else ""
            node.children.append(
                SyntaxNode(NodeKind.DEFAULT_VALUE, _position(default_tok), text=text)
            )
        return node

    def _collect_until(
        self, *, stop_puncts: Sequence[str] = (), stop_words: Sequence[str] = ()
    ) -> list[Token]:
        """Collect tokens up to a top-level stop token (not consumed)."""
        collected: list[Token] = []
        depth = 0
        while not self._eof:
            tok = self._peek()
            assert tok is not None
            if depth == 0 and _is_stop(tok, stop_puncts, stop_words):
                break
            if tok.is_punct(";") or tok.is_word("BEGIN"):
                break
            if tok.is_punct("("):
                depth += 1
            elif tok.is_punct(")"):
                if depth == 0:
                    break
                depth -= 1
            collected.append(self._advance())
        return collected

    # -- declarations -------------------------------------------------------

    def _parse_declarations(self, owner: SyntaxNode) -> None:
        while not self._eof:
            tok = self._peek()
            assert tok is not None
            nxt = self._peek(1)
            if tok.is_word("BEGIN", "END"):
                return
            if tok.is_word("PROCEDURE", "FUNCTION"):
                node = self._parse_routine()
                if node is not None:
                    owner.children.append(node)
            elif self._at_cursor_declaration():
                owner.children.append(self._parse_cursor())
            elif tok.is_word("TYPE", "SUBTYPE", "PRAGMA"):
                self._skip_statement()
            elif tok.kind == WORD:
                if nxt is not None and nxt.is_word("EXCEPTION"):
                    self._skip_statement()
                else:
                    owner.children.append(self._parse_variable())
            else:
                self._advance()

    def _parse_variable(self) -> SyntaxNode:
        name_tok = self._advance()
        node = SyntaxNode(NodeKind.VARIABLE_DECLARATION, _position(name_tok), text=name_tok.text)
        node.children.append(
            SyntaxNode(NodeKind.IDENTIFIER, _position(name_tok), text=name_tok.text)
        )
        if self._at_word("CONSTANT"):
            self._advance()

        type_tokens = self._collect_until(stop_puncts=(":=",), stop_words=("DEFAULT", "NOT", "END"))
        if type_tokens:
            node.children.append(
                SyntaxNode(NodeKind.TYPE_SPEC, _position(type_tokens[0]), text=_compact(type_tokens))
            )
        if self._at_word("NOT"):
            self._advance()
            if self._at_word("NULL"):
                self._advance()
        if self._at_punct(":=") or self._at_word("DEFAULT"):
            default_tok = self._advance()
            value = self._collect_until(stop_words=("END",))
            text = self._slice(value[0], value[-1]) if value else ""
            node.children.append(
                SyntaxNode(NodeKind.DEFAULT_VALUE, _position(default_tok), text=text)
            )
        if self._at_punct(";"):
            self._advance()
        return node

    def _parse_cursor(self) -> SyntaxNode:
        cursor_tok = self._advance()
        name_tok = self._advance()
        node = SyntaxNode(NodeKind.CURSOR_DECLARATION, _position(cursor_tok), text=name_tok.text)
        node.children.append(
            SyntaxNode(NodeKind.IDENTIFIER, _position(name_tok), text=name_tok.text)
        )
        if self._at_punct("("):
            self._skip_parens()

        while not self._eof and not self._at_punct(";"):
            if self._at_word("BEGIN", "END"):
                return node
            if self._at_word("SELECT"):
                node.children.append(self._parse_select())
            else:
                self._advance()
        if self._at_punct(";"):
            self._advance()
        return node

    # -- queries ------------------------------------------------------------

    def _parse_select(self) -> SyntaxNode:
        select_tok = self._advance()
        stmt = SyntaxNode(NodeKind.SELECT_STATEMENT, _position(select_tok), text="SELECT")
        while self._at_word("DISTINCT", "UNIQUE", "ALL"):
            self._advance()

        stmt.children.append(self._parse_select_list(select_tok))

        if self._at_word("INTO"):
            self._advance()
            self._collect_expression(stop_words=("FROM",))
        if self._at_word("FROM"):
            self._advance()
            self._parse_from_items(stmt)
        self._parse_select_tail(stmt)
        return stmt

    def _parse_select_list(self, select_tok: Token) -> SyntaxNode:
        first = self._peek() or select_tok
        select_list = SyntaxNode(NodeKind.SELECT_LIST, _position(first))
        if self._at_punct("*"):
            self._advance()
            select_list.attrs["wildcard"] = True
            select_list.text = "*"
            return select_list

        while not self._eof:
            tokens, nested = self._collect_expression(stop_puncts=(",",), stop_words=("INTO", "FROM"))
            if tokens:
                select_list.children.append(self._make_select_element(tokens, nested))
            if not self._at_punct(","):
                break
            self._advance()
        if select_list.children:
            select_list.text = self._slice(first, self._previous() or first)
        return select_list

    def _make_select_element(self, tokens: list[Token], nested: list[SyntaxNode]) -> SyntaxNode:
        element = SyntaxNode(
            NodeKind.SELECT_ELEMENT, _position(tokens[0]), text=self._slice(tokens[0], tokens[-1])
        )
        if len(tokens) >= 2 and tokens[-1].is_punct("*") and tokens[-2].is_punct("."):
            element.attrs["wildcard"] = True
            return element

        expression = tokens
        alias: Token | None = None
        last = tokens[-1]
        if len(tokens) >= 3 and tokens[-2].is_word("AS") and last.kind in (WORD, STRING):
            alias = last
            expression = tokens[:-2]
        elif len(tokens) >= 2 and last.kind == WORD and last.upper not in _NOT_ALIAS:
            before = tokens[-2]
            ends_operand = before.is_punct(")") or before.kind in (NUMBER, STRING) or (
                before.kind == WORD and before.upper not in _OPERATOR_WORDS
            )
            if ends_operand:
                alias = last
                expression = tokens[:-1]

        element.children.append(
            SyntaxNode(
                NodeKind.EXPRESSION,
                _position(expression[0]),
                text=self._slice(expression[0], expression[-1]),
            )
        )
        if alias is not None:
            element.children.append(
                SyntaxNode(NodeKind.COLUMN_ALIAS, _position(alias), text=alias.text)
            )
        element.children.extend(nested)
        return element

    def _collect_expression(
        self, *, stop_puncts: Sequence[str] = (), stop_words: Sequence[str] = ()
    ) -> tuple[list[Token], list[SyntaxNode]]:
        """Collect one expression, parsing parenthesised subqueries on the way."""
        collected: list[Token] = []
        nested: list[SyntaxNode] = []
        depth = 0
        case_depth = 0
        while not self._eof:
            tok = self._peek()
            assert tok is not None
            if depth == 0 and case_depth == 0 and _is_stop(tok, stop_puncts, stop_words):
                break
            if tok.is_punct(";") or (tok.is_word("END") and case_depth == 0):
                break
            if tok.is_punct(")"):
                if depth == 0:
                    break
                depth -= 1
            elif tok.is_punct("("):
                depth += 1
                collected.append(self._advance())
                if self._at_word("SELECT"):
                    nested.append(self._parse_select())
                continue
            elif tok.is_word("CASE"):
                case_depth += 1
            elif tok.is_word("END"):
                case_depth -= 1
            collected.append(self._advance())
        return collected, nested

    def _parse_from_items(self, stmt: SyntaxNode) -> None:
        while not self._eof:
            first = self._peek()
            assert first is not None
            if first.is_punct(";", ")") or first.is_word("END", *_FROM_END_WORDS):
                return
            reference = SyntaxNode(NodeKind.TABLE_REFERENCE, _position(first))
            self._parse_table_item(reference)
            last = self._previous()
            if last is not None and last.offset >= first.offset:
                reference.text = self._slice(first, last)
            stmt.children.append(reference)
            if not self._at_punct(","):
                return
            self._advance()

    def _parse_table_item(self, reference: SyntaxNode) -> None:
        expect_table = True
        depth = 0
        while not self._eof:
            tok = self._peek()
            assert tok is not None
            if tok.is_punct(";") or tok.is_word("END"):
                return
            if tok.is_punct(")"):
                if depth == 0:
                    return
                depth -= 1
                self._advance()
                continue
            if depth == 0 and (tok.is_punct(",") or tok.is_word(*_FROM_END_WORDS)):
                return

            if tok.is_punct("("):
                self._advance()
                depth += 1
                if self._at_word("SELECT"):
                    reference.children.append(self._parse_select())
                    expect_table = False
                continue
            if expect_table and tok.kind == WORD and not tok.is_word("TABLE", "LATERAL", "ONLY"):
                expect_table = False
                name_tokens = [self._advance()]
                while self._at_punct(".", "@") and (nxt := self._peek(1)) is not None and nxt.kind == WORD:
                    name_tokens.append(self._advance())
                    name_tokens.append(self._advance())
                reference.children.append(
                    SyntaxNode(
                        NodeKind.TABLE_NAME, _position(name_tokens[0]), text=_compact(name_tokens)
                    )
                )
                continue
            if tok.is_word(*_JOIN_WORDS):
                expect_table = True
            else:
                expect_table = False
            self._advance()

    def _parse_select_tail(self, stmt: SyntaxNode) -> None:
        depth = 0
        case_depth = 0
        while not self._eof:
            tok = self._peek()
            assert tok is not None
            if tok.is_punct(";"):
                return
            if tok.is_punct(")"):
                if depth == 0:
                    return
                depth -= 1
                self._advance()
                continue
            if tok.is_word("END"):
                if case_depth == 0:
                    return
                case_depth -= 1
            elif tok.is_word("CASE"):
                case_depth += 1
            elif tok.is_punct("("):
                self._advance()
                depth += 1
                if self._at_word("SELECT"):
                    stmt.children.append(self._parse_select())
                continue
            elif depth == 0 and tok.is_word("UNION", "INTERSECT", "MINUS"):
                self._advance()
                if self._at_word("ALL"):
                    self._advance()
                if self._at_word("SELECT"):
                    stmt.children.append(self._parse_select())
                continue
            elif depth == 0 and tok.is_word("LOOP", "BEGIN"):
                return
            self._advance()


def parse(source: str) -> SyntaxNode:
    """Parse PL/SQL *source* into a :class:`SyntaxNode` tree rooted at SCRIPT."""
    tree = _Parser(source).parse()
    logger.debug("Parsed %d top-level nodes", len(tree.children))
    return tree
