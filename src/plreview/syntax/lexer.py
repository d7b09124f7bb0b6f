"""Token stream for PL/SQL sources, built on the sqlparse lexer."""

from __future__ import annotations

import re
from dataclasses import dataclass

from sqlparse import tokens as T
from sqlparse.lexer import tokenize as sql_tokenize

WORD = "word"
STRING = "string"
NUMBER = "number"
PUNCT = "punct"

_WORD_PIECE_RE = re.compile(r"\S+")
_WORD_START = frozenset("_$:@#`[\"")
_PUNCT_TYPES = (T.Punctuation, T.Operator, T.Assignment, T.Wildcard)


@dataclass(frozen=True)
class Token:
    """A significant token with its position in the source."""

    kind: str  # "word" | "string" | "number" | "punct"
    text: str
    line: int  # 1-based
    column: int  # 0-based
    offset: int  # index into the source text

    @property
    def upper(self) -> str:
        return self.text.upper()

    @property
    def end(self) -> int:
        return self.offset + len(self.text)

    def is_word(self, *values: str) -> bool:
        """Return True for a word token, optionally one of *values* (case-insensitive)."""
        if self.kind != WORD:
            return False
        return not values or self.upper in values

    def is_punct(self, *values: str) -> bool:
        if self.kind != PUNCT:
            return False
        return not values or self.text in values


def _classify(ttype: object, value: str) -> str:
    if ttype in T.String.Single:
        return STRING
    if ttype in T.Number:
        return NUMBER
    if ttype in T.String.Symbol:
        return WORD
    if any(ttype in group for group in _PUNCT_TYPES):
        return PUNCT
    if value[0].isalnum() or value[0] in _WORD_START:
        return WORD
    return PUNCT


def tokenize(source: str) -> list[Token]:
    """Return the significant tokens of *source* in document order.

    Whitespace and comments are dropped. Keywords the sqlparse lexer merges
    across whitespace (``END IF``, ``ORDER BY``, ``LEFT OUTER JOIN``) are
    split back into one token per word so the parser sees uniform input.
    """
    result: list[Token] = []
    line = 1
    line_start = 0
    offset = 0

    for ttype, value in sql_tokenize(source):
        if not value:
            continue
        significant = not (ttype in T.Whitespace or ttype in T.Comment)
        if significant:
            kind = _classify(ttype, value)
            if kind == WORD and ttype in T.Keyword and _WORD_PIECE_RE.fullmatch(value) is None:
                result.extend(_split_words(source, value, offset, line, line_start))
            else:
                result.append(Token(kind, value, line, offset - line_start, offset))

        newlines = value.count("\n")
        if newlines:
            line += newlines
            line_start = offset + value.rindex("\n") + 1
        offset += len(value)

    return result


def _split_words(
    source: str, value: str, offset: int, line: int, line_start: int
) -> list[Token]:
    pieces: list[Token] = []
    for match in _WORD_PIECE_RE.finditer(value):
        start = offset + match.start()
        consumed = source[offset:start]
        newlines = consumed.count("\n")
        piece_line = line + newlines
        piece_line_start = line_start
        if newlines:
            piece_line_start = offset + consumed.rindex("\n") + 1
        pieces.append(Token(WORD, match.group(), piece_line, start - piece_line_start, start))
    return pieces
