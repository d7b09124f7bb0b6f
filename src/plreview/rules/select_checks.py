"""Per-row SELECT checks: wildcards, built-in casing, aliases, one column per line."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from plreview.syntax.nodes import NodeKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from plreview.syntax.nodes import SyntaxNode

WILDCARD_MESSAGE = "SELECT * is not allowed, specify the required columns."
ONE_PER_LINE_MESSAGE = "SELECT columns should be one per line."

# Call-like identifiers not preceded by a dot (package members are not built-ins).
_CALL_RE = re.compile(r"(?<!\.)\b(\w+)\s*\(")

BUILTIN_FUNCTIONS: frozenset[str] = frozenset(
    {
        # Numeric
        "ABS", "ACOS", "ASIN", "ATAN", "ATAN2", "BITAND", "CEIL", "COS", "COSH", "EXP",
        "FLOOR", "LN", "LOG", "MOD", "NANVL", "POWER", "REMAINDER", "ROUND", "SIGN", "SIN",
        "SINH", "SQRT", "TAN", "TANH", "TRUNC", "WIDTH_BUCKET",
        # Character
        "ASCII", "CHR", "CONCAT", "INITCAP", "INSTR", "INSTRB", "LENGTH", "LENGTHB", "LOWER",
        "LPAD", "LTRIM", "NLS_INITCAP", "NLS_LOWER", "NLS_UPPER", "REGEXP_COUNT",
        "REGEXP_INSTR", "REGEXP_LIKE", "REGEXP_REPLACE", "REGEXP_SUBSTR", "REPLACE", "RPAD",
        "RTRIM", "SOUNDEX", "SUBSTR", "SUBSTRB", "TRANSLATE", "TRIM", "UPPER",
        # Date and time
        "ADD_MONTHS", "CURRENT_DATE", "CURRENT_TIMESTAMP", "EXTRACT", "FROM_TZ", "LAST_DAY",
        "LOCALTIMESTAMP", "MONTHS_BETWEEN", "NEW_TIME", "NEXT_DAY", "NUMTODSINTERVAL",
        "NUMTOYMINTERVAL", "SYS_EXTRACT_UTC", "TO_DSINTERVAL", "TO_YMINTERVAL",
        # Conversion
        "ASCIISTR", "BIN_TO_NUM", "CAST", "CHARTOROWID", "CONVERT", "HEXTORAW", "RAWTOHEX",
        "ROWIDTOCHAR", "TO_BLOB", "TO_CHAR", "TO_CLOB", "TO_DATE", "TO_MULTI_BYTE",
        "TO_NCHAR", "TO_NUMBER", "TO_SINGLE_BYTE", "TO_TIMESTAMP", "TO_TIMESTAMP_TZ",
        "UNISTR",
        # Aggregate and analytic
        "AVG", "COLLECT", "CORR", "COUNT", "COVAR_POP", "COVAR_SAMP", "CUME_DIST",
        "DENSE_RANK", "FIRST_VALUE", "LAG", "LAST_VALUE", "LEAD", "LISTAGG", "MAX", "MEDIAN",
        "MIN", "NTILE", "PERCENT_RANK", "PERCENTILE_CONT", "PERCENTILE_DISC", "RANK",
        "RATIO_TO_REPORT", "ROW_NUMBER", "STDDEV", "SUM", "VARIANCE", "XMLAGG",
        # General comparison and null handling
        "COALESCE", "DECODE", "DUMP", "GREATEST", "LEAST", "LNNVL", "NULLIF", "NVL", "NVL2",
        "ORA_HASH", "STANDARD_HASH", "SYS_CONTEXT", "SYS_GUID", "USERENV", "VSIZE",
        # XML and JSON
        "JSON_ARRAY", "JSON_OBJECT", "JSON_QUERY", "JSON_VALUE", "XMLELEMENT", "XMLFOREST",
        "EXISTSNODE", "EXTRACTVALUE",
    }
)


def builtin_names(extra: Iterable[str] = ()) -> frozenset[str]:
    """Return the built-in function names with *extra* names added (uppercased)."""
    return BUILTIN_FUNCTIONS | {name.upper() for name in extra}


def builtin_casing_violations(expression: str, builtins: frozenset[str]) -> list[str]:
    """Return call names in *expression* that are built-ins written in the wrong case."""
    violations: list[str] = []
    for match in _CALL_RE.finditer(expression):
        name = match.group(1)
        if name.upper() in builtins and name != name.upper():
            violations.append(name)
    return violations


def is_lowercase(name: str) -> bool:
    return name == name.lower()


def first_shared_line(lines: Sequence[int]) -> int | None:
    """Return the line of the first entry that shares its line with the previous one."""
    for previous, current in zip(lines, lines[1:]):
        if current == previous:
            return current
    return None


def check_select_element(element: SyntaxNode, builtins: frozenset[str]) -> list[tuple[int, str]]:
    """Return ``(line, message)`` findings for one SELECT_ELEMENT node."""
    line = element.line
    if element.flag("wildcard"):
        return [(line, WILDCARD_MESSAGE)]

    findings: list[tuple[int, str]] = []
    expression = element.child(NodeKind.EXPRESSION)
    if expression is not None:
        for name in builtin_casing_violations(expression.text, builtins):
            findings.append((line, f"{name}: built-in function should be in uppercase"))

    alias = element.child(NodeKind.COLUMN_ALIAS)
    if alias is not None and not is_lowercase(alias.text):
        findings.append((line, f"{alias.text}: column alias should be in lowercase"))
    return findings
