"""Analyzer orchestrator: read a source file, run the rules, format results."""

from __future__ import annotations

import io
import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from plreview.config import ReviewConfig
from plreview.issues import LINE_BREAK, issue_to_payload
from plreview.rules.context import AnalysisContext
from plreview.rules.dispatcher import run_rules
from plreview.syntax import NodeKind, parse

if TYPE_CHECKING:
    from pathlib import Path

    from plreview.issues import Issue
    from plreview.syntax import SyntaxNode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AnalysisError(Exception):
    """Raised when a source file cannot be read for analysis."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class AnalysisResult:
    """Result of analysing one source file."""

    file_path: str
    issues: list[Issue] = field(default_factory=list)
    routines: int = 0
    elapsed_ms: float = 0.0


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _count_routines(tree: SyntaxNode) -> int:
    return sum(1 for node in tree.iter_tree() if node.kind is NodeKind.ROUTINE_BODY)


def analyze_source(
    text: str,
    *,
    file_path: str,
    commit_id: str = "",
    config: ReviewConfig | None = None,
) -> list[Issue]:
    """Parse *text* and return the issues found, in detection order."""
    ctx = AnalysisContext(
        file_path=file_path, commit_id=commit_id, config=config or ReviewConfig()
    )
    return run_rules(parse(text), ctx)


def analyze_file(
    path: Path,
    *,
    commit_id: str = "",
    config: ReviewConfig | None = None,
    display_path: str | None = None,
) -> AnalysisResult:
    """Analyse the source file at *path*.

    Parameters
    ----------
    path:
        File to read (UTF-8, undecodable bytes replaced).
    commit_id:
        Commit the issues are attached to.
    config:
        Review settings; defaults apply when *None*.
    display_path:
        Path recorded on every issue.  Defaults to ``str(path)``.

    Raises
    ------
    AnalysisError
        If the file is missing or cannot be read.
    """
    start = time.monotonic()
    file_path = display_path if display_path is not None else str(path)

    if not path.is_file():
        msg = f"Source file not found: {path}"
        raise AnalysisError(msg)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        msg = f"Cannot read source file {path}: {exc}"
        raise AnalysisError(msg) from exc

    tree = parse(text)
    ctx = AnalysisContext(
        file_path=file_path, commit_id=commit_id, config=config or ReviewConfig()
    )
    issues = run_rules(tree, ctx)
    elapsed = (time.monotonic() - start) * 1000
    logger.info("Analysed %s: %d issue(s) in %.1f ms", file_path, len(issues), elapsed)

    return AnalysisResult(
        file_path=file_path,
        issues=issues,
        routines=_count_routines(tree),
        elapsed_ms=elapsed,
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_rich(result: AnalysisResult, *, width: int = 120) -> str:
    """Render a result as a table of issues followed by a summary line.

    Consolidated cursor findings are shown one entry per row line.
    """
    from rich.console import Console
    from rich.table import Table

    buffer = io.StringIO()
    console = Console(file=buffer, width=width, highlight=False, markup=False)
    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"

    console.print(f"{result.file_path}: {result.routines} routines")
    if not result.issues:
        console.print(f"✓ No issues found ({elapsed_str})")
        return buffer.getvalue().rstrip("\n")

    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("line", style="cyan", justify="right")
    table.add_column("issue")
    for issue in result.issues:
        table.add_row(str(issue.line), "\n".join(issue.message.split(LINE_BREAK)))
    console.print(table)
    console.print(f"{len(result.issues)} issues found ({elapsed_str})")
    return buffer.getvalue().rstrip("\n")


def format_json(result: AnalysisResult) -> str:
    """Format a result as JSON with the comment payloads and a summary."""
    output: dict[str, object] = {
        "issues": [issue_to_payload(issue) for issue in result.issues],
        "summary": {
            "file_path": result.file_path,
            "routines": result.routines,
            "issues_count": len(result.issues),
            "elapsed_ms": result.elapsed_ms,
        },
    }
    return json.dumps(output, indent=2)


def format_porcelain(result: AnalysisResult) -> str:
    """Format a result as ``file_path:line:message``, one issue per line.

    Consolidated bodies keep their literal line-break sequence so each issue
    stays on one line. Returns an empty string when there are no issues.
    """
    return "\n".join(
        f"{issue.file_path}:{issue.line}:{issue.message}" for issue in result.issues
    )
