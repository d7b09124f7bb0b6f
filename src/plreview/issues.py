"""Review issues: the in-memory sink and the JSON issue file."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

# Separator between entries of a consolidated issue body: a literal
# backslash-n pair, rendered as a line break once published.
LINE_BREAK = "\\n"

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Issue:
    """A single positioned review finding."""

    message: str
    file_path: str
    line: int  # 1-based source line
    commit_id: str


class IssueSink:
    """Append-only, ordered collection of issues in detection order."""

    def __init__(self) -> None:
        self._issues: list[Issue] = []

    def add(self, issue: Issue) -> None:
        self._issues.append(issue)

    @property
    def issues(self) -> list[Issue]:
        return list(self._issues)

    def __iter__(self) -> Iterator[Issue]:
        return iter(list(self._issues))

    def __len__(self) -> int:
        return len(self._issues)


@dataclass(frozen=True)
class IssueFileRead:
    """Outcome of reading an issue file back: payloads, or the reason it failed."""

    payloads: list[dict[str, object]] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def issue_to_payload(issue: Issue) -> dict[str, object]:
    """Convert an issue into a review-comment payload.

    :data:`LINE_BREAK` separators become real line breaks in the body.
    """
    return {
        "body": issue.message.replace(LINE_BREAK, "\n"),
        "path": issue.file_path,
        "position": issue.line,
        "commit_id": issue.commit_id,
    }


def payload_to_issue(payload: dict[str, object]) -> Issue:
    """Inverse of :func:`issue_to_payload`.

    Every line break in the body is read back as :data:`LINE_BREAK`, so a
    message that held a real newline comes back with the literal separator
    instead. Messages produced by the rules never contain real newlines.

    Raises
    ------
    ValueError
        If a required key is missing or has the wrong type.
    """
    body = payload.get("body")
    path = payload.get("path")
    position = payload.get("position")
    commit_id = payload.get("commit_id")
    if not isinstance(body, str) or not isinstance(path, str) or not isinstance(commit_id, str):
        msg = f"Malformed issue payload: {payload!r}"
        raise ValueError(msg)
    if not isinstance(position, int) or isinstance(position, bool):
        msg = f"Issue payload position must be an integer: {position!r}"
        raise ValueError(msg)
    return Issue(
        message=body.replace("\n", LINE_BREAK),
        file_path=path,
        line=position,
        commit_id=commit_id,
    )


def issues_to_json(issues: Iterable[Issue]) -> str:
    """Serialize issues as a JSON array of review-comment payloads.

    Backslashes in paths and bodies are escaped by the JSON encoder; the
    consolidated-body line break is emitted as a JSON newline escape.
    """
    return json.dumps([issue_to_payload(issue) for issue in issues], indent=2)


def issues_from_json(text: str) -> list[Issue]:
    """Parse a JSON array written by :func:`issues_to_json`."""
    data = json.loads(text)
    if not isinstance(data, list):
        msg = "Issue file must contain a JSON array"
        raise ValueError(msg)
    return [payload_to_issue(item) for item in data]


# ---------------------------------------------------------------------------
# Issue file
# ---------------------------------------------------------------------------


def write_issue_file(issues: Iterable[Issue], path: Path) -> int:
    """Write *issues* to *path* and return how many were written."""
    materialized = list(issues)
    path.write_text(issues_to_json(materialized), encoding="utf-8")
    logger.info("Wrote %d issue(s) to %s", len(materialized), path)
    return len(materialized)


def read_issue_file(path: Path) -> IssueFileRead:
    """Read the payloads of an issue file without raising.

    A missing or unreadable file, invalid JSON, or a document that is not a
    list of objects yields an :class:`IssueFileRead` whose ``error`` explains
    why; callers decide what a failed read means.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        return IssueFileRead(error=f"cannot read {path}: {exc}")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return IssueFileRead(error=f"invalid JSON in {path}: {exc}")

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        return IssueFileRead(error=f"{path} does not contain a list of issue objects")

    return IssueFileRead(payloads=data)
