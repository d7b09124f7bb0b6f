"""Per-file analysis context threaded through every rule call."""

from __future__ import annotations

from dataclasses import dataclass, field

from plreview.config import ReviewConfig
from plreview.issues import Issue, IssueSink


@dataclass
class AnalysisContext:
    """Owns the issue sink and the identity of the file under review.

    One context is created per analysed file and discarded once its issues
    have been serialized.
    """

    file_path: str
    commit_id: str = ""
    config: ReviewConfig = field(default_factory=ReviewConfig)
    sink: IssueSink = field(default_factory=IssueSink)

    def report(self, line: int, message: str) -> Issue:
        """Record an issue at *line* and return it."""
        issue = Issue(message=message, file_path=self.file_path, line=line, commit_id=self.commit_id)
        self.sink.add(issue)
        return issue

    @property
    def issues(self) -> list[Issue]:
        return self.sink.issues
