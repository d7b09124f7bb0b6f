"""Routine naming convention: leading capital, underscore-separated segments."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plreview.rules.context import AnalysisContext

# Longest underscore run accepted while scanning.
MAX_UNDERSCORE_RUN = 3
# Longest underscore run accepted in front of a following segment.
MAX_SEPARATOR_RUN = 1


def classify_identifier(name: str | None) -> bool:
    """Return True if *name* follows the routine naming convention.

    ``Update_Common`` and ``Get_Order2`` pass; lowercase starts, capitals
    inside a segment, and separators of more than one underscore fail.
    Trailing runs of up to three underscores are accepted (``Update___``).

    Two limits apply to underscore runs: a run is rejected as soon as it
    grows past :data:`MAX_UNDERSCORE_RUN`, and again when a segment follows a
    run longer than :data:`MAX_SEPARATOR_RUN`. The second limit is the
    stricter one, so ``A__B`` fails even though its run is within the first.
    """
    if not name:
        return False
    if not name[0].isupper():
        return False

    run = 0
    after_run = False
    for char in name[1:]:
        if not char.isalnum() and char != "_":
            return False

        if char == "_":
            after_run = True
            run += 1
            if run > MAX_UNDERSCORE_RUN:
                return False
            continue

        if after_run:
            if run > MAX_SEPARATOR_RUN:
                return False
            run = 0
            after_run = False
            if not char.isupper():
                return False
        else:
            if char.isupper():
                return False
            if not char.islower() and not char.isdigit():
                return False
    return True


def check_routine_name(ctx: AnalysisContext, routine: str, name: str, line: int) -> bool:
    """Report a routine whose name breaks the convention; return True when valid."""
    if classify_identifier(name):
        return True
    ctx.report(line, f"{routine.capitalize()} name {name} does not follow the naming guidelines")
    return False
