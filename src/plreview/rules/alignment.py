"""Declaration layout rules: vertical alignment and variable/cursor placement."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from plreview.rules.context import AnalysisContext
    from plreview.syntax.nodes import Position

# Alignment group categories, in the order they are checked.
PARAMETERS = "Parameters"
PARAMETER_DIRECTIONS = "Parameters Directions"
PARAMETER_TYPES = "Parameters Data Types"
VARIABLES = "Variables"
VARIABLE_TYPES = "Variable Data Types"

AlignmentGroup = list["Position"]


def find_misalignment(group: Sequence[Position]) -> Position | None:
    """Return the first element whose column differs from the first one."""
    if not group:
        return None
    expected = group[0].column
    for element in group[1:]:
        if element.column != expected:
            return element
    return None


def check_alignment(ctx: AnalysisContext, category: str, group: Sequence[Position]) -> bool:
    """Report the first misaligned element of *group*; return True when aligned."""
    misaligned = find_misalignment(group)
    if misaligned is None:
        return True
    ctx.report(misaligned.line, f"{category} are not vertically aligned")
    return False


class CursorPlacementTracker:
    """Flags plain variables declared after a cursor in the same declaration section.

    A variable declared after a cursor is accepted only when its type is the
    row type of every cursor declared so far. After one report the check is
    disarmed until the next cursor declaration.
    """

    def __init__(self, rowtype_suffix: str = "%ROWTYPE") -> None:
        self.rowtype_suffix = rowtype_suffix
        self.cursor_names: list[str] = []
        self.armed = False

    def declare_cursor(self, name: str) -> None:
        self.cursor_names.append(name)
        self.armed = True

    def check_variable(self, ctx: AnalysisContext, type_text: str, line: int) -> bool:
        """Return False (after reporting) when the variable is out of place."""
        if not self.armed:
            return True
        compact_type = "".join(type_text.split()).upper()
        for cursor_name in self.cursor_names:
            if (cursor_name + self.rowtype_suffix).upper() not in compact_type:
                ctx.report(line, "Normal variable declarations should be before the cursor declarations.")
                self.armed = False
                return False
        return True
