"""Routine parameter rules: direction, naming suffix, and declaration order."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from plreview.syntax.nodes import NodeKind, Position

if TYPE_CHECKING:
    from collections.abc import Iterable

    from plreview.rules.context import AnalysisContext
    from plreview.syntax.nodes import SyntaxNode


class Direction(enum.Enum):
    NONE = "none"
    IN = "IN"
    OUT = "OUT"
    IN_OUT = "IN OUT"

    @classmethod
    def from_text(cls, text: str | None) -> Direction:
        if not text:
            return cls.NONE
        normalized = " ".join(text.upper().split())
        for member in cls:
            if member.value == normalized:
                return member
        return cls.NONE


@dataclass(frozen=True)
class ParameterDescriptor:
    """One declared routine parameter."""

    name: str
    direction: Direction
    has_default: bool
    position: Position
    type_position: Position | None = None
    direction_position: Position | None = None

    @property
    def line(self) -> int:
        return self.position.line

    @classmethod
    def from_node(cls, node: SyntaxNode) -> ParameterDescriptor:
        """Build a descriptor from a PARAMETER node."""
        identifier = node.child(NodeKind.IDENTIFIER)
        direction = node.child(NodeKind.DIRECTION)
        type_spec = node.child(NodeKind.TYPE_SPEC)
        return cls(
            name=identifier.text if identifier is not None else node.text,
            direction=Direction.from_text(direction.text if direction is not None else None),
            has_default=node.child(NodeKind.DEFAULT_VALUE) is not None,
            position=node.start,
            type_position=type_spec.start if type_spec is not None else None,
            direction_position=direction.start if direction is not None else None,
        )


# ---------------------------------------------------------------------------
# Per-parameter checks
# ---------------------------------------------------------------------------


def check_parameter_declaration(ctx: AnalysisContext, param: ParameterDescriptor) -> None:
    """Direction must be explicit and the name must carry the configured suffix."""
    if param.direction is Direction.NONE:
        ctx.report(param.line, f"{param.name}: Parameter direction was not specified.")
    suffix = ctx.config.parameter_suffix
    if not param.name.endswith(suffix):
        ctx.report(param.line, f"{param.name}: Parameter does not end with an underscore")


# ---------------------------------------------------------------------------
# Order validation
# ---------------------------------------------------------------------------


class ParameterOrderValidator:
    """Checks that parameters never step back to an earlier stage.

    Stages, in the order they must appear: OUT, IN OUT, IN without a
    default, IN with a default. The validator is fed one routine's
    parameters in declaration order and reports each regression once.
    """

    def __init__(self, *, exempt: bool = False, exempt_parameter: str = "") -> None:
        self.exempt = exempt
        self.exempt_parameter = exempt_parameter
        self.seen_in_out = False
        self.seen_in = False
        self.seen_in_default = False

    def check(self, ctx: AnalysisContext, param: ParameterDescriptor) -> None:
        if self.exempt:
            return

        if param.direction is Direction.OUT:
            if self.seen_in_out or self.seen_in or self.seen_in_default:
                ctx.report(param.line, f"{param.name}: OUT parameter found after other types")
        elif param.direction is Direction.IN_OUT:
            self.seen_in_out = True
            if self.seen_in or self.seen_in_default:
                ctx.report(param.line, f"{param.name}: IN OUT parameter found after other types")
        elif param.direction is Direction.IN and param.name != self.exempt_parameter:
            if param.has_default:
                self.seen_in_default = True
            else:
                if self.seen_in_default:
                    ctx.report(
                        param.line, f"{param.name}: IN parameter found after IN with default"
                    )
                self.seen_in = True


def validate_parameters(
    ctx: AnalysisContext, routine_name: str, params: Iterable[ParameterDescriptor]
) -> None:
    """Run every parameter rule over one routine's parameters in order."""
    validator = ParameterOrderValidator(
        exempt=routine_name in ctx.config.exempt_routines,
        exempt_parameter=ctx.config.exempt_parameter,
    )
    for param in params:
        check_parameter_declaration(ctx, param)
        validator.check(ctx, param)
