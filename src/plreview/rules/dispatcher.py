"""Rule dispatcher: routes tree-walk events to the review rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from plreview.rules import alignment
from plreview.rules.alignment import CursorPlacementTracker, check_alignment
from plreview.rules.cursor_scope import CursorScopeAggregator, table_name_message
from plreview.rules.naming import check_routine_name
from plreview.rules.parameters import (
    ParameterDescriptor,
    ParameterOrderValidator,
    check_parameter_declaration,
)
from plreview.rules.select_checks import (
    ONE_PER_LINE_MESSAGE,
    WILDCARD_MESSAGE,
    builtin_names,
    check_select_element,
    first_shared_line,
    is_lowercase,
)
from plreview.syntax.nodes import NodeKind
from plreview.syntax.walker import walk

if TYPE_CHECKING:
    from collections.abc import Callable

    from plreview.issues import Issue
    from plreview.rules.alignment import AlignmentGroup
    from plreview.rules.context import AnalysisContext
    from plreview.syntax.nodes import SyntaxNode

logger = logging.getLogger(__name__)

_STATEMENT_NAMES: dict[NodeKind, str] = {
    NodeKind.INSERT_STATEMENT: "INSERT",
    NodeKind.UPDATE_STATEMENT: "UPDATE",
    NodeKind.DELETE_STATEMENT: "DELETE",
}


def statement_message(kind: NodeKind) -> str:
    return f"Direct {_STATEMENT_NAMES[kind]} statement found."


@dataclass
class _DeclarationFrame:
    """State for one declaration section (routine body or anonymous block)."""

    routine_name: str | None
    placement: CursorPlacementTracker
    validator: ParameterOrderValidator | None = None
    groups: dict[str, AlignmentGroup] = field(
        default_factory=lambda: {
            alignment.PARAMETERS: [],
            alignment.PARAMETER_DIRECTIONS: [],
            alignment.PARAMETER_TYPES: [],
            alignment.VARIABLES: [],
            alignment.VARIABLE_TYPES: [],
        }
    )


class RuleDispatcher:
    """Tree listener that applies every rule during a single walk.

    Owns the per-walk state: one frame per open declaration section, the
    active cursor scope, the column-line runs of open select lists and the
    lines of open table reference clauses.
    """

    def __init__(self, ctx: AnalysisContext) -> None:
        self.ctx = ctx
        self.builtins = builtin_names(ctx.config.extra_builtin_functions)
        self.frames: list[_DeclarationFrame] = []
        self.cursor_scopes = CursorScopeAggregator()
        self.column_runs: list[list[int]] = []
        self.reference_lines: list[int] = []

        self._on_enter: dict[NodeKind, Callable[[SyntaxNode], None]] = {
            NodeKind.ROUTINE_BODY: self._enter_routine_body,
            NodeKind.BLOCK: self._enter_block,
            NodeKind.ROUTINE_NAME: self._enter_routine_name,
            NodeKind.PARAMETER: self._enter_parameter,
            NodeKind.VARIABLE_DECLARATION: self._enter_variable,
            NodeKind.CURSOR_DECLARATION: self._enter_cursor,
            NodeKind.SELECT_LIST: self._enter_select_list,
            NodeKind.SELECT_ELEMENT: self._enter_select_element,
            NodeKind.TABLE_REFERENCE: self._enter_table_reference,
            NodeKind.TABLE_NAME: self._enter_table_name,
            NodeKind.INSERT_STATEMENT: self._enter_statement,
            NodeKind.UPDATE_STATEMENT: self._enter_statement,
            NodeKind.DELETE_STATEMENT: self._enter_statement,
        }
        self._on_exit: dict[NodeKind, Callable[[SyntaxNode], None]] = {
            NodeKind.ROUTINE_BODY: self._exit_routine_body,
            NodeKind.BLOCK: self._exit_block,
            NodeKind.CURSOR_DECLARATION: self._exit_cursor,
            NodeKind.SELECT_LIST: self._exit_select_list,
            NodeKind.TABLE_REFERENCE: self._exit_table_reference,
        }

    # -- listener interface -------------------------------------------------

    def enter(self, node: SyntaxNode) -> None:
        handler = self._on_enter.get(node.kind)
        if handler is not None:
            handler(node)

    def exit(self, node: SyntaxNode) -> None:
        handler = self._on_exit.get(node.kind)
        if handler is not None:
            handler(node)

    # -- routing ------------------------------------------------------------

    def _emit_scoped(self, line: int, message: str) -> None:
        """Buffer into the active cursor scope, or report immediately outside one."""
        if self.cursor_scopes.is_active:
            self.cursor_scopes.buffer(line, message)
        else:
            self.ctx.report(line, message)

    def _new_placement(self) -> CursorPlacementTracker:
        return CursorPlacementTracker(self.ctx.config.rowtype_suffix)

    # -- routines and declarations -----------------------------------------

    def _enter_routine_body(self, node: SyntaxNode) -> None:
        config = self.ctx.config
        logger.debug("Entering %s %s at line %d", node.attrs.get("routine"), node.text, node.line)
        validator = ParameterOrderValidator(
            exempt=node.text in config.exempt_routines,
            exempt_parameter=config.exempt_parameter,
        )
        self.frames.append(
            _DeclarationFrame(
                routine_name=node.text, placement=self._new_placement(), validator=validator
            )
        )

    def _exit_routine_body(self, node: SyntaxNode) -> None:
        frame = self.frames.pop()
        groups = frame.groups
        check_alignment(self.ctx, alignment.PARAMETERS, groups[alignment.PARAMETERS])
        check_alignment(
            self.ctx, alignment.PARAMETER_DIRECTIONS, groups[alignment.PARAMETER_DIRECTIONS]
        )
        check_alignment(self.ctx, alignment.PARAMETER_TYPES, groups[alignment.PARAMETER_TYPES])
        if groups[alignment.VARIABLES]:
            check_alignment(self.ctx, alignment.VARIABLES, groups[alignment.VARIABLES])
            check_alignment(self.ctx, alignment.VARIABLE_TYPES, groups[alignment.VARIABLE_TYPES])

    def _enter_block(self, node: SyntaxNode) -> None:
        self.frames.append(_DeclarationFrame(routine_name=None, placement=self._new_placement()))

    def _exit_block(self, node: SyntaxNode) -> None:
        self.frames.pop()

    def _enter_routine_name(self, node: SyntaxNode) -> None:
        routine = str(node.attrs.get("routine", "procedure"))
        check_routine_name(self.ctx, routine, node.text, node.line)

    def _enter_parameter(self, node: SyntaxNode) -> None:
        param = ParameterDescriptor.from_node(node)
        check_parameter_declaration(self.ctx, param)
        if not self.frames:
            return
        frame = self.frames[-1]
        if frame.validator is not None:
            frame.validator.check(self.ctx, param)
        frame.groups[alignment.PARAMETERS].append(param.position)
        if param.direction_position is not None:
            frame.groups[alignment.PARAMETER_DIRECTIONS].append(param.direction_position)
        if param.type_position is not None:
            frame.groups[alignment.PARAMETER_TYPES].append(param.type_position)

    def _enter_variable(self, node: SyntaxNode) -> None:
        if not self.frames:
            return
        frame = self.frames[-1]
        type_spec = node.child(NodeKind.TYPE_SPEC)
        if frame.routine_name is not None:
            frame.groups[alignment.VARIABLES].append(node.start)
            if type_spec is not None:
                frame.groups[alignment.VARIABLE_TYPES].append(type_spec.start)
        type_text = type_spec.text if type_spec is not None else ""
        frame.placement.check_variable(self.ctx, type_text, node.line)

    # -- cursor scope -------------------------------------------------------

    def _enter_cursor(self, node: SyntaxNode) -> None:
        if self.frames:
            self.frames[-1].placement.declare_cursor(node.text)
        self.cursor_scopes.enter(node.text, node.line)

    def _exit_cursor(self, node: SyntaxNode) -> None:
        self.cursor_scopes.exit(self.ctx)

    # -- queries ------------------------------------------------------------

    def _enter_select_list(self, node: SyntaxNode) -> None:
        self.column_runs.append([])

    def _enter_select_element(self, node: SyntaxNode) -> None:
        for line, message in check_select_element(node, self.builtins):
            self._emit_scoped(line, message)
        if not node.flag("wildcard") and self.column_runs:
            self.column_runs[-1].append(node.line)

    def _exit_select_list(self, node: SyntaxNode) -> None:
        run = self.column_runs.pop() if self.column_runs else []
        if node.flag("wildcard"):
            self._emit_scoped(node.line, WILDCARD_MESSAGE)
            return
        shared = first_shared_line(run)
        if shared is not None:
            self._emit_scoped(shared, ONE_PER_LINE_MESSAGE)

    def _enter_table_reference(self, node: SyntaxNode) -> None:
        self.reference_lines.append(node.line)

    def _exit_table_reference(self, node: SyntaxNode) -> None:
        self.reference_lines.pop()

    def _enter_table_name(self, node: SyntaxNode) -> None:
        line = self.reference_lines[-1] if self.reference_lines else node.line
        if self.cursor_scopes.is_active:
            self.cursor_scopes.add_table_reference(node.text, line)
        elif not is_lowercase(node.text):
            self.ctx.report(line, table_name_message(node.text))

    def _enter_statement(self, node: SyntaxNode) -> None:
        self.ctx.report(node.line, statement_message(node.kind))


def run_rules(tree: SyntaxNode, ctx: AnalysisContext) -> list[Issue]:
    """Walk *tree* once with a fresh dispatcher and return the issues it reported."""
    before = len(ctx.sink)
    walk(tree, RuleDispatcher(ctx))
    return ctx.issues[before:]
