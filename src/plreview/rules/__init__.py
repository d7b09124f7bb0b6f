"""Review rules domain: naming, parameters, layout, cursor scopes and queries."""

from plreview.rules.alignment import CursorPlacementTracker, check_alignment, find_misalignment
from plreview.rules.context import AnalysisContext
from plreview.rules.cursor_scope import CursorScope, CursorScopeAggregator
from plreview.rules.dispatcher import RuleDispatcher, run_rules
from plreview.rules.naming import check_routine_name, classify_identifier
from plreview.rules.parameters import (
    Direction,
    ParameterDescriptor,
    ParameterOrderValidator,
    validate_parameters,
)

__all__ = [
    "AnalysisContext",
    "CursorPlacementTracker",
    "CursorScope",
    "CursorScopeAggregator",
    "Direction",
    "ParameterDescriptor",
    "ParameterOrderValidator",
    "RuleDispatcher",
    "check_alignment",
    "check_routine_name",
    "classify_identifier",
    "find_misalignment",
    "run_rules",
    "validate_parameters",
]
