"""Tests for plreview.rules.naming: routine naming convention."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from plreview.rules.naming import check_routine_name, classify_identifier

if TYPE_CHECKING:
    from plreview.rules.context import AnalysisContext


class TestClassifyIdentifier:
    @pytest.mark.parametrize(
        "name",
        ["Update_Common", "Get_Order2", "Check", "Update___", "Check_Common___", "A1_B2"],
    )
    def test_valid_names(self, name: str) -> None:
        assert classify_identifier(name) is True

    def test_lowercase_first_char(self) -> None:
        assert classify_identifier("update_Common") is False

    def test_long_underscore_run(self) -> None:
        assert classify_identifier("A____B") is False

    def test_double_separator_fails_stricter_limit(self) -> None:
        # Within the run limit of three, but a following segment only accepts one.
        assert classify_identifier("A__B") is False

    def test_uppercase_inside_segment(self) -> None:
        assert classify_identifier("ABc") is False

    def test_lowercase_after_separator(self) -> None:
        assert classify_identifier("Get_order") is False

    def test_digit_after_separator(self) -> None:
        assert classify_identifier("Get_Order_2") is False

    def test_empty_and_none(self) -> None:
        assert classify_identifier("") is False
        assert classify_identifier(None) is False

    def test_non_word_character(self) -> None:
        assert classify_identifier("Get$Order") is False


class TestCheckRoutineName:
    def test_valid_name_reports_nothing(self, ctx: AnalysisContext) -> None:
        assert check_routine_name(ctx, "procedure", "Get_Order", 4) is True
        assert ctx.issues == []

    def test_procedure_wording(self, ctx: AnalysisContext) -> None:
        assert check_routine_name(ctx, "procedure", "get_order", 7) is False
        [issue] = ctx.issues
        assert issue.line == 7
        assert issue.message == "Procedure name get_order does not follow the naming guidelines"
        assert issue.file_path == "Test.plsql"
        assert issue.commit_id == "abc123"

    def test_function_wording(self, ctx: AnalysisContext) -> None:
        check_routine_name(ctx, "function", "Total_amount", 2)
        assert ctx.issues[0].message.startswith("Function name Total_amount")
