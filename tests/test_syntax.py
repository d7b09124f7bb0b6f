"""Tests for plreview.syntax: token stream, parser and tree walk."""

from __future__ import annotations

from plreview.syntax import NodeKind, Position, SyntaxNode, parse, tokenize, walk
from plreview.syntax.lexer import NUMBER, PUNCT, STRING, WORD

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _nodes(tree: SyntaxNode, kind: NodeKind) -> list[SyntaxNode]:
    return [node for node in tree.iter_tree() if node.kind is kind]


class _Recorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, NodeKind]] = []

    def enter(self, node: SyntaxNode) -> None:
        self.events.append(("enter", node.kind))

    def exit(self, node: SyntaxNode) -> None:
        self.events.append(("exit", node.kind))


ROUTINE = """\
PROCEDURE Update_Order (
   qty_    IN OUT NUMBER,
   note_   IN     VARCHAR2 DEFAULT NULL )
IS
   total_  NUMBER := 0;
BEGIN
   SELECT a,
          b
   INTO x_, y_
   FROM Orders;
END Update_Order;
"""


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------


class TestTokenize:
    def test_positions(self) -> None:
        tokens = tokenize("BEGIN\n   x_ := 'a';\nEND;")
        assert [(t.text, t.line, t.column) for t in tokens] == [
            ("BEGIN", 1, 0),
            ("x_", 2, 3),
            (":=", 2, 6),
            ("'a'", 2, 9),
            (";", 2, 12),
            ("END", 3, 0),
            (";", 3, 3),
        ]

    def test_kinds(self) -> None:
        tokens = tokenize("SELECT 1, 'x', t.* FROM dual")
        kinds = {t.text: t.kind for t in tokens}
        assert kinds["SELECT"] == WORD
        assert kinds["1"] == NUMBER
        assert kinds["'x'"] == STRING
        assert kinds["*"] == PUNCT
        assert kinds[","] == PUNCT

    def test_comments_dropped(self) -> None:
        tokens = tokenize("-- header\nNULL; /* note */ NULL;")
        assert [t.text for t in tokens] == ["NULL", ";", "NULL", ";"]
        assert tokens[0].line == 2

    def test_merged_keywords_are_split(self) -> None:
        tokens = tokenize("END IF;\nORDER  BY x")
        assert [(t.text, t.line, t.column) for t in tokens[:2]] == [("END", 1, 0), ("IF", 1, 4)]
        assert [(t.text, t.column) for t in tokens[3:5]] == [("ORDER", 0), ("BY", 7)]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParseRoutine:
    def test_routine_structure(self) -> None:
        tree = parse(ROUTINE)
        [body] = _nodes(tree, NodeKind.ROUTINE_BODY)
        assert body.text == "Update_Order"
        assert body.attrs["routine"] == "procedure"

        name = body.child(NodeKind.ROUTINE_NAME)
        assert name is not None
        assert name.text == "Update_Order"
        assert name.start == Position(1, 10)

    def test_parameters(self) -> None:
        tree = parse(ROUTINE)
        params = _nodes(tree, NodeKind.PARAMETER)
        assert [p.text for p in params] == ["qty_", "note_"]

        qty, note = params
        direction = qty.child(NodeKind.DIRECTION)
        assert direction is not None
        assert direction.text == "IN OUT"
        assert direction.start == Position(2, 11)
        type_spec = qty.child(NodeKind.TYPE_SPEC)
        assert type_spec is not None
        assert (type_spec.text, type_spec.start) == ("NUMBER", Position(2, 18))
        assert qty.child(NodeKind.DEFAULT_VALUE) is None

        default = note.child(NodeKind.DEFAULT_VALUE)
        assert default is not None
        assert default.text == "NULL"

    def test_variable_declaration(self) -> None:
        tree = parse(ROUTINE)
        [variable] = _nodes(tree, NodeKind.VARIABLE_DECLARATION)
        assert variable.text == "total_"
        assert variable.start == Position(5, 3)
        type_spec = variable.child(NodeKind.TYPE_SPEC)
        assert type_spec is not None
        assert type_spec.start == Position(5, 11)

    def test_select_in_body(self) -> None:
        tree = parse(ROUTINE)
        elements = _nodes(tree, NodeKind.SELECT_ELEMENT)
        assert [(e.text, e.line) for e in elements] == [("a", 7), ("b", 8)]
        [table] = _nodes(tree, NodeKind.TABLE_NAME)
        assert (table.text, table.line) == ("Orders", 10)

    def test_parameter_after_word_default(self) -> None:
        tree = parse(
            "PROCEDURE Get_Order (\n"
            "   a_ IN NUMBER DEFAULT NULL,\n"
            "   b_ IN VARCHAR2 DEFAULT USER,\n"
            "   c_ IN NUMBER )\n"
            "IS\n"
            "BEGIN\n"
            "   NULL;\n"
            "END Get_Order;\n"
        )
        params = _nodes(tree, NodeKind.PARAMETER)
        assert [p.text for p in params] == ["a_", "b_", "c_"]
        defaults = [p.child(NodeKind.DEFAULT_VALUE) for p in params]
        assert [d.text if d is not None else None for d in defaults] == ["NULL", "USER", None]

    def test_default_expression_with_operators(self) -> None:
        tree = parse(
            "PROCEDURE Calc IS\n"
            "   total_  NUMBER := a_ + b_ * 2;\n"
            "   other_  NUMBER DEFAULT nvl(c_, 0) - d_;\n"
            "BEGIN\n"
            "   NULL;\n"
            "END Calc;\n"
        )
        variables = _nodes(tree, NodeKind.VARIABLE_DECLARATION)
        assert [v.text for v in variables] == ["total_", "other_"]
        total, other = variables
        total_default = total.child(NodeKind.DEFAULT_VALUE)
        other_default = other.child(NodeKind.DEFAULT_VALUE)
        assert total_default is not None and total_default.text == "a_ + b_ * 2"
        assert other_default is not None and other_default.text == "nvl(c_, 0) - d_"

    def test_multi_target_into_keeps_from_clause(self) -> None:
        tree = parse(
            "BEGIN\n"
            "   SELECT a, b, c\n"
            "   INTO x_, y_, z_\n"
            "   FROM Orders;\n"
            "END;\n"
        )
        [table] = _nodes(tree, NodeKind.TABLE_NAME)
        assert (table.text, table.line) == ("Orders", 4)

    def test_function_and_forward_declaration(self) -> None:
        tree = parse(
            "FUNCTION Get_Total RETURN NUMBER;\n"
            "FUNCTION Get_Total RETURN NUMBER IS\n"
            "BEGIN\n"
            "   RETURN 0;\n"
            "END Get_Total;\n"
        )
        names = _nodes(tree, NodeKind.ROUTINE_NAME)
        assert [(n.text, n.line, n.attrs["routine"]) for n in names] == [
            ("Get_Total", 1, "function"),
            ("Get_Total", 2, "function"),
        ]
        assert len(_nodes(tree, NodeKind.ROUTINE_BODY)) == 1

    def test_ref_cursor_type_is_not_a_cursor(self) -> None:
        tree = parse(
            "PROCEDURE Run IS\n"
            "   TYPE cur_type IS REF CURSOR;\n"
            "BEGIN\n"
            "   NULL;\n"
            "END Run;\n"
        )
        assert _nodes(tree, NodeKind.CURSOR_DECLARATION) == []
        assert _nodes(tree, NodeKind.VARIABLE_DECLARATION) == []


class TestParseCursor:
    SOURCE = (
        "PROCEDURE Load IS\n"
        "   CURSOR get_orders IS\n"
        "      SELECT o.*,\n"
        "             qty AS Quantity\n"
        "      FROM Orders o, order_line_tab l;\n"
        "BEGIN\n"
        "   NULL;\n"
        "END Load;\n"
    )

    def test_cursor_node(self) -> None:
        tree = parse(self.SOURCE)
        [cursor] = _nodes(tree, NodeKind.CURSOR_DECLARATION)
        assert cursor.text == "get_orders"
        assert cursor.line == 2
        assert cursor.child(NodeKind.SELECT_STATEMENT) is not None

    def test_select_elements(self) -> None:
        tree = parse(self.SOURCE)
        wildcard, quantity = _nodes(tree, NodeKind.SELECT_ELEMENT)
        assert wildcard.flag("wildcard") is True
        alias = quantity.child(NodeKind.COLUMN_ALIAS)
        expression = quantity.child(NodeKind.EXPRESSION)
        assert alias is not None and alias.text == "Quantity"
        assert expression is not None and expression.text == "qty"

    def test_table_references(self) -> None:
        tree = parse(self.SOURCE)
        references = _nodes(tree, NodeKind.TABLE_REFERENCE)
        assert len(references) == 2
        assert [n.text for n in _nodes(tree, NodeKind.TABLE_NAME)] == ["Orders", "order_line_tab"]


class TestParseQueries:
    def test_bare_wildcard_list(self) -> None:
        tree = parse("SELECT * FROM dual;")
        [select_list] = _nodes(tree, NodeKind.SELECT_LIST)
        assert select_list.flag("wildcard") is True
        assert select_list.children == []

    def test_implicit_alias(self) -> None:
        tree = parse("SELECT count(*) Total FROM dual;")
        [element] = _nodes(tree, NodeKind.SELECT_ELEMENT)
        alias = element.child(NodeKind.COLUMN_ALIAS)
        assert alias is not None and alias.text == "Total"

    def test_joins_and_schema_names(self) -> None:
        tree = parse("SELECT a FROM app.Orders o JOIN Order_Line l ON l.id = o.id;")
        assert [n.text for n in _nodes(tree, NodeKind.TABLE_NAME)] == ["app.Orders", "Order_Line"]

    def test_subquery_in_select_list(self) -> None:
        tree = parse("SELECT (SELECT MAX(x) FROM inner_tab) AS m FROM outer_tab;")
        assert len(_nodes(tree, NodeKind.SELECT_STATEMENT)) == 2
        assert [n.text for n in _nodes(tree, NodeKind.TABLE_NAME)] == ["inner_tab", "outer_tab"]

    def test_dml_heads(self) -> None:
        tree = parse(
            "BEGIN\n"
            "   INSERT INTO t VALUES (1);\n"
            "   UPDATE t SET a = 1;\n"
            "   DELETE FROM t;\n"
            "END;\n"
        )
        kinds = [
            n.kind
            for n in tree.iter_tree()
            if n.kind
            in (NodeKind.INSERT_STATEMENT, NodeKind.UPDATE_STATEMENT, NodeKind.DELETE_STATEMENT)
        ]
        assert kinds == [
            NodeKind.INSERT_STATEMENT,
            NodeKind.UPDATE_STATEMENT,
            NodeKind.DELETE_STATEMENT,
        ]

    def test_for_update_is_not_dml(self) -> None:
        tree = parse("CURSOR c IS SELECT a FROM t FOR UPDATE;")
        assert _nodes(tree, NodeKind.UPDATE_STATEMENT) == []


# ---------------------------------------------------------------------------
# Walk
# ---------------------------------------------------------------------------


class TestWalk:
    def test_enter_exit_order(self) -> None:
        leaf = SyntaxNode(NodeKind.TABLE_NAME, Position(1, 0))
        ref = SyntaxNode(NodeKind.TABLE_REFERENCE, Position(1, 0), children=[leaf])
        root = SyntaxNode(NodeKind.SCRIPT, Position(1, 0), children=[ref])
        recorder = _Recorder()
        walk(root, recorder)
        assert recorder.events == [
            ("enter", NodeKind.SCRIPT),
            ("enter", NodeKind.TABLE_REFERENCE),
            ("enter", NodeKind.TABLE_NAME),
            ("exit", NodeKind.TABLE_NAME),
            ("exit", NodeKind.TABLE_REFERENCE),
            ("exit", NodeKind.SCRIPT),
        ]

    def test_deep_tree(self) -> None:
        root = SyntaxNode(NodeKind.SCRIPT, Position(1, 0))
        node = root
        for _ in range(5000):
            child = SyntaxNode(NodeKind.BLOCK, Position(1, 0))
            node.children.append(child)
            node = child
        recorder = _Recorder()
        walk(root, recorder)
        assert len(recorder.events) == 2 * 5001
