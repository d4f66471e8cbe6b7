"""Syntax trees for C--: node construction, typed accessors and type checks."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from cmmopt.ir import Instr
from cmmopt.symtab import Symbol, Type


class NodeKind(enum.IntEnum):
    """Kinds of syntax tree nodes."""

    ERROR = 0
    INTCON = enum.auto()
    CHARCON = enum.auto()
    STRINGCON = enum.auto()
    VAR = enum.auto()
    ARRAY_SUBSCRIPT = enum.auto()
    PLUS = enum.auto()
    UNARY_MINUS = enum.auto()
    BINARY_MINUS = enum.auto()
    MULT = enum.auto()
    DIV = enum.auto()
    EQUALS = enum.auto()
    NEQ = enum.auto()
    LEQ = enum.auto()
    LT = enum.auto()
    GEQ = enum.auto()
    GT = enum.auto()
    LOGICAL_AND = enum.auto()
    LOGICAL_OR = enum.auto()
    LOGICAL_NOT = enum.auto()
    FUN_CALL = enum.auto()
    ASSG = enum.auto()
    RETURN = enum.auto()
    FOR = enum.auto()
    WHILE = enum.auto()
    IF = enum.auto()
    LIST = enum.auto()

    @property
    def label(self) -> str:
        """The name used for this kind in diagnostics."""
        return _LABELS[self]


_LABELS = dict(
    zip(
        NodeKind,
        (
            "Error", "Intcon", "Charcon", "Stringcon", "Var", "ArraySubscript",
            "Plus", "UnaryMinus", "BinaryMinus", "Mult", "Div", "Equals", "Neq",
            "Leq", "Lt", "Geq", "Gt", "LogicalAnd", "LogicalOr", "LogicalNot",
            "FunCall", "Assg", "Return", "For", "While", "If", "STnodeList",
        ),
    )
)

_BINARY = frozenset(
    {
        NodeKind.PLUS, NodeKind.BINARY_MINUS, NodeKind.MULT, NodeKind.DIV,
        NodeKind.EQUALS, NodeKind.NEQ, NodeKind.LEQ, NodeKind.LT,
        NodeKind.GEQ, NodeKind.GT, NodeKind.LOGICAL_AND, NodeKind.LOGICAL_OR,
    }
)
_UNARY = frozenset({NodeKind.UNARY_MINUS, NodeKind.LOGICAL_NOT})
_ARITH = frozenset({NodeKind.PLUS, NodeKind.BINARY_MINUS, NodeKind.MULT, NodeKind.DIV})
_RELATIONAL = frozenset(
    {NodeKind.EQUALS, NodeKind.NEQ, NodeKind.LEQ, NodeKind.LT, NodeKind.GEQ, NodeKind.GT}
)
_LOGICAL = frozenset({NodeKind.LOGICAL_AND, NodeKind.LOGICAL_OR})
_SCALAR = (Type.INT, Type.CHAR)


class SyntaxTreeError(Exception):
    """An accessor was applied to a node of the wrong kind."""


@dataclass(eq=False)
class Node:
    """A syntax tree node together with the code generated for it."""

    kind: NodeKind
    etype: Type = Type.NONE
    value: Any = None
    symbol: Symbol | None = None
    expr: Node | None = None
    children: list[Node | None] = field(default_factory=lambda: [None] * 4)
    code: list[Instr] = field(default_factory=list)
    place: Symbol | None = None
    loc: Symbol | None = None

    @property
    def left(self) -> Node | None:
        return self.children[0]

    @property
    def right(self) -> Node | None:
        return self.children[1]

    @right.setter
    def right(self, node: Node | None) -> None:
        self.children[1] = node

    def _expect(self, kind: NodeKind, where: str) -> None:
        if self.kind != kind:
            raise SyntaxTreeError(
                f"{where}: expected type {kind.label}, given {self.kind.label}"
            )

    def intcon(self) -> int:
        self._expect(NodeKind.INTCON, "intcon")
        return self.value

    def charcon(self) -> int:
        self._expect(NodeKind.CHARCON, "charcon")
        return self.value

    def stringcon(self) -> str:
        self._expect(NodeKind.STRINGCON, "stringcon")
        return self.value

    def var(self) -> Symbol | None:
        self._expect(NodeKind.VAR, "var")
        return self.symbol

    def array(self) -> Symbol | None:
        self._expect(NodeKind.ARRAY_SUBSCRIPT, "array")
        return self.symbol

    def subscript(self) -> Node | None:
        self._expect(NodeKind.ARRAY_SUBSCRIPT, "subscript")
        return self.expr

    def _expect_binary(self, where: str) -> None:
        if self.kind not in _BINARY:
            raise SyntaxTreeError(
                f"{where}: expected binary operator, given {self.kind.label}"
            )

    def binop_left(self) -> Node | None:
        self._expect_binary("binop_left")
        return self.children[0]

    def binop_right(self) -> Node | None:
        self._expect_binary("binop_right")
        return self.children[1]

    def unop_operand(self) -> Node | None:
        if self.kind not in _UNARY:
            raise SyntaxTreeError(
                f"unop_operand: expected unary operator, given {self.kind.label}"
            )
        return self.children[0]

    def callee(self) -> Symbol | None:
        self._expect(NodeKind.FUN_CALL, "callee")
        return self.symbol

    def call_args(self) -> Node | None:
        self._expect(NodeKind.FUN_CALL, "call_args")
        return self.expr

    def assign_lhs(self) -> Node | None:
        self._expect(NodeKind.ASSG, "assign_lhs")
        return self.children[0]

    def assign_rhs(self) -> Node | None:
        self._expect(NodeKind.ASSG, "assign_rhs")
        return self.children[1]

    def return_expr(self) -> Node | None:
        self._expect(NodeKind.RETURN, "return_expr")
        return self.children[0]

    def for_init(self) -> Node | None:
        self._expect(NodeKind.FOR, "for_init")
        return self.children[0]

    def for_test(self) -> Node | None:
        self._expect(NodeKind.FOR, "for_test")
        return self.children[1]

    def for_update(self) -> Node | None:
        self._expect(NodeKind.FOR, "for_update")
        return self.children[2]

    def for_body(self) -> Node | None:
        self._expect(NodeKind.FOR, "for_body")
        return self.children[3]

    def while_test(self) -> Node | None:
        self._expect(NodeKind.WHILE, "while_test")
        return self.children[0]

    def while_body(self) -> Node | None:
        self._expect(NodeKind.WHILE, "while_body")
        return self.children[1]

    def if_test(self) -> Node | None:
        self._expect(NodeKind.IF, "if_test")
        return self.children[0]

    def if_then(self) -> Node | None:
        self._expect(NodeKind.IF, "if_then")
        return self.children[1]

    def if_else(self) -> Node | None:
        self._expect(NodeKind.IF, "if_else")
        return self.children[2]

    def list_head(self) -> Node | None:
        self._expect(NodeKind.LIST, "list_head")
        return self.children[0]

    def list_rest(self) -> Node | None:
        self._expect(NodeKind.LIST, "list_rest")
        return self.children[1]


def const_node(kind: NodeKind, etype: Type, value: int) -> Node:
    """A node for an int or char constant."""
    return Node(kind=kind, etype=etype, value=value)


def str_node(text: str) -> Node:
    """A node for a string constant."""
    return Node(kind=NodeKind.STRINGCON, etype=Type.ARRAY, value=text)


def symref_node(kind: NodeKind, etype: Type, symbol: Symbol | None, expr: Node | None) -> Node:
    """A node referring to a symbol, with an optional subexpression or argument list."""
    return Node(kind=kind, etype=etype, symbol=symbol, expr=expr)


def expr_node(kind: NodeKind, etype: Type, left: Node | None, right: Node | None) -> Node:
    """A node for an expression with up to two operands."""
    return Node(kind=kind, etype=etype, children=[left, right, None, None])


def stmt_node(
    kind: NodeKind,
    etype: Type,
    c0: Node | None,
    c1: Node | None,
    c2: Node | None,
    c3: Node | None,
) -> Node:
    """A statement node with up to four children."""
    return Node(kind=kind, etype=etype, children=[c0, c1, c2, c3])


def error_node() -> Node:
    """A node marking an error somewhere beneath it."""
    return stmt_node(NodeKind.ERROR, Type.ERROR, None, None, None, None)


def list_node(head: Node | None, rest: Node | None) -> Node:
    """A list cell holding ``head`` followed by ``rest``."""
    return Node(kind=NodeKind.LIST, etype=Type.NONE, children=[head, rest, None, None])


def _return_node() -> Node:
    return stmt_node(NodeKind.RETURN, Type.NONE, None, None, None, None)


def append_return(tree: Node | None) -> Node:
    """Make sure a function body ends with a return statement."""
    if tree is None:
        return _return_node()
    last = tree
    while last.kind == NodeKind.LIST and last.right is not None:
        last = last.right
    head = last.left
    if head is None or head.kind != NodeKind.RETURN:
        last.right = list_node(_return_node(), None)
    return tree


def _iter_list(actuals: Node | None):
    while actuals is not None:
        yield actuals
        actuals = actuals.right


def actuals_match_formals(
    function: Symbol, actuals: Node | None, diagnostics: list[str] | None = None
) -> bool:
    """Check a call's arguments against the callee's formals in number and type."""
    if diagnostics is None:
        diagnostics = []
    formals = list(function.formals)
    cells = list(_iter_list(actuals))
    ok = True
    for position, (formal, cell) in enumerate(zip(formals, cells), start=1):
        if cell.kind == NodeKind.ERROR:
            continue
        arg = cell.left
        t0, t1 = formal.type, arg.etype
        if t0 != Type.ARRAY and t1 != Type.ARRAY and t0 in _SCALAR and t1 in _SCALAR:
            continue
        if t0 == Type.ARRAY and t1 == Type.ARRAY:
            if arg.kind == NodeKind.STRINGCON and formal.elt_type == Type.CHAR:
                continue
            if arg.symbol is not None and formal.elt_type == arg.symbol.elt_type:
                continue
            ok = False
            diagnostics.append(
                f"argument {position}: type mismatch between actual and formal "
                f"parameter [callee: {function.name}]"
            )
    if len(formals) != len(cells):
        ok = False
        diagnostics.append(
            "number of arguments in function call does not match function "
            f"definition [callee: {function.name}]"
        )
    return ok


def unary_expr(kind: NodeKind, operand: Node, diagnostics: list[str] | None = None) -> Node:
    """Type-check and build a unary expression."""
    if diagnostics is None:
        diagnostics = []
    if operand.kind == NodeKind.ERROR:
        return operand
    t1 = operand.etype
    if kind == NodeKind.UNARY_MINUS:
        if t1 not in _SCALAR:
            diagnostics.append("illegal type in arithmetic expression")
            return error_node()
        result = Type.INT
    elif kind == NodeKind.LOGICAL_NOT:
        if t1 != Type.BOOL:
            diagnostics.append("illegal type in Boolean expression")
            return error_node()
        result = Type.BOOL
    else:
        diagnostics.append(f"unrecognized binary operator {int(kind)}")
        return error_node()
    return expr_node(kind, result, operand, None)


def binary_expr(
    kind: NodeKind, left: Node, right: Node, diagnostics: list[str] | None = None
) -> Node:
    """Type-check and build a binary expression."""
    if diagnostics is None:
        diagnostics = []
    if left.kind == NodeKind.ERROR:
        return left
    if right.kind == NodeKind.ERROR:
        return right
    t1, t2 = left.etype, right.etype
    scalar = t1 in _SCALAR and t2 in _SCALAR
    if kind in _ARITH:
        if scalar:
            return expr_node(kind, Type.INT, left, right)
        diagnostics.append("type error in arithmetic expression")
        return error_node()
    if kind in _RELATIONAL:
        if scalar:
            return expr_node(kind, Type.BOOL, left, right)
        diagnostics.append("type error in logical expression")
        return error_node()
    if kind in _LOGICAL:
        if t1 == Type.BOOL and t2 == Type.BOOL:
            return expr_node(kind, Type.BOOL, left, right)
        diagnostics.append("type error in logical expression")
        return error_node()
    diagnostics.append(f"unrecognized binary operator {int(kind)}")
    return error_node()