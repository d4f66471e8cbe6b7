"""Three-address intermediate code."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class OpKind(enum.IntEnum):
    """Operations of the intermediate code."""

    ENTER = 0
    CALL = enum.auto()
    PARAM = enum.auto()
    LEAVE = enum.auto()
    RETURN = enum.auto()
    RETRIEVE = enum.auto()
    ASSIGN = enum.auto()
    PLUS = enum.auto()
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
    UNARY_MINUS = enum.auto()
    LOGICAL_NOT = enum.auto()
    DEREF = enum.auto()
    LABEL = enum.auto()
    GOTO = enum.auto()
    IF_EQUALS = enum.auto()
    IF_NEQ = enum.auto()
    IF_LEQ = enum.auto()
    IF_LT = enum.auto()
    IF_GEQ = enum.auto()
    IF_GT = enum.auto()
    IF_LOGICAL_AND = enum.auto()
    IF_LOGICAL_OR = enum.auto()
    NONE = enum.auto()


class OperandKind(enum.IntEnum):
    """What an operand holds."""

    INTCON = 0
    STRINGCON = enum.auto()
    SYMBOL = enum.auto()
    CHARCON = enum.auto()
    ADDRESS = enum.auto()
    ID_LOC = enum.auto()
    DEREF = enum.auto()
    NONE = enum.auto()


_CONDITIONAL = frozenset(
    {
        OpKind.IF_EQUALS,
        OpKind.IF_NEQ,
        OpKind.IF_LEQ,
        OpKind.IF_LT,
        OpKind.IF_GEQ,
        OpKind.IF_GT,
        OpKind.IF_LOGICAL_AND,
        OpKind.IF_LOGICAL_OR,
    }
)

_ARITHMETIC = frozenset({OpKind.PLUS, OpKind.DIV, OpKind.MULT, OpKind.BINARY_MINUS})


@dataclass
class Operand:
    """An operand: a constant, a string, a label number or a symbol."""

    kind: OperandKind = OperandKind.NONE
    value: Any = None


@dataclass(eq=False)
class Instr:
    """One instruction; instructions compare by identity."""

    op: OpKind
    src1: Operand = field(default_factory=Operand)
    src2: Operand = field(default_factory=Operand)
    dest: Operand = field(default_factory=Operand)


def is_conditional(op: OpKind) -> bool:
    """True for the conditional jumps."""
    return op in _CONDITIONAL


def is_arithmetic(op: OpKind) -> bool:
    """True for the binary arithmetic operations."""
    return op in _ARITHMETIC