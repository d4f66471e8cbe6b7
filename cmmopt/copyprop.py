"""Basic blocks and copy propagation inside a block."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from cmmopt.ir import Instr, OpKind, Operand, OperandKind, is_arithmetic, is_conditional
from cmmopt.symtab import Symbol


class BranchKind(enum.Enum):
    """How control leaves a block."""

    NO_BRANCH = enum.auto()
    BRANCH = enum.auto()
    FINISH = enum.auto()


def _position(code: list[Instr], target: Instr) -> int:
    for index, ins in enumerate(code):
        if ins is target:
            return index
    raise ValueError("instruction is not part of the code")


@dataclass(eq=False)
class Block:
    """A basic block: the run of ``code`` from ``head`` to ``tail``.

    ``successors`` holds one block for NO_BRANCH and the taken and
    fall-through blocks for BRANCH. The remaining fields carry the
    results of data-flow analysis.
    """

    code: list[Instr]
    head: Instr
    tail: Instr
    kind: BranchKind = BranchKind.NO_BRANCH
    successors: list[Block] = field(default_factory=list)
    gen: list[Symbol] = field(default_factory=list)
    kill: list[Symbol] = field(default_factory=list)
    live_in: list[Symbol] = field(default_factory=list)
    live_out: list[Symbol] = field(default_factory=list)
    prev_in: list[Symbol] = field(default_factory=list)
    prev_out: list[Symbol] = field(default_factory=list)
    effects: list[Any] = field(default_factory=list)
    iteration: int = 0

    def instructions(self) -> list[Instr]:
        """The instructions from head to tail, inclusive."""
        start = _position(self.code, self.head)
        end = _position(self.code, self.tail)
        if end < start:
            raise ValueError("block tail precedes its head")
        return self.code[start : end + 1]


_UNARY = frozenset({OpKind.UNARY_MINUS, OpKind.LOGICAL_NOT})


def _swap(operand: Operand, old: Symbol, new: Symbol) -> Operand:
    if operand.value is old and old.type == new.type:
        return replace(operand, value=new)
    return operand


def propagate_from(block: Block, index: int) -> bool:
    """Replace uses of the copy at ``index`` of ``block`` by its source.

    Stops, returning True, once the copy's target or source is redefined;
    returns False when the end of the block is reached.
    """
    instrs = block.instructions()
    copy = instrs[index]
    target: Symbol = copy.dest.value
    source: Symbol = copy.src1.value
    redefines = (target, source)

    for ins in instrs[index + 1 :]:
        op = ins.op
        if is_conditional(op):
            ins.src1 = _swap(ins.src1, target, source)
            ins.src2 = _swap(ins.src2, target, source)
        elif op == OpKind.DEREF:
            ins.src1 = _swap(ins.src1, target, source)
            if ins.dest.value is target:
                return True
        elif op in _UNARY:
            ins.src1 = _swap(ins.src1, target, source)
            if any(ins.dest.value is s for s in redefines):
                return True
        elif is_arithmetic(op):
            ins.src1 = _swap(ins.src1, target, source)
            ins.src2 = _swap(ins.src2, target, source)
            if any(ins.dest.value is s for s in redefines):
                return True
        elif op == OpKind.PARAM:
            ins.src1 = _swap(ins.src1, target, source)
        elif op == OpKind.RETURN:
            if ins.dest.kind != OperandKind.NONE:
                ins.dest = _swap(ins.dest, target, source)
        elif op == OpKind.RETRIEVE:
            if any(ins.dest.value is s for s in redefines):
                return True
        elif op == OpKind.ASSIGN:
            if ins.dest.kind != OperandKind.DEREF:
                ins.src1 = _swap(ins.src1, target, source)
            if any(ins.dest.value is s for s in redefines):
                return True
    return False


def propagate_block(block: Block) -> None:
    """Propagate every variable-to-variable copy within ``block``."""
    for index, ins in enumerate(block.instructions()):
        if (
            ins.op == OpKind.ASSIGN
            and ins.dest.kind != OperandKind.DEREF
            and ins is not block.tail
            and ins.src1.kind == OperandKind.SYMBOL
        ):
            propagate_from(block, index)


def propagate_copies(blocks: Iterable[Block]) -> None:
    """Run copy propagation over each block on its own."""
    for block in blocks:
        propagate_block(block)