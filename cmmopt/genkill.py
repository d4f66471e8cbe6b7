"""Per-block gen and kill sets for liveness analysis."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from cmmopt.copyprop import Block
from cmmopt.ir import Instr, OpKind, Operand, OperandKind, is_arithmetic, is_conditional
from cmmopt.symtab import Symbol

_UNARY = frozenset({OpKind.UNARY_MINUS, OpKind.LOGICAL_NOT})
_LITERALS = frozenset({OperandKind.INTCON, OperandKind.STRINGCON, OperandKind.CHARCON})


@dataclass(frozen=True)
class Effect:
    """The variable an instruction defines and the ones it uses."""

    dest: Symbol | None = None
    src1: Symbol | None = None
    src2: Symbol | None = None


def _sym(operand: Operand) -> Symbol | None:
    value = operand.value
    return value if isinstance(value, Symbol) else None


def _array_access(instructions: Sequence[Instr], index: int) -> tuple[bool, bool]:
    """Whether an address computation feeds a store (first) or a load (second)."""
    ins = instructions[index]
    address = ins.dest.value
    for later in instructions[index + 1 :]:
        if (
            later.dest.kind == OperandKind.DEREF
            and later.op == OpKind.ASSIGN
            and address is later.dest.value
        ):
            return True, False
        if later.op == OpKind.DEREF and address is later.src1.value:
            return False, True
    return False, False


def instruction_effect(instructions: Sequence[Instr], index: int) -> Effect:
    """The effect of ``instructions[index]``.

    Instructions after it are consulted to tell array stores from loads.
    """
    ins = instructions[index]
    op = ins.op
    dest = src1 = src2 = None
    if is_conditional(op):
        src1, src2 = _sym(ins.src1), _sym(ins.src2)
    elif op in _UNARY:
        dest, src1 = _sym(ins.dest), _sym(ins.src1)
    elif is_arithmetic(op):
        if ins.dest.kind != OperandKind.ADDRESS:
            dest = _sym(ins.dest)
        if ins.src2.kind != OperandKind.INTCON:
            src2 = _sym(ins.src2)
        if ins.src1.kind != OperandKind.ID_LOC:
            src1 = _sym(ins.src1)
        else:
            stored, loaded = _array_access(instructions, index)
            if stored:
                dest = _sym(ins.src1)
            elif loaded:
                src1 = _sym(ins.src1)
    elif op == OpKind.PARAM:
        src1 = _sym(ins.src1)
    elif op == OpKind.RETURN:
        if ins.dest.kind != OperandKind.NONE:
            src1 = _sym(ins.dest)
    elif op == OpKind.RETRIEVE:
        dest = _sym(ins.dest)
    elif op == OpKind.ASSIGN:
        dest = _sym(ins.dest)
        if ins.src1.kind not in _LITERALS:
            src1 = _sym(ins.src1)
    return Effect(dest, src1, src2)


def block_effects(block: Block) -> list[Effect]:
    """The effect of every instruction of ``block``, in order."""
    start = next(i for i, ins in enumerate(block.code) if ins is block.head)
    count = len(block.instructions())
    return [instruction_effect(block.code, i) for i in range(start, start + count)]


def ordered_add(items: list[Symbol], symbol: Symbol) -> None:
    """Append ``symbol`` unless it is already present."""
    if not any(item is symbol for item in items):
        items.append(symbol)


def ordered_remove(items: list[Symbol], symbol: Symbol) -> None:
    """Remove ``symbol`` if it is present."""
    for position, item in enumerate(items):
        if item is symbol:
            del items[position]
            return


def _apply(effect: Effect, gen: list[Symbol], kill: list[Symbol]) -> None:
    if effect.dest is not None:
        ordered_remove(gen, effect.dest)
    for used in (effect.src1, effect.src2):
        if used is not None:
            ordered_add(gen, used)
    if effect.dest is not None:
        ordered_add(kill, effect.dest)
    for used in (effect.src1, effect.src2):
        if used is not None and used is not effect.dest:
            ordered_remove(kill, used)


def summarize(effects: Sequence[Effect]) -> tuple[list[Symbol], list[Symbol]]:
    """Gen and kill sets of a block, walking its effects from last to first."""
    gen: list[Symbol] = []
    kill: list[Symbol] = []
    if not effects:
        return gen, kill
    for effect in reversed(effects):
        _apply(effect, gen, kill)
    _apply(effects[0], gen, kill)
    return gen, kill


def compute_gen_kill(blocks: Iterable[Block]) -> None:
    """Fill in ``effects``, ``gen`` and ``kill`` of every block."""
    for block in blocks:
        block.effects = block_effects(block)
        block.gen, block.kill = summarize(block.effects)