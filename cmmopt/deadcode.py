"""Dead code elimination driven by live-variable analysis."""

from __future__ import annotations

from cmmopt.copyprop import Block, BranchKind
from cmmopt.genkill import Effect, block_effects, summarize
from cmmopt.ir import Instr, OpKind, OperandKind, is_conditional
from cmmopt.liveness import Liveness

_PROTECTED = frozenset(
    {OpKind.CALL, OpKind.PARAM, OpKind.RETURN, OpKind.LEAVE, OpKind.LABEL, OpKind.GOTO}
)


def _code_position(code: list[Instr], target: Instr) -> int:
    return next(k for k, ins in enumerate(code) if ins is target)


def _removable(ins: Instr) -> bool:
    """Control flow, calls and stores through pointers are never removed."""
    return not (
        ins.op in _PROTECTED
        or is_conditional(ins.op)
        or ins.dest.kind == OperandKind.DEREF
    )


def _array_use_live(instrs: list[Instr], effects: list[Effect], index: int) -> bool:
    """Whether an array address computation is still needed.

    It is not when the array is read again before the store that
    uses the computed address.
    """
    address = instrs[index].dest.value
    array = effects[index].dest
    for later_ins, later in zip(instrs[index + 1 :], effects[index + 1 :]):
        if address is not None and later_ins.dest.value is address:
            return True
        if later.src1 is array:
            return False
    return True


def _is_live(block: Block, instrs: list[Instr], effects: list[Effect], index: int) -> bool:
    ins = instrs[index]
    dest = effects[index].dest
    array = ins.src1.kind == OperandKind.ID_LOC
    for later in effects[index + 1 :]:
        if dest is None:
            return True
        if later.src1 is not None and later.src1 is dest:
            if array and not _array_use_live(instrs, effects, index):
                break
            return True
        if later.src2 is not None and later.src2 is dest:
            return True
        if later.dest is not None and later.dest is dest and not array:
            return False
    return dest is not None and any(symbol is dest for symbol in block.live_out)


def _remove_single(
    block: Block, instrs: list[Instr], effects: list[Effect], index: int
) -> int:
    ins = instrs[index]
    code = block.code
    position = _code_position(code, ins)
    if position == 0 or position >= len(code) - 1 or len(instrs) == 1:
        return 0
    if ins is block.head:
        block.head = instrs[index + 1]
    if ins is block.tail:
        block.tail = instrs[index - 1]
    del code[position]
    del effects[index]
    return 1


def _remove_array(
    block: Block, instrs: list[Instr], effects: list[Effect], index: int
) -> int:
    """Remove an unused array store: offset, address and everything up to the store."""
    if index < 2:
        return 0
    address = instrs[index].dest.value
    if address is None:
        return 0
    end = next(
        (j for j in range(index + 1, len(instrs)) if instrs[j].dest.value is address),
        None,
    )
    if end is None:
        return 0
    code = block.code
    first = _code_position(code, instrs[index - 1])
    last = first + (end - index + 1)
    if last >= len(code) - 1:
        return 0
    if instrs[end] is block.tail:
        block.tail = instrs[index - 2]
    del code[first : last + 1]
    del effects[index - 1 : end + 1]
    return end - index + 2


def eliminate_in_block(block: Block) -> int:
    """Delete the instructions of ``block`` whose results are never used.

    The block's ``live_out`` must be up to date. Gen and kill are
    recomputed afterwards. Returns the number of instructions removed.
    """
    if len(block.effects) != len(block.instructions()):
        block.effects = block_effects(block)
    removed = 0
    while True:
        instrs = block.instructions()
        effects = block.effects
        for index, ins in enumerate(instrs):
            if not _removable(ins) or _is_live(block, instrs, effects, index):
                continue
            if ins.src1.kind == OperandKind.ID_LOC:
                count = _remove_array(block, instrs, effects, index)
            else:
                count = _remove_single(block, instrs, effects, index)
            if count:
                removed += count
                break
        else:
            break
    block.gen, block.kill = summarize(block.effects)
    return removed


def _clean(liveness: Liveness, block: Block) -> int:
    liveness.update_block(block)
    removed = eliminate_in_block(block)
    liveness.update_block(block)
    return removed


def eliminate_dead_code(liveness: Liveness) -> int:
    """Remove dead code from every block reachable from the entry.

    Blocks are cleaned after their successors, re-running the liveness
    analysis after each one. The analysis sets are cleared at the end.
    Returns the number of instructions removed.
    """
    blocks = liveness.blocks
    for block in blocks:
        block.iteration = 0
    entry = blocks[0]
    visited: list[Block] = [entry]
    removed = 0

    def visit(block: Block) -> None:
        nonlocal removed
        visited.append(block)
        if block.kind == BranchKind.FINISH:
            return
        if block.kind == BranchKind.NO_BRANCH:
            children = block.successors[:1]
        else:
            children = block.successors[:2]
        for child in children:
            if child.iteration != 1:
                if any(child is seen for seen in visited):
                    return
                visit(child)
                removed += _clean(liveness, child)
                iteration = child.iteration
                liveness.run()
                child.iteration = iteration

    visit(entry)
    removed += _clean(liveness, entry)

    for block in blocks:
        block.iteration = 0
        block.live_in = []
        block.live_out = []
        block.gen = []
        block.kill = []
    return removed