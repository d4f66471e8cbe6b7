"""Peephole optimizations over a function's three-address code.

Every pass works in place on a list of instructions.
"""

from __future__ import annotations

from dataclasses import replace

from cmmopt.ir import Instr, OpKind, Operand, OperandKind, is_arithmetic, is_conditional

_NEGATED = {
    OpKind.IF_EQUALS: OpKind.IF_NEQ,
    OpKind.IF_NEQ: OpKind.IF_EQUALS,
    OpKind.IF_LEQ: OpKind.IF_GT,
    OpKind.IF_LT: OpKind.IF_GEQ,
    OpKind.IF_GEQ: OpKind.IF_LT,
    OpKind.IF_GT: OpKind.IF_LEQ,
    OpKind.IF_LOGICAL_AND: OpKind.IF_LOGICAL_OR,
    OpKind.IF_LOGICAL_OR: OpKind.IF_LOGICAL_AND,
}

_UNARY = frozenset({OpKind.UNARY_MINUS, OpKind.LOGICAL_NOT})
_CONSTANTS = frozenset({OperandKind.INTCON, OperandKind.CHARCON})


def negate_condition(op: OpKind) -> OpKind:
    """The conditional jump taken exactly when ``op`` is not; other ops are unchanged."""
    return _NEGATED.get(op, op)


def delete_after(code: list[Instr], prev_index: int | None, index: int) -> int:
    """Unlink everything after ``prev_index`` up to and including ``index``.

    Nothing is removed when there is no previous instruction or when
    ``index`` is the last one. Returns the index of the instruction that
    now follows ``prev_index``, or ``index`` when nothing was removed.
    """
    if prev_index is None or index >= len(code) - 1:
        return index
    del code[prev_index + 1 : index + 1]
    return prev_index + 1


def label_unused(code: list[Instr], label: int) -> bool:
    """True when no jump in ``code`` targets ``label``."""
    return not any(
        (is_conditional(ins.op) or ins.op == OpKind.GOTO) and ins.dest.value == label
        for ins in code
    )


def resolve_chain(code: list[Instr], label: int) -> int:
    """Where a jump to ``label`` ends up after one step.

    If ``label`` is immediately followed by another label or by a goto,
    that label or the goto's target is returned; otherwise ``label``.
    """
    after_label = False
    for ins in code:
        if ins.op == OpKind.LABEL:
            if after_label:
                return ins.dest.value
            if ins.dest.value == label:
                after_label = True
        elif ins.op == OpKind.GOTO:
            if after_label:
                return ins.dest.value
        else:
            after_label = False
    return label


def _final_target(code: list[Instr], label: int) -> int:
    seen = [label]
    current = label
    while True:
        following = resolve_chain(code, current)
        if following == current:
            return current
        if following in seen:
            return label
        seen.append(following)
        current = following


def _drop_unused_labels(code: list[Instr]) -> bool:
    changed = False
    prev: int | None = None
    i = 0
    while i < len(code):
        ins = code[i]
        if ins.op == OpKind.LABEL and label_unused(code, ins.dest.value):
            before = len(code)
            i = delete_after(code, prev, i)
            changed = changed or len(code) < before
        prev = i
        i += 1
    return changed


def remove_if(code: list[Instr]) -> None:
    """Drop conditional jumps whose target label follows them directly."""
    prev: int | None = None
    prev_if: int | None = None
    pending = False
    i = 0
    while i < len(code):
        ins = code[i]
        if is_conditional(ins.op):
            pending = True
            prev_if = i
        else:
            if (
                ins.op == OpKind.LABEL
                and pending
                and prev is not None
                and ins.dest.value == code[prev_if].dest.value
            ):
                delete_after(code, prev, prev_if)
                delete_after(code, prev, prev + 1)
                i = prev
            prev = i
            pending = False
        i += 1


def fold_conditional_gotos(code: list[Instr]) -> None:
    """Remove repeated gotos, invert ``if c goto L1; goto L2; L1:`` and drop unused labels."""
    pending = False
    prev_jump: int | None = None
    i = 0
    while i < len(code):
        if code[i].op == OpKind.GOTO:
            if pending and i < len(code) - 1:
                delete_after(code, prev_jump, i)
                i = prev_jump
            pending = True
            prev_jump = i
        else:
            pending = False
        i += 1

    pending = False
    prev_if: int | None = None
    i = 0
    while i < len(code):
        ins = code[i]
        if is_conditional(ins.op):
            pending = True
            prev_if = i
        elif ins.op == OpKind.GOTO:
            if pending:
                pending = False
                following = code[i + 1] if i + 1 < len(code) else None
                condition = code[prev_if]
                if (
                    following is not None
                    and following.op == OpKind.LABEL
                    and following.dest.value == condition.dest.value
                ):
                    condition.op = negate_condition(condition.op)
                    condition.dest = replace(condition.dest, value=ins.dest.value)
                    i = delete_after(code, prev_if, i)
        else:
            pending = False
        i += 1

    _drop_unused_labels(code)


def forward_results(code: list[Instr]) -> None:
    """Let an operation write straight into the variable its result is copied to."""
    producer: int | None = None
    pending = False
    name: str | None = None
    i = 0
    while i < len(code):
        ins = code[i]
        if ins.op in _UNARY or is_arithmetic(ins.op):
            if ins.dest.kind == OperandKind.SYMBOL:
                pending = True
                name = ins.dest.value.name
                producer = i
        elif ins.op == OpKind.ASSIGN:
            if (
                pending
                and ins.src1.kind == OperandKind.SYMBOL
                and ins.dest.kind == OperandKind.SYMBOL
                and ins.src1.value.name == name
            ):
                target = code[producer]
                target.dest = replace(target.dest, value=ins.dest.value)
                delete_after(code, producer, i)
                i = producer
            pending = False
        else:
            producer = None
            pending = False
        i += 1


def propagate_constants(code: list[Instr]) -> None:
    """Fold ``t = c; x = t`` into ``x = c``."""
    prev: int | None = None
    source: int | None = None
    pending = False
    name: str | None = None
    value = None
    i = 0
    while i < len(code):
        ins = code[i]
        if ins.op == OpKind.ASSIGN:
            if pending:
                if ins.src1.kind == OperandKind.SYMBOL:
                    if ins.src1.value.name == name:
                        ins.src1 = Operand(code[source].src1.kind, value)
                        before = len(code)
                        delete_after(code, prev, source)
                        i -= before - len(code)
                    pending = False
                    prev = i
            elif ins.src1.kind in _CONSTANTS:
                pending = True
                name = ins.dest.value.name
                value = ins.src1.value
                source = i
            else:
                prev = i
                pending = False
        else:
            prev = i
            pending = False
        i += 1


def collapse_jump_chains(code: list[Instr]) -> None:
    """Retarget jumps through label and goto chains until nothing changes.

    Gotos to the label right after them and labels nobody jumps to are removed.
    """
    changed = True
    while changed:
        changed = False
        prev: int | None = None
        prev_jump: int | None = None
        i = 0
        while i < len(code):
            ins = code[i]
            if is_conditional(ins.op) or ins.op == OpKind.GOTO:
                target = _final_target(code, ins.dest.value)
                if target != ins.dest.value:
                    ins.dest = replace(ins.dest, value=target)
                    changed = True
                if ins.op == OpKind.GOTO:
                    prev_jump = i
                else:
                    prev = i
                    prev_jump = None
            elif ins.op == OpKind.LABEL:
                if prev_jump is not None and code[prev_jump].dest.value == ins.dest.value:
                    before = len(code)
                    delete_after(code, prev, prev_jump)
                    removed = before - len(code)
                    if removed:
                        i -= removed
                        changed = True
                prev_jump = None
                prev = i
            else:
                prev = i
                prev_jump = None
            i += 1

        if _drop_unused_labels(code):
            changed = True