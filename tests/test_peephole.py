import pytest

from cmmopt.ir import Instr, OpKind, Operand, OperandKind, is_conditional
from cmmopt.peephole import (
    collapse_jump_chains,
    delete_after,
    fold_conditional_gotos,
    forward_results,
    label_unused,
    negate_condition,
    propagate_constants,
    remove_if,
    resolve_chain,
)
from cmmopt.symtab import Symbol, Type


def sym(name, kind=Type.INT):
    return Symbol(name=name, type=kind)


def label(n):
    return Instr(OpKind.LABEL, dest=Operand(OperandKind.INTCON, n))


def goto(n):
    return Instr(OpKind.GOTO, dest=Operand(OperandKind.INTCON, n))


def cond(op, n, a, b):
    return Instr(
        op,
        src1=Operand(OperandKind.SYMBOL, a),
        src2=Operand(OperandKind.SYMBOL, b),
        dest=Operand(OperandKind.INTCON, n),
    )


def assign(dest, src):
    return Instr(
        OpKind.ASSIGN,
        src1=Operand(OperandKind.SYMBOL, src),
        dest=Operand(OperandKind.SYMBOL, dest),
    )


def const_assign(dest, value, kind=OperandKind.INTCON):
    return Instr(OpKind.ASSIGN, src1=Operand(kind, value), dest=Operand(OperandKind.SYMBOL, dest))


def enter():
    return Instr(OpKind.ENTER)


def ret():
    return Instr(OpKind.RETURN)


@pytest.mark.parametrize(
    "op, expected",
    [
        (OpKind.IF_EQUALS, OpKind.IF_NEQ),
        (OpKind.IF_NEQ, OpKind.IF_EQUALS),
        (OpKind.IF_LEQ, OpKind.IF_GT),
        (OpKind.IF_LT, OpKind.IF_GEQ),
        (OpKind.IF_GEQ, OpKind.IF_LT),
        (OpKind.IF_GT, OpKind.IF_LEQ),
        (OpKind.IF_LOGICAL_AND, OpKind.IF_LOGICAL_OR),
        (OpKind.IF_LOGICAL_OR, OpKind.IF_LOGICAL_AND),
    ],
)
def test_negate_condition(op, expected):
    assert negate_condition(op) is expected
    assert negate_condition(expected) is op


def test_negate_condition_leaves_other_ops():
    assert negate_condition(OpKind.PLUS) is OpKind.PLUS


def test_delete_after_removes_range():
    code = [enter(), goto(1), goto(2), label(1), ret()]
    keep = [code[0], code[3], code[4]]
    assert delete_after(code, 0, 2) == 1
    assert code == keep


def test_delete_after_without_previous_does_nothing():
    code = [goto(1), label(1), ret()]
    original = list(code)
    assert delete_after(code, None, 0) == 0
    assert code == original


def test_delete_after_refuses_last():
    code = [enter(), ret()]
    original = list(code)
    assert delete_after(code, 0, 1) == 1
    assert code == original


def test_label_unused():
    a, b = sym("a"), sym("b")
    code = [cond(OpKind.IF_LT, 3, a, b), goto(4), label(3), label(4), label(5)]
    assert not label_unused(code, 3)
    assert not label_unused(code, 4)
    assert label_unused(code, 5)


def test_resolve_chain_follows_goto():
    code = [enter(), label(1), goto(5), label(5), ret()]
    assert resolve_chain(code, 1) == 5


def test_resolve_chain_follows_label():
    code = [enter(), label(1), label(2), ret()]
    assert resolve_chain(code, 1) == 2


def test_resolve_chain_stops_at_other_instruction():
    code = [enter(), label(1), ret(), goto(7)]
    assert resolve_chain(code, 1) == 1


def test_remove_if_drops_jump_to_next_label():
    a, b = sym("a"), sym("b")
    first, last = enter(), ret()
    code = [first, cond(OpKind.IF_LT, 3, a, b), label(3), last]
    remove_if(code)
    assert code == [first, last]


def test_remove_if_keeps_other_jumps():
    a, b = sym("a"), sym("b")
    code = [enter(), cond(OpKind.IF_LT, 3, a, b), label(4), ret(), label(3), ret()]
    original = list(code)
    remove_if(code)
    assert code == original


def test_remove_if_needs_previous_instruction():
    a, b = sym("a"), sym("b")
    code = [cond(OpKind.IF_LT, 3, a, b), label(3), ret()]
    original = list(code)
    remove_if(code)
    assert code == original


def test_fold_inverts_condition_over_goto():
    a, b = sym("a"), sym("b")
    test = cond(OpKind.IF_LT, 1, a, b)
    body = assign(a, b)
    end = label(2)
    first, last = enter(), ret()
    code = [first, test, goto(2), label(1), body, end, last]
    fold_conditional_gotos(code)
    assert code == [first, test, body, end, last]
    assert test.op is OpKind.IF_GEQ
    assert test.dest.value == 2


def test_fold_removes_second_of_consecutive_gotos():
    first, jump, target, last = enter(), goto(1), label(1), ret()
    code = [first, jump, goto(2), target, last]
    fold_conditional_gotos(code)
    assert code == [first, jump, target, last]


def test_fold_drops_unused_labels():
    first, last = enter(), ret()
    code = [first, label(9), last]
    fold_conditional_gotos(code)
    assert code == [first, last]


def test_forward_results_writes_into_copy_target():
    a, b, t, x = sym("a"), sym("b"), sym("t"), sym("x")
    add = Instr(
        OpKind.PLUS,
        src1=Operand(OperandKind.SYMBOL, a),
        src2=Operand(OperandKind.SYMBOL, b),
        dest=Operand(OperandKind.SYMBOL, t),
    )
    first, last = enter(), ret()
    code = [first, add, assign(x, t), last]
    forward_results(code)
    assert code == [first, add, last]
    assert add.dest.value is x


def test_forward_results_ignores_unrelated_copy():
    a, t, x, y = sym("a"), sym("t"), sym("x"), sym("y")
    neg = Instr(
        OpKind.UNARY_MINUS,
        src1=Operand(OperandKind.SYMBOL, a),
        dest=Operand(OperandKind.SYMBOL, t),
    )
    code = [enter(), neg, assign(x, y), ret()]
    original = list(code)
    forward_results(code)
    assert code == original
    assert neg.dest.value is t


def test_propagate_constants_folds_int():
    t, x = sym("t"), sym("x")
    copy = assign(x, t)
    first, last = enter(), ret()
    code = [first, const_assign(t, 5), copy, last]
    propagate_constants(code)
    assert code == [first, copy, last]
    assert copy.src1 == Operand(OperandKind.INTCON, 5)


def test_propagate_constants_folds_char():
    t, x = sym("t", Type.CHAR), sym("x", Type.CHAR)
    copy = assign(x, t)
    first, last = enter(), ret()
    code = [first, const_assign(t, 97, OperandKind.CHARCON), copy, last]
    propagate_constants(code)
    assert code == [first, copy, last]
    assert copy.src1 == Operand(OperandKind.CHARCON, 97)


def test_propagate_constants_keeps_unrelated():
    t, x, y = sym("t"), sym("x"), sym("y")
    code = [enter(), const_assign(t, 5), assign(x, y), ret()]
    original = list(code)
    propagate_constants(code)
    assert code == original
    assert code[2].src1.value is y


def test_collapse_retargets_chain():
    a, b = sym("a"), sym("b")
    first, jump, body, end, last = enter(), goto(1), assign(a, b), label(2), ret()
    code = [first, jump, body, label(1), goto(2), end, last]
    collapse_jump_chains(code)
    assert code == [first, jump, body, end, last]
    assert jump.dest.value == 2


def test_collapse_removes_goto_to_next_label():
    a, b = sym("a"), sym("b")
    first, body, last = enter(), assign(a, b), ret()
    code = [first, body, goto(1), label(1), last]
    collapse_jump_chains(code)
    assert code == [first, body, last]


def test_collapse_terminates_on_cycle():
    code = [enter(), label(1), goto(2), label(2), goto(1), ret()]
    collapse_jump_chains(code)
    labels = {ins.dest.value for ins in code if ins.op is OpKind.LABEL}
    targets = {
        ins.dest.value for ins in code if ins.op is OpKind.GOTO or is_conditional(ins.op)
    }
    assert targets <= labels
    assert labels <= targets