from cmmopt.copyprop import Block, BranchKind
from cmmopt.genkill import (
    Effect,
    block_effects,
    compute_gen_kill,
    instruction_effect,
    ordered_add,
    ordered_remove,
    summarize,
)
from cmmopt.ir import Instr, OpKind, Operand, OperandKind
from cmmopt.symtab import Symbol, Type


def sym(name, type_=Type.INT):
    return Symbol(name=name, type=type_)


def s(symbol):
    return Operand(OperandKind.SYMBOL, symbol)


def const(value):
    return Operand(OperandKind.INTCON, value)


def test_assign_from_variable():
    x, y = sym("x"), sym("y")
    code = [Instr(OpKind.ASSIGN, src1=s(y), dest=s(x))]
    assert instruction_effect(code, 0) == Effect(x, y, None)


def test_assign_from_constant_uses_nothing():
    x = sym("x")
    code = [Instr(OpKind.ASSIGN, src1=const(5), dest=s(x))]
    assert instruction_effect(code, 0) == Effect(x, None, None)


def test_arithmetic_with_constant_operand():
    t, a = sym("t"), sym("a")
    code = [Instr(OpKind.PLUS, src1=s(a), src2=const(1), dest=s(t))]
    assert instruction_effect(code, 0) == Effect(t, a, None)


def test_arithmetic_into_address_defines_nothing():
    t, a, b = sym("t"), sym("a"), sym("b")
    code = [
        Instr(OpKind.MULT, src1=s(a), src2=s(b), dest=Operand(OperandKind.ADDRESS, t))
    ]
    assert instruction_effect(code, 0) == Effect(None, a, b)


def test_array_store_defines_array():
    arr = sym("arr", Type.ARRAY)
    t, i, v = sym("t"), sym("i"), sym("v")
    code = [
        Instr(OpKind.PLUS, src1=Operand(OperandKind.ID_LOC, arr), src2=s(i), dest=s(t)),
        Instr(OpKind.ASSIGN, src1=s(v), dest=Operand(OperandKind.DEREF, t)),
    ]
    assert instruction_effect(code, 0) == Effect(arr, None, i)


def test_array_load_uses_array():
    arr = sym("arr", Type.ARRAY)
    t, i, v = sym("t"), sym("i"), sym("v")
    code = [
        Instr(OpKind.PLUS, src1=Operand(OperandKind.ID_LOC, arr), src2=s(i), dest=s(t)),
        Instr(OpKind.DEREF, src1=s(t), dest=s(v)),
    ]
    assert instruction_effect(code, 0) == Effect(t, arr, i)


def test_conditional_uses_both_operands():
    a, b = sym("a"), sym("b")
    code = [Instr(OpKind.IF_LT, src1=s(a), src2=s(b), dest=const(3))]
    assert instruction_effect(code, 0) == Effect(None, a, b)


def test_return_and_retrieve_and_enter():
    x = sym("x")
    code = [
        Instr(OpKind.ENTER),
        Instr(OpKind.RETURN),
        Instr(OpKind.RETURN, dest=s(x)),
        Instr(OpKind.RETRIEVE, dest=s(x)),
    ]
    assert instruction_effect(code, 0) == Effect()
    assert instruction_effect(code, 1) == Effect()
    assert instruction_effect(code, 2) == Effect(None, x, None)
    assert instruction_effect(code, 3) == Effect(x, None, None)


def test_ordered_add_keeps_order_without_duplicates():
    a, b = sym("a"), sym("b")
    items = []
    for symbol in (a, b, a):
        ordered_add(items, symbol)
    assert items == [a, b]


def test_ordered_remove():
    a, b, c = sym("a"), sym("b"), sym("c")
    items = [a, b]
    ordered_remove(items, c)
    assert items == [a, b]
    ordered_remove(items, a)
    assert items == [b]


def test_summarize_empty():
    assert summarize([]) == ([], [])


def test_summarize_straight_line():
    x, y, a, b = sym("x"), sym("y"), sym("a"), sym("b")
    gen, kill = summarize([Effect(x, a, None), Effect(y, x, b)])
    assert set(gen) == {a, b}
    assert set(kill) == {x, y}


def test_summarize_self_update():
    x = sym("x")
    gen, kill = summarize([Effect(x, x, None)])
    assert gen == [x]
    assert kill == [x]


def test_compute_gen_kill_fills_block():
    x, a = sym("x"), sym("a")
    code = [
        Instr(OpKind.ASSIGN, src1=s(a), dest=s(x)),
        Instr(OpKind.RETURN, dest=s(x)),
    ]
    first = Block(code, code[0], code[0], BranchKind.NO_BRANCH)
    second = Block(code, code[1], code[1], BranchKind.FINISH)
    first.successors = [second]
    compute_gen_kill([first, second])
    assert first.gen == [a]
    assert first.kill == [x]
    assert second.gen == [x]
    assert second.kill == []
    assert block_effects(second) == second.effects
    assert len(first.effects) == 1