import pytest

from cmmopt.copyprop import Block, BranchKind
from cmmopt.genkill import compute_gen_kill
from cmmopt.ir import Instr, OpKind, Operand, OperandKind
from cmmopt.liveness import Liveness, same_members
from cmmopt.symtab import Symbol, Type


def sym(name, formal=False):
    return Symbol(name=name, type=Type.INT, formal=formal)


def s(symbol):
    return Operand(OperandKind.SYMBOL, symbol)


def straight_line(first_src, first_dest, returned):
    code = [
        Instr(OpKind.ASSIGN, src1=s(first_src), dest=s(first_dest)),
        Instr(OpKind.RETURN, dest=s(returned)),
    ]
    first = Block(code, code[0], code[0], BranchKind.NO_BRANCH)
    last = Block(code, code[1], code[1], BranchKind.FINISH)
    first.successors = [last]
    compute_gen_kill([first, last])
    return first, last


def test_same_members():
    a, b = sym("a"), sym("b")
    assert same_members([], [])
    assert not same_members([], [a])
    assert not same_members([a], [])
    assert same_members([a], [b, a])
    assert not same_members([a, b], [a])


def test_straight_line():
    a, x = sym("a"), sym("x")
    first, last = straight_line(a, x, x)
    analysis = Liveness([first, last], [])
    passes = analysis.run()
    assert passes >= 1
    assert set(first.live_in) == {a}
    assert set(first.live_out) == {x}
    assert set(last.live_in) == {x}
    assert set(last.live_out) == {x}
    assert analysis.converged()


def test_globals_live_at_exit():
    a, x, g = sym("a"), sym("x"), sym("g")
    first, last = straight_line(a, x, x)
    Liveness([first, last], [g]).run()
    assert g in last.live_out
    assert g in first.live_in


def test_formal_kill_does_not_remove():
    a, f = sym("a"), sym("f", formal=True)
    first, last = straight_line(a, f, f)
    Liveness([first, last], []).run()
    assert f in first.live_in
    assert a in first.live_in


def test_seed_adds_globals_once():
    a, x, g = sym("a"), sym("x"), sym("g")
    first, last = straight_line(a, x, x)
    analysis = Liveness([first, last], [g], globals_live=True)
    analysis.seed()
    assert g in first.live_in and g in last.live_in
    assert analysis.globals_live is False
    analysis.seed()
    assert g not in first.live_in


def test_update_finish_block_collects_return_and_globals():
    a, x, g = sym("a"), sym("x"), sym("g")
    first, last = straight_line(a, x, x)
    analysis = Liveness([first, last], [g])
    before = last.iteration
    analysis.update_block(last)
    assert last.iteration == before + 1
    assert set(last.live_out) == {x, g}


def test_branch_merges_successors():
    a, b, x, y, z = (sym(n) for n in "abxyz")
    code = [
        Instr(OpKind.IF_LT, src1=s(a), src2=s(b), dest=Operand(OperandKind.INTCON, 1)),
        Instr(OpKind.ASSIGN, src1=s(x), dest=s(z)),
        Instr(OpKind.ASSIGN, src1=s(y), dest=s(z)),
        Instr(OpKind.RETURN, dest=s(z)),
    ]
    top = Block(code, code[0], code[0], BranchKind.BRANCH)
    left = Block(code, code[1], code[1], BranchKind.NO_BRANCH)
    right = Block(code, code[2], code[2], BranchKind.NO_BRANCH)
    end = Block(code, code[3], code[3], BranchKind.FINISH)
    top.successors = [left, right]
    left.successors = [end]
    right.successors = [end]
    blocks = [top, left, right, end]
    compute_gen_kill(blocks)
    Liveness(blocks, []).run()
    assert set(top.live_out) == {x, y}
    assert set(top.live_in) == {a, b, x, y}
    assert set(left.live_in) == {x}
    assert set(right.live_in) == {y}


def test_loop_terminates_and_is_consistent():
    a, x, n = sym("a"), sym("x"), sym("n")
    code = [
        Instr(OpKind.ASSIGN, src1=s(a), dest=s(x)),
        Instr(OpKind.IF_LT, src1=s(x), src2=s(n), dest=Operand(OperandKind.INTCON, 1)),
        Instr(OpKind.RETURN, dest=s(x)),
    ]
    first = Block(code, code[0], code[0], BranchKind.NO_BRANCH)
    test = Block(code, code[1], code[1], BranchKind.BRANCH)
    exit_block = Block(code, code[2], code[2], BranchKind.FINISH)
    first.successors = [test]
    test.successors = [first, exit_block]
    blocks = [first, test, exit_block]
    compute_gen_kill(blocks)
    analysis = Liveness(blocks, [])
    analysis.run()
    assert analysis.converged()
    assert set(test.live_out) == set(first.live_in) | set(exit_block.live_in)
    assert set(first.live_out) == set(test.live_in)
    assert a in first.live_in
    assert x not in first.live_in


def test_requires_blocks():
    with pytest.raises(ValueError):
        Liveness([], [])