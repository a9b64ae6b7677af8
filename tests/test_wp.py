import pytest

from pywp.cfg import ControlFlowGraph, Assign, Call, Goto, Branch, Return
from pywp.expression import (
    Literal, Variable, BinaryExpression, UnaryExpression, BinaryOperator, UnaryOperator, Type,
    conjoin, implies, negate
)
from pywp.wp import WeakestPreconditionGenerator, Contract, wp
from pywp.errors import UnsupportedError, UnsupportedKind, TypeCheckError


x = Variable('x', Type.INT)
y = Variable('y', Type.INT)
i = Variable('i', Type.INT)
n = Variable('n', Type.INT)
ret = Variable('ret', Type.INT)


def op(operator, left, right):
    return BinaryExpression(operator, left, right)


def straight_line(*operations, terminator=Return()):
    cfg = ControlFlowGraph()
    block = cfg.new_block(1)
    block.operations.extend(operations)
    block.terminator = terminator
    return cfg


def diamond():
    """ if x > 0: y = 1 else: y = -1; return y """
    cfg = ControlFlowGraph()
    entry, then_block, else_block, join = [cfg.new_block(l) for l in range(1, 5)]
    entry.terminator = Branch(op(BinaryOperator.GT, x, Literal(0)), then_block.index, else_block.index)
    then_block.operations.append(Assign(y, Literal(1)))
    then_block.terminator = Goto(join.index)
    else_block.operations.append(Assign(y, UnaryExpression(UnaryOperator.NEG, Literal(1))))
    else_block.terminator = Goto(join.index)
    join.terminator = Return(y)
    return cfg


def counting_loop(invariant=None):
    """ i = 0; while i < n: i = i + 1; return i """
    cfg = ControlFlowGraph()
    entry, header, body, exit_block = [cfg.new_block(l) for l in range(1, 5)]
    entry.operations.append(Assign(i, Literal(0)))
    entry.terminator = Goto(header.index)
    header.terminator = Branch(op(BinaryOperator.LT, i, n), body.index, exit_block.index)
    header.invariant = invariant
    body.operations.append(Assign(i, op(BinaryOperator.ADD, i, Literal(1))))
    body.terminator = Goto(header.index)
    exit_block.terminator = Return(i)
    return cfg


def test_assignment():
    cfg = straight_line(Assign(x, op(BinaryOperator.ADD, x, Literal(1))))
    result = wp(cfg, op(BinaryOperator.GT, x, Literal(0)))
    assert result == op(BinaryOperator.GT, op(BinaryOperator.ADD, x, Literal(1)), Literal(0))
    assert str(result) == 'x + 1 > 0'


def test_assignments_are_processed_backward():
    cfg = straight_line(Assign(y, x), Assign(x, Literal(5)), terminator=Return(op(BinaryOperator.ADD, x, y)))
    assert str(wp(cfg, op(BinaryOperator.EQ, ret, Literal(7)))) == '5 + x == 7'


def test_return_value_replaces_ret():
    cfg = straight_line(terminator=Return(op(BinaryOperator.SUB, x, Literal(10))))
    assert str(wp(cfg, op(BinaryOperator.GT, ret, Literal(0)))) == 'x - 10 > 0'


def test_bare_return_leaves_ret_unconstrained():
    post = op(BinaryOperator.GT, ret, Literal(0))
    assert wp(straight_line(), post) == post


def test_branch():
    post = op(BinaryOperator.NE, ret, Literal(0))
    guard = op(BinaryOperator.GT, x, Literal(0))
    expected = conjoin([
        implies(guard, op(BinaryOperator.NE, Literal(1), Literal(0))),
        implies(negate(guard), op(BinaryOperator.NE, UnaryExpression(UnaryOperator.NEG, Literal(1)), Literal(0))),
    ])
    assert wp(diamond(), post) == expected


def test_shared_successor_is_computed_once():
    generator = WeakestPreconditionGenerator(diamond(), op(BinaryOperator.NE, ret, Literal(0)))
    generator.generate()
    assert sorted(generator.cache) == [0, 1, 2, 3]
    assert generator.obligations == []


def test_loop_without_invariant():
    with pytest.raises(UnsupportedError) as error:
        wp(counting_loop(), op(BinaryOperator.EQ, ret, n))
    assert error.value.kind == UnsupportedKind.UNANNOTATED_LOOP
    assert error.value.lineno == 2


def test_loop_with_invariant():
    invariant = op(BinaryOperator.LE, i, n)
    generator = WeakestPreconditionGenerator(counting_loop(invariant), op(BinaryOperator.EQ, ret, n))
    assert str(generator.generate()) == '0 <= n'
    assert [str(o) for o in generator.obligations] == [
        'i#1 <= n && i#1 < n ==> i#1 + 1 <= n',
        'i#1 <= n && !(i#1 < n) ==> i#1 == n',
    ]


def test_generation_is_deterministic():
    invariant = op(BinaryOperator.LE, i, n)
    post = op(BinaryOperator.EQ, ret, n)
    first = WeakestPreconditionGenerator(counting_loop(invariant), post)
    second = WeakestPreconditionGenerator(counting_loop(invariant), post)
    assert first.generate() == second.generate()
    assert first.obligations == second.obligations


increment = Contract(
    'inc',
    (Variable('a', Type.INT),),
    Type.INT,
    op(BinaryOperator.GE, Variable('a', Type.INT), Literal(0)),
    op(BinaryOperator.EQ, ret, op(BinaryOperator.ADD, Variable('a', Type.INT), Literal(1))),
)


def test_call_uses_contract():
    cfg = straight_line(Call(y, 'inc', (x,)), terminator=Return(y))
    result = wp(cfg, op(BinaryOperator.GT, ret, x), {'inc' : increment})
    assert str(result) == 'x >= 0 && (y#1 == x + 1 ==> y#1 > x)'


def test_call_without_target():
    cfg = straight_line(Call(None, 'inc', (x,)), terminator=Return(x))
    result = wp(cfg, op(BinaryOperator.GT, ret, Literal(0)), {'inc' : increment})
    assert str(result) == 'x >= 0 && (ret#1 == x + 1 ==> x > 0)'


def test_opaque_call():
    cfg = straight_line(Call(y, 'unknown', (x,)), terminator=Return(y))
    with pytest.raises(UnsupportedError) as error:
        wp(cfg, op(BinaryOperator.GT, ret, Literal(0)))
    assert error.value.kind == UnsupportedKind.OPAQUE_CALL


def test_call_arity():
    cfg = straight_line(Call(y, 'inc', (x, x)), terminator=Return(y))
    with pytest.raises(TypeCheckError):
        wp(cfg, op(BinaryOperator.GT, ret, Literal(0)), {'inc' : increment})
