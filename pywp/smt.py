#!/usr/bin/env python
"""
Translation of verification conditions into pysmt terms and validity checks.

A condition is valid iff its negation is unsatisfiable; a model of the
negation is a counterexample.
"""

from __future__ import annotations

import time

from pysmt.shortcuts import (
    Symbol, Int, Bool, And, Or, Not, Implies, Iff, Equals,
    LT, LE, GT, GE, Plus, Minus, Times, Div, Ite, Solver
)
from pysmt.typing import INT, BOOL
from pysmt.fnode import FNode
from pysmt.environment import push_env, pop_env
from pysmt.exceptions import (
    PysmtException, SolverReturnedUnknownResultError, NoSolverAvailableError
)

from pywp.expression import (
    Expression, Literal, Variable, BinaryExpression, UnaryExpression,
    BinaryOperator, UnaryOperator, Type
)
from pywp.errors import EncodingError
from pywp.verdict import VerificationResult

from pywp import log


_smt_types = {
    Type.INT : INT,
    Type.BOOL : BOOL,
}

# solver name -> solver options enforcing a timeout in seconds
_timeout_options = {
    'z3' : lambda seconds: {'timeout' : max(1, int(seconds * 1000))},
}


def _floor_div(left : FNode, right : FNode) -> FNode:
    # SMT integer division rounds towards -inf only for positive divisors
    zero = Int(0)
    return Ite(GT(right, zero),
        Div(left, right),
        Div(Minus(zero, left), Minus(zero, right))
    )


def _floor_mod(left : FNode, right : FNode) -> FNode:
    return Minus(left, Times(right, _floor_div(left, right)))


def _not_equals(left : FNode, right : FNode) -> FNode:
    return Not(_equals(left, right))


def _equals(left : FNode, right : FNode) -> FNode:
    if left.get_type().is_bool_type():
        return Iff(left, right)
    return Equals(left, right)


_binary_encodings = {
    BinaryOperator.ADD     : lambda l, r: Plus(l, r),
    BinaryOperator.SUB     : lambda l, r: Minus(l, r),
    BinaryOperator.MUL     : lambda l, r: Times(l, r),
    BinaryOperator.DIV     : _floor_div,
    BinaryOperator.MOD     : _floor_mod,
    BinaryOperator.EQ      : _equals,
    BinaryOperator.NE      : _not_equals,
    BinaryOperator.LT      : lambda l, r: LT(l, r),
    BinaryOperator.LE      : lambda l, r: LE(l, r),
    BinaryOperator.GT      : lambda l, r: GT(l, r),
    BinaryOperator.GE      : lambda l, r: GE(l, r),
    BinaryOperator.AND     : lambda l, r: And(l, r),
    BinaryOperator.OR      : lambda l, r: Or(l, r),
    BinaryOperator.IMPLIES : lambda l, r: Implies(l, r),
}


class SMTEncoder:
    """
    Encodes expressions into terms of the current pysmt environment.
    One symbol is created per variable name and type.
    """

    def __init__(self):
        self.symbols : dict[tuple[str, Type], FNode] = {}

    def symbol(self, var : Variable) -> FNode:
        key = (var.name, var.type)
        if key in self.symbols:
            return self.symbols[key]
        if var.type not in _smt_types:
            raise EncodingError('variable \'%s\' has no solver type (%s)' % (var.name, var.type))
        if any(name == var.name for name, _ in self.symbols):
            raise EncodingError('variable \'%s\' is used with two different types' % var.name)
        result = Symbol(var.name, _smt_types[var.type])
        self.symbols[key] = result
        return result

    def encode(self, expression : Expression) -> FNode:
        try:
            return self._encode(expression)
        except PysmtException as x:
            raise EncodingError('cannot encode \'%s\': %s' % (expression, x))

    def _encode(self, expression : Expression) -> FNode:
        match expression:
            case Literal(value=bool() as value):
                return Bool(value)
            case Literal(value=int() as value):
                return Int(value)
            case Variable():
                return self.symbol(expression)
            case UnaryExpression(operator=UnaryOperator.NOT, operand=o):
                return Not(self._encode(o))
            case UnaryExpression(operator=UnaryOperator.NEG, operand=o):
                return Minus(Int(0), self._encode(o))
            case BinaryExpression(operator=op, left=l, right=r):
                if op not in _binary_encodings:
                    raise EncodingError('operator %s has no solver equivalent' % op)
                return _binary_encodings[op](self._encode(l), self._encode(r))
        raise EncodingError('cannot encode %r' % (expression,))


class SolverContext:
    """
    A private pysmt environment with one solver in it. Entering pushes the
    environment, leaving releases the solver and pops the environment again,
    also when encoding or solving failed.
    """

    def __init__(self, solver_name : str = 'z3', timeout : float | None = None):
        self.solver_name = solver_name
        self.timeout = timeout
        self.environment = None
        self.solver = None

    def solver_options(self) -> dict:
        if self.timeout is None:
            return {}
        if self.solver_name not in _timeout_options:
            raise ValueError('solver %s cannot enforce a timeout' % self.solver_name)
        return _timeout_options[self.solver_name](self.timeout)

    def __enter__(self) -> SolverContext:
        self.environment = push_env()
        try:
            self.solver = Solver(name=self.solver_name, solver_options=self.solver_options())
        except BaseException:
            pop_env()
            raise
        return self

    def __exit__(self, exc_type, exc, traceback):
        try:
            self.solver.exit()
        finally:
            pop_env()
        return False


def _python_value(node : FNode):
    value = node.constant_value()
    if node.is_bool_constant():
        return bool(value)
    return int(value)


def check(vc : Expression, timeout : float | None = None, solver_name : str = 'z3') -> VerificationResult:
    """
    Checks validity of vc. The solver gets at most `timeout` seconds; an
    inconclusive answer is reported as UNKNOWN, never as VALID.
    """
    if timeout is not None and solver_name not in _timeout_options:
        # never run a solver without the limit the caller asked for
        log.printer.log_debug(1, '[SMT WARN] timeout is not supported for solver %s' % solver_name)
        return VerificationResult.unknown('timeout not supported by solver %s' % solver_name)

    start = time.monotonic()
    try:
        with SolverContext(solver_name, timeout) as context:
            encoder = SMTEncoder()
            negated = Not(encoder.encode(vc))
            log.printer.log_debug(5, '[SMT DEBUG] asserting %s' % negated)
            context.solver.add_assertion(negated)

            try:
                satisfiable = context.solver.solve()
            except SolverReturnedUnknownResultError:
                elapsed = time.monotonic() - start
                if timeout is not None and elapsed >= timeout:
                    return VerificationResult.unknown('timeout after %.1fs' % elapsed)
                return VerificationResult.unknown('solver returned unknown')

            if not satisfiable:
                return VerificationResult.valid()

            model = {
                name : _python_value(context.solver.get_value(symbol))
                for (name, _), symbol in encoder.symbols.items()
            }
            return VerificationResult.invalid(model)

    except EncodingError as x:
        return VerificationResult.unknown('encoding failed: %s' % x.message)
    except NoSolverAvailableError:
        return VerificationResult.unknown('solver %s is not available' % solver_name)
    except PysmtException as x:
        return VerificationResult.unknown('solver error: %s' % x)
