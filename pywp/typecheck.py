#!/usr/bin/env python
"""
Binding of variable names to types and type checking of expressions.
"""

from typing import Mapping

from pywp.expression import (
    Expression, Literal, Variable, BinaryExpression, UnaryExpression,
    BinaryOperator, UnaryOperator, Type
)
from pywp.errors import (
    UnknownVariableError, UnknownTypeError, TypeMismatchError, NotBooleanError
)

RETURN_VARIABLE = 'ret'


class VariableTable:
    """
    Types of everything a condition may refer to: arguments, declared locals,
    temporaries introduced by preprocessing and the return value `ret`.
    """

    def __init__(self, arguments : Mapping[str, Type] = None, return_type : Type = Type.INT):
        self.arguments : dict[str, Type] = dict(arguments or {})
        self.locals : dict[str, Type] = dict()
        self.temporaries : dict[str, Type] = dict()
        self.return_type = return_type

    def declare_local(self, name : str, var_type : Type):
        self.locals[name] = var_type

    def declare_temporary(self, name : str, var_type : Type):
        self.temporaries[name] = var_type

    def __contains__(self, name : str) -> bool:
        return name == RETURN_VARIABLE or name in self.arguments or name in self.locals or name in self.temporaries

    def lookup(self, name : str) -> Type:
        if name == RETURN_VARIABLE:
            return self.return_type
        for scope in (self.arguments, self.locals, self.temporaries):
            if name in scope:
                return scope[name]
        raise UnknownVariableError(name)

    def variable(self, name : str) -> Variable:
        """ typed reference to a declared name """
        var_type = self.lookup(name)
        if var_type == Type.UNKNOWN:
            raise UnknownTypeError(name)
        return Variable(name, var_type)

    def __str__(self):
        entries = ['%s: %s' % (n, t) for n, t in self.arguments.items()]
        entries += ['%s: %s' % (n, t) for n, t in self.locals.items()]
        entries += ['%s: %s' % (n, t) for n, t in self.temporaries.items()]
        entries.append('%s: %s' % (RETURN_VARIABLE, self.return_type))
        return '{%s}' % ', '.join(entries)


def resolve(expression : Expression, table : VariableTable) -> Expression:
    """ returns a copy of expression in which every variable carries its declared type """
    match expression:
        case Variable(name=name):
            return table.variable(name)
        case BinaryExpression(operator=op, left=l, right=r):
            return BinaryExpression(op, resolve(l, table), resolve(r, table))
        case UnaryExpression(operator=op, operand=o):
            return UnaryExpression(op, resolve(o, table))
        case _:
            return expression


def _expect(expression : Expression, expected : Type) -> Type:
    actual = typecheck(expression)
    if actual != expected:
        raise TypeMismatchError(expression, expected, actual)
    return actual


def typecheck(expression : Expression) -> Type:
    """ bottom-up type computation, raises TypeCheckError on ill-typed trees """
    match expression:
        case Literal():
            return expression.type
        case Variable(name=name, type=var_type):
            if var_type == Type.UNKNOWN:
                raise UnknownTypeError(name)
            return var_type
        case UnaryExpression(operator=UnaryOperator.NOT, operand=o):
            _expect(o, Type.BOOL)
            return Type.BOOL
        case UnaryExpression(operator=UnaryOperator.NEG, operand=o):
            _expect(o, Type.INT)
            return Type.INT
        case BinaryExpression(operator=op, left=l, right=r):
            if op.is_arithmetic:
                _expect(l, Type.INT)
                _expect(r, Type.INT)
                return Type.INT
            if op.is_ordering:
                _expect(l, Type.INT)
                _expect(r, Type.INT)
                return Type.BOOL
            if op.is_equality:
                left_type = typecheck(l)
                _expect(r, left_type)
                return Type.BOOL
            _expect(l, Type.BOOL)
            _expect(r, Type.BOOL)
            return Type.BOOL
    raise TypeError('not an expression: %r' % (expression,))


def check_condition(expression : Expression) -> Expression:
    """ type checks a condition whose root must be boolean """
    actual = typecheck(expression)
    if actual != Type.BOOL:
        raise NotBooleanError(expression, Type.BOOL, actual)
    return expression
