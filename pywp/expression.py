#!/usr/bin/env python
"""
Expression trees shared by conditions, control flow graphs and verification
conditions.

Nodes are immutable and compare structurally, so formulas built twice from
the same inputs are equal and can be used as dictionary keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Union


class Type(Enum):
    INT = 'Int'
    BOOL = 'Bool'
    UNKNOWN = 'Unknown'

    def __str__(self):
        return self.value


class BinaryOperator(Enum):
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    MOD = '%'
    EQ = '=='
    NE = '!='
    LT = '<'
    LE = '<='
    GT = '>'
    GE = '>='
    AND = '&&'
    OR = '||'
    IMPLIES = '==>'

    def __str__(self):
        return self.value

    @property
    def precedence(self) -> int:
        return _precedence[self]

    @property
    def is_arithmetic(self) -> bool:
        return self in (BinaryOperator.ADD, BinaryOperator.SUB, BinaryOperator.MUL, BinaryOperator.DIV, BinaryOperator.MOD)

    @property
    def is_ordering(self) -> bool:
        return self in (BinaryOperator.LT, BinaryOperator.LE, BinaryOperator.GT, BinaryOperator.GE)

    @property
    def is_equality(self) -> bool:
        return self in (BinaryOperator.EQ, BinaryOperator.NE)

    @property
    def is_logical(self) -> bool:
        return self in (BinaryOperator.AND, BinaryOperator.OR, BinaryOperator.IMPLIES)

    @property
    def right_associative(self) -> bool:
        return self == BinaryOperator.IMPLIES


class UnaryOperator(Enum):
    NOT = '!'
    NEG = '-'

    def __str__(self):
        return self.value


# binding strength, higher binds tighter
_precedence = {
    BinaryOperator.IMPLIES : 1,
    BinaryOperator.OR      : 2,
    BinaryOperator.AND     : 3,
    BinaryOperator.EQ      : 4,
    BinaryOperator.NE      : 4,
    BinaryOperator.LT      : 5,
    BinaryOperator.LE      : 5,
    BinaryOperator.GT      : 5,
    BinaryOperator.GE      : 5,
    BinaryOperator.ADD     : 6,
    BinaryOperator.SUB     : 6,
    BinaryOperator.MUL     : 7,
    BinaryOperator.DIV     : 7,
    BinaryOperator.MOD     : 7,
}
UNARY_PRECEDENCE = 8
ATOM_PRECEDENCE = 9


class ExpressionBase:
    def substitute(self, mapping : Mapping[str, Expression]) -> Expression:
        """
        Replaces every free variable whose name is a key of mapping.
        All replacements happen simultaneously, replaced terms are not
        visited again.
        """
        if not mapping:
            return self
        return _substitute(self, mapping)

    def free_variables(self) -> dict[str, Variable]:
        """ free variables in order of first occurrence """
        result : dict[str, Variable] = {}
        _collect_variables(self, result)
        return result

    def precedence(self) -> int:
        return ATOM_PRECEDENCE


@dataclass(frozen=True, eq=False)
class Literal(ExpressionBase):
    value : Union[int, bool]

    # True == 1 in python, a literal also compares by the kind of its value
    def __eq__(self, other):
        if not isinstance(other, Literal):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self):
        return hash((type(self.value), self.value))

    @property
    def type(self) -> Type:
        return Type.BOOL if isinstance(self.value, bool) else Type.INT

    def __str__(self):
        if isinstance(self.value, bool):
            return 'true' if self.value else 'false'
        return str(self.value)


@dataclass(frozen=True)
class Variable(ExpressionBase):
    name : str
    type : Type = Type.UNKNOWN

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class BinaryExpression(ExpressionBase):
    operator : BinaryOperator
    left : Expression
    right : Expression

    def precedence(self) -> int:
        return self.operator.precedence

    def __str__(self):
        level = self.precedence()
        # for a left associative operator only the right operand needs
        # parentheses at equal precedence, and vice versa
        if self.operator.right_associative:
            left = _wrap(self.left, level + 1)
            right = _wrap(self.right, level)
        else:
            left = _wrap(self.left, level)
            right = _wrap(self.right, level + 1)
        return '%s %s %s' % (left, self.operator, right)


@dataclass(frozen=True)
class UnaryExpression(ExpressionBase):
    operator : UnaryOperator
    operand : Expression

    def precedence(self) -> int:
        return UNARY_PRECEDENCE

    def __str__(self):
        # -3 reads back as a literal, negation of one keeps its parentheses
        if self.operator == UnaryOperator.NEG and isinstance(self.operand, Literal) and self.operand.type == Type.INT:
            return '-(%s)' % self.operand
        return '%s%s' % (self.operator, _wrap(self.operand, UNARY_PRECEDENCE))


Expression = Union[Literal, Variable, BinaryExpression, UnaryExpression]


def _wrap(expression : Expression, minimum : int) -> str:
    if expression.precedence() < minimum:
        return '(%s)' % expression
    return str(expression)


def _substitute(expression : Expression, mapping : Mapping[str, Expression]) -> Expression:
    match expression:
        case Variable(name=name):
            return mapping.get(name, expression)
        case BinaryExpression(operator=op, left=l, right=r):
            left = _substitute(l, mapping)
            right = _substitute(r, mapping)
            if left is l and right is r:
                return expression
            return BinaryExpression(op, left, right)
        case UnaryExpression(operator=op, operand=o):
            operand = _substitute(o, mapping)
            if operand is o:
                return expression
            return UnaryExpression(op, operand)
        case _:
            return expression


def _collect_variables(expression : Expression, result : dict[str, Variable]):
    match expression:
        case Variable(name=name):
            result.setdefault(name, expression)
        case BinaryExpression(left=l, right=r):
            _collect_variables(l, result)
            _collect_variables(r, result)
        case UnaryExpression(operand=o):
            _collect_variables(o, result)


# ------------------------------------------------------------------ #
#  constructors used by the WP generator and the VC builder          #
# ------------------------------------------------------------------ #
TRUE = Literal(True)
FALSE = Literal(False)


def negate(expression : Expression) -> Expression:
    return UnaryExpression(UnaryOperator.NOT, expression)


def implies(antecedent : Expression, consequent : Expression) -> Expression:
    return BinaryExpression(BinaryOperator.IMPLIES, antecedent, consequent)


def conjoin(expressions) -> Expression:
    """ left-nested conjunction, true for an empty sequence """
    result = None
    for e in expressions:
        result = e if result is None else BinaryExpression(BinaryOperator.AND, result, e)
    return TRUE if result is None else result
