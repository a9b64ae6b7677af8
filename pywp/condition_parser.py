#!/usr/bin/env python
"""
Parser for the condition language used in pre- and postconditions and loop
invariants.

    condition  := implication
    implication:= disjunction ( '==>' implication )?
    disjunction:= conjunction ( '||' conjunction )*
    conjunction:= equality ( '&&' equality )*
    equality   := relation ( ( '==' | '!=' ) relation )*
    relation   := additive ( ( '<' | '<=' | '>' | '>=' ) additive )*
    additive   := term ( ( '+' | '-' ) term )*
    term       := unary ( ( '*' | '/' | '%' ) unary )*
    unary      := '-' integer | ( '!' | '-' ) unary | atom
    atom       := integer | 'true' | 'false' | identifier | '(' condition ')'

The parser only builds the tree, every variable is left untyped.
"""

import re

from pywp.expression import (
    Expression, Literal, Variable, BinaryExpression, UnaryExpression,
    BinaryOperator, UnaryOperator, Type
)
from pywp.errors import ParseError


class Token:
    def __init__(self, kind : str, text : str, start : int, end : int):
        self.kind = kind
        self.text = text
        self.start = start
        self.end = end

    def __repr__(self):
        return 'Token(%s, %r, %d)' % (self.kind, self.text, self.start)


# spelling -> operator, longer spellings are matched first
_binary_spellings = {
    '==>' : BinaryOperator.IMPLIES,
    '=>'  : BinaryOperator.IMPLIES,
    '⇒'   : BinaryOperator.IMPLIES,
    '→'   : BinaryOperator.IMPLIES,
    '||'  : BinaryOperator.OR,
    '∨'   : BinaryOperator.OR,
    'or'  : BinaryOperator.OR,
    '&&'  : BinaryOperator.AND,
    '∧'   : BinaryOperator.AND,
    'and' : BinaryOperator.AND,
    '=='  : BinaryOperator.EQ,
    '='   : BinaryOperator.EQ,
    '!='  : BinaryOperator.NE,
    '≠'   : BinaryOperator.NE,
    '<='  : BinaryOperator.LE,
    '≤'   : BinaryOperator.LE,
    '>='  : BinaryOperator.GE,
    '≥'   : BinaryOperator.GE,
    '<'   : BinaryOperator.LT,
    '>'   : BinaryOperator.GT,
    '+'   : BinaryOperator.ADD,
    '-'   : BinaryOperator.SUB,
    '−'   : BinaryOperator.SUB,
    '*'   : BinaryOperator.MUL,
    '×'   : BinaryOperator.MUL,
    '/'   : BinaryOperator.DIV,
    '%'   : BinaryOperator.MOD,
}

_unary_spellings = {
    '!'   : UnaryOperator.NOT,
    '¬'   : UnaryOperator.NOT,
    'not' : UnaryOperator.NOT,
    '-'   : UnaryOperator.NEG,
    '−'   : UnaryOperator.NEG,
}

_boolean_spellings = {
    'true' : True, 'True' : True,
    'false' : False, 'False' : False,
}

_symbols = sorted(
    {s for s in list(_binary_spellings) + list(_unary_spellings) if not s.isalpha()} | {'(', ')'},
    key=len, reverse=True
)

_token_pattern = re.compile(
    r'(?P<space>\s+)'
    r'|(?P<integer>[0-9]+)'
    r'|(?P<identifier>[A-Za-z_][A-Za-z0-9_]*)'
    r'|(?P<symbol>' + '|'.join(re.escape(s) for s in _symbols) + r')'
)

_atom_start = ['integer', 'identifier', 'true', 'false', '(', '!', '-']


def tokenize(source : str) -> list[Token]:
    tokens = []
    position = 0
    while position < len(source):
        match = _token_pattern.match(source, position)
        if match is None:
            raise ParseError('invalid character %r' % source[position], source, (position, position + 1))
        kind = match.lastgroup
        text = match.group()
        if kind == 'identifier' and (text in _binary_spellings or text in _unary_spellings):
            kind = 'symbol'
        elif kind == 'identifier' and text in _boolean_spellings:
            kind = 'boolean'
        if kind != 'space':
            tokens.append(Token(kind, text, match.start(), match.end()))
        position = match.end()
    tokens.append(Token('end', '', len(source), len(source)))
    return tokens


class ConditionParser:
    def __init__(self, source : str):
        self.source = source
        self.tokens = tokenize(source)
        self.position = 0

    def peek(self) -> Token:
        return self.tokens[self.position]

    def advance(self) -> Token:
        token = self.tokens[self.position]
        if token.kind != 'end':
            self.position += 1
        return token

    def error(self, message : str, token : Token, expected):
        end = token.end if token.end > token.start else token.start + 1
        raise ParseError(message, self.source, (token.start, end), expected)

    def binary_operator(self, token : Token) -> BinaryOperator | None:
        if token.kind != 'symbol':
            return None
        return _binary_spellings.get(token.text)

    def parse(self) -> Expression:
        if self.peek().kind == 'end':
            self.error('empty condition', self.peek(), _atom_start)
        result = self.parse_expression(1)
        token = self.peek()
        if token.kind != 'end':
            self.error('unexpected %r' % token.text, token, ['operator', 'end of condition'])
        return result

    def parse_expression(self, minimum : int) -> Expression:
        """ precedence climbing over the binary operators """
        left = self.parse_unary()
        while True:
            op = self.binary_operator(self.peek())
            if op is None or op.precedence < minimum:
                return left
            self.advance()
            next_minimum = op.precedence if op.right_associative else op.precedence + 1
            right = self.parse_expression(next_minimum)
            left = BinaryExpression(op, left, right)

    def parse_unary(self) -> Expression:
        token = self.peek()
        if token.kind == 'symbol' and token.text in _unary_spellings:
            self.advance()
            operator = _unary_spellings[token.text]
            if operator == UnaryOperator.NEG and self.peek().kind == 'integer':
                return Literal(-int(self.advance().text, 10))
            return UnaryExpression(operator, self.parse_unary())
        return self.parse_atom()

    def parse_atom(self) -> Expression:
        token = self.advance()
        match token.kind:
            case 'integer':
                return Literal(int(token.text, 10))
            case 'boolean':
                return Literal(_boolean_spellings[token.text])
            case 'identifier':
                return Variable(token.text, Type.UNKNOWN)
            case 'symbol' if token.text == '(':
                inner = self.parse_expression(1)
                closing = self.peek()
                if closing.kind != 'symbol' or closing.text != ')':
                    self.error('unclosed parenthesis', closing, [')'])
                self.advance()
                return inner
            case 'end':
                self.error('unexpected end of condition', token, _atom_start)
            case _:
                self.error('unexpected %r' % token.text, token, _atom_start)


def parse(source : str) -> Expression:
    """ parses a condition, raises ParseError on malformed input """
    return ConditionParser(source).parse()
