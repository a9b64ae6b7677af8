#!/usr/bin/env python
"""
Reads python source and lowers annotated functions into the form the
verifier works on: a VariableTable and a ControlFlowGraph per function.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass

from pywp.ast import ASTChecker, invariant_text, is_docstring
from pywp.preprocessor import preprocess_function
from pywp.cfg import ControlFlowGraph, BasicBlock, Assign, Call, Goto, Branch, Return
from pywp.condition_parser import parse
from pywp.expression import (
    Expression, Literal, Variable, BinaryExpression, UnaryExpression,
    BinaryOperator, UnaryOperator, Type, conjoin
)
from pywp.typecheck import VariableTable, RETURN_VARIABLE, resolve, typecheck, check_condition
from pywp.errors import (
    AnnotationError, TypeCheckError, TypeMismatchError, UnknownTypeError,
    UnsupportedError, UnsupportedKind
)

from pywp import log


DECORATOR_NAME = 'condition'
TEMPORARY_PREFIX = '__tmp_'


def annotation_type(annotation : ast.expr | None) -> Type:
    """ unannotated values are integers """
    match annotation:
        case None:
            return Type.INT
        case ast.Name(id='int'):
            return Type.INT
        case ast.Name(id='bool'):
            return Type.BOOL
        case _:
            return Type.UNKNOWN


@dataclass(frozen=True)
class FunctionSignature:
    name : str
    params : tuple[Variable, ...]
    return_type : Type

    @staticmethod
    def from_ast(node : ast.FunctionDef) -> FunctionSignature:
        params = tuple(Variable(a.arg, annotation_type(a.annotation)) for a in node.args.args)
        return FunctionSignature(node.name, params, annotation_type(node.returns))

    def table(self) -> VariableTable:
        return VariableTable({p.name : p.type for p in self.params}, self.return_type)

    def __str__(self):
        params = ', '.join('%s: %s' % (p.name, p.type) for p in self.params)
        return '%s(%s) -> %s' % (self.name, params, self.return_type)


@dataclass
class AnnotatedFunction:
    """
    A function definition together with the condition strings of its
    decorator. `error` holds the message of a malformed decorator.
    """
    name : str
    node : ast.FunctionDef
    lineno : int
    pre : str | None = None
    post : str | None = None
    error : str | None = None

    def is_annotated(self) -> bool:
        return self.error is not None or (self.pre is not None and self.post is not None)


def _is_condition_decorator(decorator : ast.expr) -> bool:
    match decorator:
        case ast.Call(func=ast.Name(id=name)) | ast.Call(func=ast.Attribute(attr=name)):
            return name == DECORATOR_NAME
    return False


def _read_decorator(function : AnnotatedFunction, decorator : ast.Call):
    """ fills pre and post of function, raises AnnotationError """
    values = {}
    if len(decorator.args) > 2:
        raise AnnotationError('@%s takes at most two positional arguments' % DECORATOR_NAME, decorator.lineno)
    for key, arg in zip(('pre', 'post'), decorator.args):
        values[key] = arg
    for keyword in decorator.keywords:
        if keyword.arg not in ('pre', 'post'):
            raise AnnotationError('unknown argument \'%s\' of @%s' % (keyword.arg, DECORATOR_NAME), decorator.lineno)
        if keyword.arg in values:
            raise AnnotationError('argument \'%s\' given twice' % keyword.arg, decorator.lineno)
        values[keyword.arg] = keyword.value

    for key, value in values.items():
        match value:
            case ast.Constant(value=None):
                continue
            case ast.Constant(value=str() as text):
                setattr(function, key, text)
            case _:
                raise AnnotationError('argument \'%s\' of @%s must be a string literal' % (key, DECORATOR_NAME), decorator.lineno)


def collect_functions(tree : ast.Module) -> list[AnnotatedFunction]:
    """ all top level function definitions of a module, in source order """
    result = []
    for node in tree.body:
        if not isinstance(node, ast.FunctionDef):
            continue
        function = AnnotatedFunction(node.name, node, node.lineno)
        decorators = [d for d in node.decorator_list if _is_condition_decorator(d)]
        try:
            if len(decorators) > 1:
                raise AnnotationError('more than one @%s decorator' % DECORATOR_NAME, node.lineno)
            if decorators:
                _read_decorator(function, decorators[0])
        except AnnotationError as x:
            function.pre = function.post = None
            function.error = str(x)
        result.append(function)
    return result


def collect_signatures(functions : list[AnnotatedFunction]) -> dict[str, FunctionSignature]:
    return {f.name : FunctionSignature.from_ast(f.node) for f in functions}


# ------------------------------------------------------------------ #
#  expressions                                                       #
# ------------------------------------------------------------------ #
_binary_operators = {
    ast.Add : BinaryOperator.ADD,
    ast.Sub : BinaryOperator.SUB,
    ast.Mult : BinaryOperator.MUL,
    ast.FloorDiv : BinaryOperator.DIV,
    ast.Mod : BinaryOperator.MOD,
}

_comparison_operators = {
    ast.Eq : BinaryOperator.EQ,
    ast.NotEq : BinaryOperator.NE,
    ast.Lt : BinaryOperator.LT,
    ast.LtE : BinaryOperator.LE,
    ast.Gt : BinaryOperator.GT,
    ast.GtE : BinaryOperator.GE,
}


def translate(node : ast.expr) -> Expression:
    """ untyped Expression for a python expression free of calls """
    match node:
        case ast.Constant(value=bool() | int() as value):
            return Literal(value)
        case ast.Name(id=name):
            return Variable(name)
        case ast.BinOp(left=l, op=op, right=r) if type(op) in _binary_operators:
            return BinaryExpression(_binary_operators[type(op)], translate(l), translate(r))
        case ast.UnaryOp(op=ast.Not(), operand=o):
            return UnaryExpression(UnaryOperator.NOT, translate(o))
        case ast.UnaryOp(op=ast.USub(), operand=ast.Constant(value=int() as value)) if not isinstance(value, bool):
            return Literal(-value)
        case ast.UnaryOp(op=ast.USub(), operand=o):
            return UnaryExpression(UnaryOperator.NEG, translate(o))
        case ast.UnaryOp(op=ast.UAdd(), operand=o):
            return translate(o)
        case ast.BoolOp(op=op, values=values):
            operator = BinaryOperator.AND if isinstance(op, ast.And) else BinaryOperator.OR
            result = translate(values[0])
            for v in values[1:]:
                result = BinaryExpression(operator, result, translate(v))
            return result
        case ast.Compare(left=left, ops=ops, comparators=comparators):
            # a < b < c is a < b and b < c
            terms = [translate(left)] + [translate(c) for c in comparators]
            parts = []
            for i, op in enumerate(ops):
                if type(op) not in _comparison_operators:
                    break
                parts.append(BinaryExpression(_comparison_operators[type(op)], terms[i], terms[i + 1]))
            else:
                return conjoin(parts)

    raise UnsupportedError(
        UnsupportedKind.UNSUPPORTED_CONSTRUCT,
        'expression \'%s\' is not supported' % ast.unparse(node),
        getattr(node, 'lineno', None)
    )


# ------------------------------------------------------------------ #
#  control flow                                                      #
# ------------------------------------------------------------------ #
class CFGBuilder(ast.NodeVisitor):
    """
    Lowers a preprocessed function body into a ControlFlowGraph. Variables
    are declared in the table when they are first assigned, with the type
    of the assigned value unless an annotation says otherwise.
    """

    def __init__(self, table : VariableTable, signatures : dict[str, FunctionSignature], lineno : int | None = None):
        self.table = table
        self.signatures = signatures
        self.cfg = ControlFlowGraph()
        self.current : BasicBlock = self.cfg.new_block(lineno)
        # (header, exit) of the enclosing loops
        self.loops : list[tuple[int, int]] = []

    def build(self, body : list[ast.stmt]) -> ControlFlowGraph:
        if body and is_docstring(body[0]):
            body = body[1:]
        self.visit_sequence(body)
        if self.current.terminator is None:
            self.current.terminator = Return(None)
        return self.cfg

    def visit_sequence(self, statements : list[ast.stmt]):
        for s in statements:
            self.visit(s)

    def generic_visit(self, node):
        raise UnsupportedError(
            UnsupportedKind.UNSUPPORTED_CONSTRUCT,
            '%s is not supported' % type(node).__name__,
            getattr(node, 'lineno', None)
        )

    def terminate(self, terminator, lineno : int):
        """ ends the current block, code following it goes to a fresh block """
        self.current.terminator = terminator
        self.current = self.cfg.new_block(lineno)

    def enter(self, block : BasicBlock):
        self.current = block

    def expression(self, node : ast.expr) -> Expression:
        try:
            result = resolve(translate(node), self.table)
            typecheck(result)
        except TypeCheckError as x:
            if x.lineno is None:
                x.lineno = node.lineno
            raise
        return result

    def guard(self, node : ast.expr) -> Expression:
        """ branch condition, integers are true when not zero """
        result = self.expression(node)
        if typecheck(result) == Type.INT:
            result = BinaryExpression(BinaryOperator.NE, result, Literal(0))
        return result

    def declare(self, name : str, var_type : Type, lineno : int) -> Variable:
        """ the variable assigned by a statement, declared on first assignment """
        if name == RETURN_VARIABLE:
            raise UnsupportedError(
                UnsupportedKind.UNSUPPORTED_CONSTRUCT,
                'the name \'%s\' is reserved for the return value' % RETURN_VARIABLE,
                lineno
            )
        if name not in self.table:
            if name.startswith(TEMPORARY_PREFIX):
                self.table.declare_temporary(name, var_type)
            else:
                self.table.declare_local(name, var_type)
        try:
            return self.table.variable(name)
        except TypeCheckError as x:
            x.lineno = lineno
            raise

    def assign(self, name : str, value : ast.expr, lineno : int):
        if isinstance(value, ast.Call):
            self.call(name, value, lineno)
            return

        expression = self.expression(value)
        actual = typecheck(expression)
        target = self.declare(name, actual, lineno)
        if target.type != actual:
            raise TypeMismatchError(expression, target.type, actual, lineno)
        self.current.operations.append(Assign(target, expression))

    def call(self, name : str | None, node : ast.Call, lineno : int):
        callee = node.func.id
        if callee not in self.signatures:
            raise UnsupportedError(
                UnsupportedKind.OPAQUE_CALL,
                'call to \'%s\' which is not defined in this module' % callee,
                lineno
            )
        signature = self.signatures[callee]
        if len(node.args) != len(signature.params):
            raise TypeCheckError(
                'call to \'%s\' expects %d arguments, got %d' % (callee, len(signature.params), len(node.args)),
                lineno
            )

        args = []
        for param, a in zip(signature.params, node.args):
            argument = self.expression(a)
            if param.type == Type.UNKNOWN:
                raise UnknownTypeError(param.name, lineno)
            if typecheck(argument) != param.type:
                raise TypeMismatchError(argument, param.type, typecheck(argument), lineno)
            args.append(argument)

        target = None
        if name is not None:
            if signature.return_type == Type.UNKNOWN:
                raise UnknownTypeError(RETURN_VARIABLE, lineno)
            target = self.declare(name, signature.return_type, lineno)
            if target.type != signature.return_type:
                raise TypeMismatchError(node.func.id, target.type, signature.return_type, lineno)
        self.current.operations.append(Call(target, callee, tuple(args)))

    def visit_Assign(self, node : ast.Assign):
        self.assign(node.targets[0].id, node.value, node.lineno)

    def visit_AnnAssign(self, node : ast.AnnAssign):
        name = node.target.id
        declared = annotation_type(node.annotation)
        if name in self.table and self.table.lookup(name) != declared:
            raise TypeCheckError(
                '\'%s\' is declared as %s but has type %s' % (name, declared, self.table.lookup(name)),
                node.lineno
            )
        self.declare(name, declared, node.lineno)
        if node.value is not None:
            self.assign(name, node.value, node.lineno)

    def visit_Expr(self, node : ast.Expr):
        self.call(None, node.value, node.lineno)

    def visit_Pass(self, node : ast.Pass):
        pass

    def visit_Return(self, node : ast.Return):
        if node.value is None:
            self.terminate(Return(None), node.lineno)
            return

        value = self.expression(node.value)
        if self.table.return_type == Type.UNKNOWN:
            raise UnknownTypeError(RETURN_VARIABLE, node.lineno)
        if typecheck(value) != self.table.return_type:
            raise TypeMismatchError(value, self.table.return_type, typecheck(value), node.lineno)
        self.terminate(Return(value), node.lineno)

    def visit_If(self, node : ast.If):
        guard = self.guard(node.test)
        branch = self.current

        then_block = self.cfg.new_block(node.body[0].lineno)
        self.enter(then_block)
        self.visit_sequence(node.body)
        then_end = self.current

        if node.orelse:
            else_block = self.cfg.new_block(node.orelse[0].lineno)
            self.enter(else_block)
            self.visit_sequence(node.orelse)
            else_end = self.current
        else:
            else_block = else_end = None

        join = self.cfg.new_block(node.end_lineno)
        branch.terminator = Branch(guard, then_block.index, (else_block or join).index)
        for end in (then_end, else_end):
            if end is not None and end.terminator is None:
                end.terminator = Goto(join.index)
        self.enter(join)

    def visit_While(self, node : ast.While):
        invariants = []
        body = list(node.body)
        while body and invariant_text(body[0]) is not None:
            invariants.append(parse(invariant_text(body.pop(0))))

        header = self.cfg.new_block(node.lineno)
        self.current.terminator = Goto(header.index)
        self.enter(header)
        guard = self.guard(node.test)

        body_block = self.cfg.new_block(body[0].lineno if body else node.lineno)
        exit_block = self.cfg.new_block(node.end_lineno)
        header.terminator = Branch(guard, body_block.index, exit_block.index)

        self.loops.append((header.index, exit_block.index))
        self.enter(body_block)
        self.visit_sequence(body)
        if self.current.terminator is None:
            self.current.terminator = Goto(header.index)
        self.loops.pop()

        # resolved after the body, invariants may refer to locals first assigned in it
        if invariants:
            try:
                header.invariant = check_condition(resolve(conjoin(invariants), self.table))
            except TypeCheckError as x:
                x.lineno = node.lineno
                raise
        self.enter(exit_block)

    def visit_Break(self, node : ast.Break):
        _, exit_block = self.loops[-1]
        self.terminate(Goto(exit_block), node.lineno)

    def visit_Continue(self, node : ast.Continue):
        header, _ = self.loops[-1]
        self.terminate(Goto(header), node.lineno)


def lower_function(function : AnnotatedFunction, signatures : dict[str, FunctionSignature]) -> tuple[VariableTable, ControlFlowGraph]:
    """
    Checks, preprocesses and lowers a function.
    Raises UnsupportedError, TypeCheckError or ParseError (for invariants).
    """
    ASTChecker().visit(function.node)
    signature = signatures[function.name]
    for p in signature.params:
        if p.name == RETURN_VARIABLE:
            raise UnsupportedError(
                UnsupportedKind.UNSUPPORTED_CONSTRUCT,
                'the name \'%s\' is reserved for the return value' % RETURN_VARIABLE,
                function.lineno
            )

    node = preprocess_function(function.node)
    table = signature.table()
    cfg = CFGBuilder(table, signatures, node.lineno).build(node.body)
    log.printer.log_debug(2, '[FRONTEND DEBUG] %s: %s\n%s' % (function.name, table, cfg))
    return table, cfg
