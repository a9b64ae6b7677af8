import ast

from pywp.errors import UnsupportedError, UnsupportedKind


def invariant_text(statement : ast.stmt) -> str | None:
    """ the condition of an `invariant("...")` statement, None for other statements """
    match statement:
        case ast.Expr(value=ast.Call(func=ast.Name(id='invariant'), args=[ast.Constant(value=str() as text)], keywords=[])):
            return text
    return None


def is_docstring(statement : ast.stmt) -> bool:
    return isinstance(statement, ast.Expr) and isinstance(statement.value, ast.Constant) \
        and isinstance(statement.value.value, str)


class ASTChecker(ast.NodeVisitor):
    """
        Checks that a function only uses the fragment of python the verifier
        understands and raises UnsupportedError for the first construct
        outside of it.

        This class can also be considered as documentation of that fragment.
    """

    passive = (
        ast.expr_context, ast.Name, ast.Pass,
        ast.And, ast.Or,
        ast.Add, ast.Sub, ast.Mult, ast.FloorDiv, ast.Mod,
        ast.Not, ast.USub, ast.UAdd,
        ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE,
        ast.BoolOp, ast.IfExp,
    )

    def __init__(self):
        self.depth = 0
        # enclosing while loops of the current statement
        self.loop_depth = 0

    def _reject(self, node, what : str):
        raise UnsupportedError(
            UnsupportedKind.UNSUPPORTED_CONSTRUCT,
            '%s is not supported' % what,
            getattr(node, 'lineno', None)
        )

    def generic_visit(self, node):
        if isinstance(node, self.passive):
            return ast.NodeVisitor.generic_visit(self, node)
        self._reject(node, type(node).__name__)

    def visit_sequence(self, statements : list[ast.stmt]):
        for s in statements:
            self.visit(s)

    def visit_FunctionDef(self, node : ast.FunctionDef):
        if self.depth > 0:
            self._reject(node, 'nested function definition')
        args = node.args
        if args.vararg or args.kwarg or args.kwonlyargs or args.posonlyargs or args.defaults:
            self._reject(node, 'parameter kind other than positional without default')
        self.depth += 1
        body = node.body[1:] if node.body and is_docstring(node.body[0]) else node.body
        self.visit_sequence(body)
        self.depth -= 1

    def visit_Assign(self, node : ast.Assign):
        if len(node.targets) != 1 or not isinstance(node.targets[0], ast.Name):
            self._reject(node, 'assignment to %s' % ast.unparse(node.targets[0] if len(node.targets) == 1 else node))
        self.visit(node.value)

    def visit_AnnAssign(self, node : ast.AnnAssign):
        if not isinstance(node.target, ast.Name):
            self._reject(node, 'assignment to %s' % ast.unparse(node.target))
        if node.value is not None:
            self.visit(node.value)

    def visit_AugAssign(self, node : ast.AugAssign):
        if not isinstance(node.target, ast.Name):
            self._reject(node, 'assignment to %s' % ast.unparse(node.target))
        self.visit(node.op)
        self.visit(node.value)

    def visit_Expr(self, node : ast.Expr):
        if not isinstance(node.value, ast.Call):
            self._reject(node, 'expression statement')
        self.visit(node.value)

    def visit_If(self, node : ast.If):
        self.visit(node.test)
        self.visit_sequence(node.body)
        self.visit_sequence(node.orelse)

    def visit_While(self, node : ast.While):
        if node.orelse:
            self._reject(node, 'while-else')
        for n in ast.walk(node.test):
            if isinstance(n, (ast.Call, ast.IfExp)):
                self._reject(n, '%s in a loop condition' % type(n).__name__)
        self.visit(node.test)

        body = list(node.body)
        while body and invariant_text(body[0]) is not None:
            body.pop(0)
        self.loop_depth += 1
        self.visit_sequence(body)
        self.loop_depth -= 1

    def visit_Break(self, node : ast.Break):
        if self.loop_depth == 0:
            self._reject(node, "'break' outside a loop")

    def visit_Continue(self, node : ast.Continue):
        if self.loop_depth == 0:
            self._reject(node, "'continue' outside a loop")

    def visit_Return(self, node : ast.Return):
        if node.value is not None:
            self.visit(node.value)

    def visit_Constant(self, node : ast.Constant):
        if not isinstance(node.value, int):
            self._reject(node, 'constant %r' % (node.value,))

    def visit_BinOp(self, node : ast.BinOp):
        if isinstance(node.op, ast.Div):
            self._reject(node, 'true division (use //)')
        self.visit(node.left)
        self.visit(node.op)
        self.visit(node.right)

    def visit_UnaryOp(self, node : ast.UnaryOp):
        self.visit(node.op)
        self.visit(node.operand)

    def visit_Compare(self, node : ast.Compare):
        self.visit(node.left)
        for op in node.ops:
            self.visit(op)
        for c in node.comparators:
            self.visit(c)

    def visit_Call(self, node : ast.Call):
        if not isinstance(node.func, ast.Name):
            self._reject(node, 'call of %s' % ast.unparse(node.func))
        if node.func.id == 'invariant':
            self._reject(node, 'invariant() outside the start of a while body')
        if node.keywords:
            self._reject(node, 'keyword argument')
        for a in node.args:
            if isinstance(a, ast.Starred):
                self._reject(a, 'starred argument')
            self.visit(a)
