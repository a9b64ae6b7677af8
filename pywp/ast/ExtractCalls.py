from pywp.ast.StatementExtractor import StatementExtractor

import ast


class ExtractCalls(StatementExtractor):
    """
        AST transformer that moves every call nested inside an expression
        into an assignment to a temporary variable. Afterwards calls only
        occur as `x = f(...)` or as expression statements `f(...)`, and
        their arguments are free of calls.
    """

    def __init__(self, counter=None):
        StatementExtractor.__init__(self, counter)

    def visit_arguments_of(self, node : ast.Call) -> ast.Call:
        node.args = [self.visit(a) for a in node.args]
        return node

    def visit_Call(self, node : ast.Call) -> ast.Name:
        self.visit_arguments_of(node)
        return self.extract_expression(node)

    def visit_Assign(self, node : ast.Assign) -> ast.Assign:
        if isinstance(node.value, ast.Call):
            self.visit_arguments_of(node.value)
        else:
            node.value = self.visit(node.value)
        return node

    def visit_AnnAssign(self, node : ast.AnnAssign) -> ast.AnnAssign:
        if isinstance(node.value, ast.Call):
            self.visit_arguments_of(node.value)
        elif node.value is not None:
            node.value = self.visit(node.value)
        return node

    def visit_Expr(self, node : ast.Expr) -> ast.Expr:
        if isinstance(node.value, ast.Call):
            self.visit_arguments_of(node.value)
        return node
