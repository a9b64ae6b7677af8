from pywp.ast.StatementExtractor import StatementExtractor

from typing import Optional

import ast


class ExpandIfExp(StatementExtractor):
    """
        AST transformer that transforms IfExps (ternary expressions)
        into if statements, so that every branch of the function is
        visible in its control flow
    """

    def __init__(self, counter=None):
        StatementExtractor.__init__(self, counter)

    def branch(self, node : ast.IfExp, make_statement) -> ast.If:
        result = ast.If(
            test=self.visit(node.test),
            body=[],
            orelse=[]
        )
        hoisted = self.pop_instructions()
        result.body = self.visit_sequence([make_statement(node.body)])
        result.orelse = self.visit_sequence([make_statement(node.orelse)])
        ast.copy_location(result, node)
        ast.fix_missing_locations(result)
        for h in hoisted:
            self.push_instruction(h)
        return result

    def visit_IfExp(self, node : ast.IfExp) -> ast.Name:
        # not handled by an enclosing statement: use a temporary variable
        name = self.fresh_tmp_var()
        self.push_instruction(self.branch(node, lambda value: self.assign_to(value, name)))

        result = ast.Name(id=name, ctx=ast.Load())
        ast.copy_location(result, node)
        return result

    def visit_Assign(self, node : ast.Assign) -> Optional[ast.stmt]:
        if not isinstance(node.value, ast.IfExp):
            node.value = self.visit(node.value)
            return node

        def assign(value):
            stmt = ast.Assign(targets=node.targets, value=value)
            return ast.copy_location(stmt, node)

        self.push_instruction(self.branch(node.value, assign))
        return None

    def visit_Return(self, node : ast.Return) -> Optional[ast.stmt]:
        if not isinstance(node.value, ast.IfExp):
            if node.value is not None:
                node.value = self.visit(node.value)
            return node

        def ret(value):
            stmt = ast.Return(value=value)
            return ast.copy_location(stmt, node)

        self.push_instruction(self.branch(node.value, ret))
        return None
