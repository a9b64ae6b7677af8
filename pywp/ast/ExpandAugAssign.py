import ast
import copy


class ExpandAugAssign(ast.NodeTransformer):
    """
        AST transformer that turns augmented assignments `x op= e` into
        `x = x op e`
    """

    def visit_AugAssign(self, node : ast.AugAssign) -> ast.Assign:
        assert isinstance(node.target, ast.Name), node.target

        lvalue = copy.copy(node.target)
        lvalue.ctx = ast.Store()
        rvalue = copy.copy(node.target)
        rvalue.ctx = ast.Load()

        assign = ast.Assign(
            targets=[lvalue],
            value=ast.BinOp(rvalue, node.op, self.visit(node.value))
        )
        ast.copy_location(assign, node)
        ast.fix_missing_locations(assign)
        return assign
