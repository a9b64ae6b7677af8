import ast


class StatementExtractor(ast.NodeTransformer):
    """
        Base class for NodeTransformers that move parts of expressions into
        statements of their own, placed right before the statement they were
        taken from.
    """

    def __init__(self, counter=None):
        self.instruction_stack = list()
        # shared between transformers so temporaries stay unique
        self.counter = counter if counter is not None else [0]

    def push_instruction(self, instruction):
        assert isinstance(instruction, ast.AST)
        self.instruction_stack.append(instruction)

    def pop_instructions(self) -> list[ast.stmt]:
        current = list(self.instruction_stack)
        self.instruction_stack.clear()
        return current

    def visit_sequence(self, statements : list) -> list[ast.stmt]:
        assert all(isinstance(s, ast.AST) for s in statements)

        result = list()
        for s in statements:
            stmt = self.visit(s)
            result.extend(self.pop_instructions())
            if stmt is None:
                continue
            if isinstance(stmt, list):
                result.extend(stmt)
            else:
                result.append(stmt)

        assert len(self.instruction_stack) == 0
        return result

    def fresh_tmp_var(self) -> str:
        var_name = '__tmp_' + str(self.counter[0])
        self.counter[0] += 1
        return var_name

    def assign_to(self, node : ast.expr, var_name : str) -> ast.Assign:
        assign = ast.Assign(
            targets=[ast.Name(var_name, ctx=ast.Store())],
            value=node
        )
        ast.copy_location(assign, node)
        ast.fix_missing_locations(assign)
        return assign

    def extract_expression(self, node : ast.expr) -> ast.Name:
        var_name = self.fresh_tmp_var()
        self.push_instruction(self.assign_to(node, var_name))

        result = ast.Name(id=var_name, ctx=ast.Load())
        ast.copy_location(result, node)
        return result

    def visit_If(self, node : ast.If) -> list[ast.stmt]:
        node.test = self.visit(node.test)
        hoisted = self.pop_instructions()
        node.body = self.visit_sequence(node.body)
        node.orelse = self.visit_sequence(node.orelse)
        return hoisted + [node]

    def visit_While(self, node : ast.While) -> ast.While:
        # the loop condition is evaluated on every iteration, nothing can be hoisted out of it
        node.body = self.visit_sequence(node.body)
        return node

    def visit_FunctionDef(self, node : ast.FunctionDef) -> ast.FunctionDef:
        node.body = self.visit_sequence(node.body)
        return node
