from pywp.ast import ExpandAugAssign, ExpandIfExp, ExtractCalls

from pywp import log

import ast
import copy


def transformers() -> list[ast.NodeTransformer]:
    # one counter for all passes, temporaries of different passes must not clash
    counter = [0]
    return [
        ExpandAugAssign(),
        ExpandIfExp(counter),
        ExtractCalls(counter),
    ]


def preprocess_function(node : ast.FunctionDef) -> ast.FunctionDef:
    """
    Normalizes a function body: no augmented assignments, no conditional
    expressions and no calls nested inside other expressions.
    The given node is left untouched.
    """
    tree = copy.deepcopy(node)
    for t in transformers():
        tree = t.visit(tree)
        tree = ast.fix_missing_locations(tree)
    log.printer.log_debug(3, '[PREPROCESS DEBUG] %s:\n%s' % (node.name, ast.unparse(tree)))
    return tree
