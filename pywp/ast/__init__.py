from pywp.ast.ASTChecker import ASTChecker, invariant_text, is_docstring

from pywp.ast.StatementExtractor import StatementExtractor
from pywp.ast.ExpandAugAssign import ExpandAugAssign
from pywp.ast.ExpandIfExp import ExpandIfExp
from pywp.ast.ExtractCalls import ExtractCalls
