#!/usr/bin/env python
"""
Per-function verification pipeline

    parse -> resolve -> typecheck -> lower -> wp -> build_vc -> check

and the driver that runs it for every annotated function of a module.
"""

from __future__ import annotations

import ast
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field

from pywp.cfg import ControlFlowGraph
from pywp.condition_parser import parse
from pywp.expression import Expression, Variable
from pywp.frontend import (
    AnnotatedFunction, FunctionSignature, collect_functions, collect_signatures, lower_function
)
from pywp.typecheck import VariableTable, RETURN_VARIABLE, resolve, check_condition
from pywp.vcgen import build_vc
from pywp.wp import Contract
from pywp.smt import check
from pywp.verdict import Verdict, Status, VerificationResult
from pywp.errors import (
    VerificationError, ParseError, AnnotationError, TypeCheckError, UnsupportedError
)

from pywp import log


# suffix of the names that stand for parameter values on entry
ENTRY_SUFFIX = '#0'


@dataclass
class VerifierOptions:
    timeout : float | None = None
    solver_name : str = 'z3'
    jobs : int = 1
    functions : list[str] = field(default_factory=list)
    print_vc : bool = False

    def selects(self, name : str) -> bool:
        return not self.functions or name in self.functions


class FunctionReport:
    """
    Outcome for one function: either a solver result, or the kind and
    message of the error that made the verifier skip it.
    """

    def __init__(self, name : str, lineno : int, status : Status = Status.OK):
        self.name = name
        self.lineno = lineno
        self.status = status
        self.result : VerificationResult | None = None
        self.error_kind : str | None = None
        self.error : str | None = None
        self.cfg : ControlFlowGraph | None = None
        self.vc : Expression | None = None

    @property
    def verdict(self) -> Verdict | None:
        return self.result.verdict if self.result is not None else None

    def fail(self, status : Status, error : VerificationError, kind : str | None = None):
        self.status = status
        self.error_kind = kind or type(error).__name__
        self.error = str(error)

    def describe(self) -> str:
        if self.status == Status.OK:
            return str(self.result)
        return '%s (%s: %s)' % (self.status, self.error_kind, self.error)

    def __str__(self):
        return '%s (line %s): %s' % (self.name, self.lineno, self.describe())


def condition(text : str, table : VariableTable) -> Expression:
    """ parses and type checks a pre- or postcondition """
    return check_condition(resolve(parse(text), table))


def build_contracts(functions : list[AnnotatedFunction], signatures : dict[str, FunctionSignature]) -> dict[str, Contract]:
    """
    Contracts of all annotated functions whose conditions are well formed.
    Conditions only see parameters and `ret`, anything else fails to resolve.
    """
    contracts = {}
    for f in functions:
        if f.error is not None or f.pre is None or f.post is None:
            continue
        signature = signatures[f.name]
        try:
            pre = condition(f.pre, signature.table())
            post = condition(f.post, signature.table())
        except VerificationError as x:
            log.printer.log_debug(1, '[VERIFIER DEBUG] no contract for %s: %s' % (f.name, x))
            continue
        contracts[f.name] = Contract(f.name, signature.params, signature.return_type, pre, post)
    return contracts


def _entry_values(post : Expression) -> tuple[dict[str, Variable], dict[str, Variable]]:
    """ renaming of the parameters in post to their entry values, and back """
    to_entry = {}
    restore = {}
    for name, var in post.free_variables().items():
        if name == RETURN_VARIABLE:
            continue
        entry = Variable(name + ENTRY_SUFFIX, var.type)
        to_entry[name] = entry
        restore[entry.name] = var
    return to_entry, restore


def verify_function(function : AnnotatedFunction, signatures : dict[str, FunctionSignature],
                    contracts : dict[str, Contract], options : VerifierOptions) -> FunctionReport:
    report = FunctionReport(function.name, function.lineno)
    if function.error is not None:
        report.fail(Status.ANNOTATION_ERROR, AnnotationError(function.error))
        return report

    log.printer.log_debug(1, '[VERIFIER DEBUG] verifying %s' % signatures[function.name])
    try:
        signature = signatures[function.name]
        pre = condition(function.pre, signature.table())
        post = condition(function.post, signature.table())

        _, cfg = lower_function(function, signatures)
        report.cfg = cfg

        to_entry, restore = _entry_values(post)
        report.vc = build_vc(pre, post.substitute(to_entry), cfg, contracts).substitute(restore)

        report.result = check(report.vc, options.timeout, options.solver_name)

    except ParseError as x:
        report.fail(Status.PARSE_ERROR, x)
    except AnnotationError as x:
        report.fail(Status.ANNOTATION_ERROR, x)
    except TypeCheckError as x:
        report.fail(Status.TYPE_ERROR, x)
    except UnsupportedError as x:
        report.fail(Status.UNSUPPORTED, x, str(x.kind))
    except VerificationError as x:
        report.fail(Status.ERROR, x)

    log.printer.log_intermediate_result(function.name, report)
    return report


def verify_module(tree : ast.Module, options : VerifierOptions) -> list[FunctionReport]:
    """ reports of the selected annotated functions, in source order """
    functions = collect_functions(tree)
    signatures = collect_signatures(functions)
    contracts = build_contracts(functions, signatures)

    selected = []
    for f in functions:
        if not options.selects(f.name):
            continue
        if not f.is_annotated():
            log.printer.log_debug(1, '[VERIFIER DEBUG] skipping %s, it has no pre- and postcondition' % f.name)
            continue
        selected.append(f)

    if options.jobs > 1 and len(selected) > 1:
        # one process per task, pysmt environments are global to a process
        with ProcessPoolExecutor(max_workers=options.jobs) as executor:
            futures = [executor.submit(verify_function, f, signatures, contracts, options) for f in selected]
            return [future.result() for future in futures]

    return [verify_function(f, signatures, contracts, options) for f in selected]


def verify_source(source : str, options : VerifierOptions = None, filename : str = '<unknown>') -> list[FunctionReport]:
    """ raises SyntaxError if source is not python """
    tree = ast.parse(source, filename)
    return verify_module(tree, options or VerifierOptions())
