#!/usr/bin/env python

from pywp.cfg import ControlFlowGraph
from pywp.expression import Expression, conjoin, implies
from pywp.wp import WeakestPreconditionGenerator, Contract

from pywp import log


def build_vc(pre : Expression, post : Expression, cfg : ControlFlowGraph, contracts : dict[str, Contract] = None) -> Expression:
    """
    Verification condition `pre ==> (wp && obligations)` of a function.
    Loop obligations are appended in the order their headers are found, so
    building twice from the same inputs gives the same formula.
    """
    generator = WeakestPreconditionGenerator(cfg, post, contracts)
    weakest = generator.generate()
    log.printer.log_debug(1, '[VC DEBUG] wp: %s' % weakest)
    for o in generator.obligations:
        log.printer.log_debug(1, '[VC DEBUG] obligation: %s' % o)
    return implies(pre, conjoin([weakest] + generator.obligations))
