#!/usr/bin/env python
"""
Weakest preconditions over a control flow graph.

The graph is walked backward from the return blocks. Loop headers are cut
points: reaching one yields its invariant, and the loop itself contributes
proof obligations that are collected next to the result.
"""

from __future__ import annotations

from dataclasses import dataclass

from pywp.cfg import ControlFlowGraph, BasicBlock, Assign, Call, Goto, Branch, Return
from pywp.expression import (
    Expression, Variable, Type, conjoin, implies, negate
)
from pywp.errors import UnsupportedError, UnsupportedKind, TypeCheckError, TypeMismatchError
from pywp.typecheck import RETURN_VARIABLE, typecheck

from pywp import log


@dataclass(frozen=True)
class Contract:
    """ pre- and postcondition of a callee, resolved against its parameters """
    name : str
    params : tuple[Variable, ...]
    return_type : Type
    pre : Expression
    post : Expression


class SSA:
    """ fresh names `name#k`; '#' cannot occur in source identifiers """

    def __init__(self):
        self.indices : dict[str, int] = {}

    def next(self, name : str) -> str:
        self.indices[name] = self.indices.get(name, 0) + 1
        return '%s#%d' % (name, self.indices[name])

    def fresh(self, var : Variable) -> Variable:
        return Variable(self.next(var.name), var.type)


class WeakestPreconditionGenerator:
    def __init__(self, cfg : ControlFlowGraph, post : Expression, contracts : dict[str, Contract] = None):
        self.cfg = cfg
        self.post = post
        self.contracts = contracts or {}
        self.cache : dict[int, Expression] = {}
        self.obligations : list[Expression] = []
        self.ssa = SSA()
        self.loops = cfg.loop_headers()

    def generate(self) -> Expression:
        """ wp of the entry block; obligations are available afterwards """
        for header in self.loops:
            if self.cfg[header].invariant is None:
                raise UnsupportedError(
                    UnsupportedKind.UNANNOTATED_LOOP,
                    'loop without invariant',
                    self.cfg[header].lineno
                )

        result = self.wp(self.cfg.entry)
        for header in self.loops:
            self.obligations.extend(self.loop_obligations(header))
        return result

    def wp(self, index : int) -> Expression:
        if index in self.cache:
            return self.cache[index]

        block = self.cfg[index]
        if index in self.loops:
            result = block.invariant
        else:
            result = self.block_wp(block)

        log.printer.log_debug(5, '[WP DEBUG] wp(%d) = %s' % (index, result))
        self.cache[index] = result
        return result

    def block_wp(self, block : BasicBlock) -> Expression:
        """ wp of a block itself, ignoring whether it heads a loop """
        match block.terminator:
            case Return(value=None):
                result = self.post
            case Return(value=value):
                result = self.post.substitute({RETURN_VARIABLE : value})
            case Goto(target=target):
                result = self.wp(target)
            case Branch(guard=guard, true_target=t, false_target=f):
                result = conjoin([
                    implies(guard, self.wp(t)),
                    implies(negate(guard), self.wp(f)),
                ])
            case _:
                raise ValueError('block %d has no terminator' % block.index)

        for op in reversed(block.operations):
            match op:
                case Assign(target=target, value=value):
                    result = result.substitute({target.name : value})
                case Call():
                    result = self.call_wp(op, result, block)
        return result

    def call_wp(self, call : Call, post : Expression, block : BasicBlock) -> Expression:
        contract = self.contracts.get(call.callee)
        if contract is None:
            raise UnsupportedError(
                UnsupportedKind.OPAQUE_CALL,
                'call to \'%s\' which has no contract' % call.callee,
                block.lineno
            )
        if len(call.args) != len(contract.params):
            raise TypeCheckError(
                'call to \'%s\' expects %d arguments, got %d' % (call.callee, len(contract.params), len(call.args)),
                block.lineno
            )

        actuals = {p.name : a for p, a in zip(contract.params, call.args)}
        for p, a in zip(contract.params, call.args):
            if typecheck(a) != p.type:
                raise TypeMismatchError(a, p.type, typecheck(a), block.lineno)

        if call.target is not None:
            result = self.ssa.fresh(call.target)
            post = post.substitute({call.target.name : result})
        else:
            result = self.ssa.fresh(Variable(RETURN_VARIABLE, contract.return_type))

        requires = contract.pre.substitute(actuals)
        ensures = contract.post.substitute(dict(actuals, **{RETURN_VARIABLE : result}))
        log.printer.log_debug(5, '[WP DEBUG] call %s: requires %s, ensures %s' % (call, requires, ensures))
        return conjoin([requires, implies(ensures, post)])

    def loop_obligations(self, header : int) -> list[Expression]:
        """
        Obligations for the loop at header: the invariant is preserved by the
        body and implies whatever has to hold after the loop. Every variable
        the function writes is renamed, so the obligations cover every state
        in which the invariant holds and nothing but the invariant is known
        about them.
        """
        block = self.cfg[header]
        invariant = block.invariant

        match block.terminator:
            case Branch(guard=guard, true_target=t, false_target=f) if not block.operations:
                obligations = [
                    implies(conjoin([invariant, guard]), self.wp(t)),
                    implies(conjoin([invariant, negate(guard)]), self.wp(f)),
                ]
            case _:
                obligations = [implies(invariant, self.block_wp(block))]

        havoc = {
            name : self.ssa.fresh(var)
            for name, var in self.cfg.assigned_variables(self.cfg.reachable()).items()
        }
        log.printer.log_debug(5, '[WP DEBUG] loop at %d havocs %s' % (header, ', '.join(str(v) for v in havoc.values())))
        return [o.substitute(havoc) for o in obligations]


def wp(cfg : ControlFlowGraph, post : Expression, contracts : dict[str, Contract] = None) -> Expression:
    """ weakest precondition of the whole graph, ignoring loop obligations """
    return WeakestPreconditionGenerator(cfg, post, contracts).generate()
