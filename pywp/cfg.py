#!/usr/bin/env python
"""
Control flow graph of a single function.

Blocks live in an arena and refer to each other by index. Every block holds
a straight-line sequence of operations and exactly one terminator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from pywp.expression import Expression, Variable


# ------------------------------------------------------------------ #
#  operations and terminators                                        #
# ------------------------------------------------------------------ #
@dataclass(frozen=True)
class Assign:
    target : Variable
    value : Expression

    def __str__(self):
        return '%s = %s' % (self.target, self.value)


@dataclass(frozen=True)
class Call:
    target : Optional[Variable]
    callee : str
    args : tuple[Expression, ...]

    def __str__(self):
        call = '%s(%s)' % (self.callee, ', '.join(str(a) for a in self.args))
        if self.target is None:
            return call
        return '%s = %s' % (self.target, call)


@dataclass(frozen=True)
class Goto:
    target : int

    def successors(self) -> list[int]:
        return [self.target]

    def __str__(self):
        return 'goto %d' % self.target


@dataclass(frozen=True)
class Branch:
    guard : Expression
    true_target : int
    false_target : int

    def successors(self) -> list[int]:
        return [self.true_target, self.false_target]

    def __str__(self):
        return 'if %s goto %d else %d' % (self.guard, self.true_target, self.false_target)


@dataclass(frozen=True)
class Return:
    value : Optional[Expression] = None

    def successors(self) -> list[int]:
        return []

    def __str__(self):
        return 'return' if self.value is None else 'return %s' % self.value


Operation = Assign | Call
Terminator = Goto | Branch | Return


class BasicBlock:
    def __init__(self, index : int, lineno : int | None = None):
        self.index = index
        self.operations : list[Operation] = list()
        self.terminator : Terminator | None = None
        self.invariant : Expression | None = None
        self.lineno = lineno

    def successors(self) -> list[int]:
        return self.terminator.successors() if self.terminator else []

    def is_return(self) -> bool:
        return isinstance(self.terminator, Return)

    def label(self) -> str:
        lines = [str(op) for op in self.operations]
        lines.append(str(self.terminator))
        if self.invariant is not None:
            lines.insert(0, 'invariant %s' % self.invariant)
        return '\n'.join(lines)

    def __str__(self):
        return '(%s)' % self.index


class ControlFlowGraph:
    def __init__(self, blocks : list[BasicBlock] = None, entry : int = 0):
        self.blocks : list[BasicBlock] = list(blocks or [])
        self.entry = entry

    def new_block(self, lineno : int | None = None) -> BasicBlock:
        block = BasicBlock(len(self.blocks), lineno)
        self.blocks.append(block)
        return block

    def __getitem__(self, index : int) -> BasicBlock:
        return self.blocks[index]

    def __iter__(self) -> Iterator[BasicBlock]:
        return iter(self.blocks)

    def __len__(self):
        return len(self.blocks)

    def predecessors(self) -> dict[int, list[int]]:
        result : dict[int, list[int]] = {b.index : [] for b in self.blocks}
        for b in self.blocks:
            for s in b.successors():
                result[s].append(b.index)
        return result

    def reachable(self) -> list[int]:
        """ blocks reachable from the entry, in depth-first preorder """
        order = []
        seen = set()
        stack = [self.entry]
        while stack:
            n = stack.pop()
            if n in seen:
                continue
            seen.add(n)
            order.append(n)
            stack.extend(reversed(self[n].successors()))
        return order

    def back_edges(self) -> list[tuple[int, int]]:
        """
        Edges (source, header) that close a cycle in a depth-first search
        from the entry. Successors are explored in their stored order, so the
        result is the same on every call.
        """
        result = []
        on_stack = set()
        done = set()
        # iterative dfs, each frame is (node, iterator over successors)
        stack = [(self.entry, iter(self[self.entry].successors()))]
        on_stack.add(self.entry)
        while stack:
            node, successors = stack[-1]
            advanced = False
            for s in successors:
                if s in on_stack:
                    result.append((node, s))
                elif s not in done:
                    on_stack.add(s)
                    stack.append((s, iter(self[s].successors())))
                    advanced = True
                    break
            if not advanced:
                stack.pop()
                on_stack.discard(node)
                done.add(node)
        return result

    def loop_headers(self) -> dict[int, set[int]]:
        """ loop header -> blocks of its natural loop, headers in discovery order """
        predecessors = self.predecessors()
        reachable = set(self.reachable())
        loops : dict[int, set[int]] = {}
        for source, header in self.back_edges():
            body = loops.setdefault(header, {header})
            waitlist = [source]
            while waitlist:
                n = waitlist.pop()
                if n in body or n not in reachable:
                    continue
                body.add(n)
                waitlist.extend(predecessors[n])
        return loops

    def assigned_variables(self, blocks) -> dict[str, Variable]:
        """ variables written by the operations of the given blocks """
        result : dict[str, Variable] = {}
        for index in sorted(blocks):
            for op in self[index].operations:
                if op.target is not None:
                    result.setdefault(op.target.name, op.target)
        return result

    def __str__(self):
        return '\n'.join('%s\n  %s' % (b, b.label().replace('\n', '\n  ')) for b in self.blocks)


# ------------------------------------------------------------------ #
#  graph rendering adapter                                           #
# ------------------------------------------------------------------ #
class Graphable:
    def get_node_label(self):
        pass

    def get_edge_labels(self, other):
        pass

    def get_successors(self):
        pass


class GraphableBlock(Graphable):
    def __init__(self, cfg : ControlFlowGraph, index : int):
        self.cfg = cfg
        self.index = index

    def get_node_label(self):
        return '%d\n%s' % (self.index, self.cfg[self.index].label())

    def get_edge_labels(self, other):
        terminator = self.cfg[self.index].terminator
        match terminator:
            case Branch():
                labels = []
                if terminator.true_target == other.index:
                    labels.append('[%s]' % terminator.guard)
                if terminator.false_target == other.index:
                    labels.append('[!(%s)]' % terminator.guard)
                return labels
            case Goto():
                return [''] if terminator.target == other.index else []
            case _:
                return []

    def get_successors(self):
        return [GraphableBlock(self.cfg, s) for s in dict.fromkeys(self.cfg[self.index].successors())]

    def get_node_id(self):
        return self.index

    def __eq__(self, other):
        return self.cfg is other.cfg and self.index == other.index

    def __hash__(self):
        return hash(self.index)
