#!/usr/bin/env python3
"""
pywp.visual
-----------

Graphviz rendering of control flow graphs. Nodes implement the small
Graphable interface from pywp.cfg.
"""

from __future__ import annotations

from graphviz import Digraph

from pywp.cfg import ControlFlowGraph, GraphableBlock


def graph_to_dot(roots, nodeattrs={"shape": "box"}, name=None):
    assert isinstance(roots, list)
    dot = Digraph(name)
    for (key, value) in nodeattrs.items():
        dot.attr("node", [(key, value)])
    reached = set()
    for root in roots:
        # insertion ordered, so the output is the same on every run
        waitlist = {root : None}
        while len(waitlist) > 0:
            node = next(iter(waitlist))
            del waitlist[node]
            if node in reached:
                continue
            reached.add(node)
            dot.node(str(node.get_node_id()), label=node.get_node_label())
            for successor in node.get_successors():
                for edgelabel in node.get_edge_labels(successor):
                    dot.edge(str(node.get_node_id()), str(successor.get_node_id()), label=edgelabel)
                if successor not in reached:
                    waitlist[successor] = None
    return dot


def cfg_to_dot(cfg : ControlFlowGraph, name : str | None = None) -> Digraph:
    """ the blocks reachable from the entry, loop headers drawn bold """
    dot = graph_to_dot([GraphableBlock(cfg, cfg.entry)], name=name)
    for header in cfg.loop_headers():
        dot.node(str(header), style='bold')
    return dot
