"""
Blocking-chain analysis over wait-for edges.

Nodes are transaction ids; an edge points from the waiting transaction to the
one blocking it. Root blockers block someone and wait on nobody. Cycles are
client-side deadlock hints only; InnoDB resolves real deadlocks itself.
"""

from __future__ import annotations

from typing import Iterable, List

import networkx as nx

from lock_inspector.domain.models import BlockingSummary, WaitEdge


def build_wait_for_graph(edges: Iterable[WaitEdge]) -> nx.DiGraph:
    graph = nx.DiGraph()
    for edge in edges:
        if edge.waiting_transaction_id is None or edge.blocking_transaction_id is None:
            continue
        if edge.waiting_transaction_id == edge.blocking_transaction_id:
            continue
        graph.add_edge(edge.waiting_transaction_id, edge.blocking_transaction_id)
    return graph


def _longest_chain(graph: nx.DiGraph) -> int:
    if graph.number_of_edges() == 0:
        return 0
    if nx.is_directed_acyclic_graph(graph):
        return nx.dag_longest_path_length(graph)
    # Collapse cycles so the depth of the remaining chain is still defined.
    return nx.dag_longest_path_length(nx.condensation(graph))


def _canonical_cycle(cycle: List[str]) -> List[str]:
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


def analyze_blocking(edges: Iterable[WaitEdge]) -> BlockingSummary:
    """Summarize who blocks whom. Empty input yields a non-blocking summary."""
    graph = build_wait_for_graph(edges)
    if graph.number_of_edges() == 0:
        return BlockingSummary()

    root_blockers = sorted(
        node for node in graph.nodes if graph.in_degree(node) > 0 and graph.out_degree(node) == 0
    )
    blocked = sorted(node for node in graph.nodes if graph.out_degree(node) > 0)
    cycles = sorted(_canonical_cycle(list(c)) for c in nx.simple_cycles(graph))

    return BlockingSummary(
        blocking=True,
        root_blockers=root_blockers,
        blocked_transactions=blocked,
        max_chain_depth=_longest_chain(graph),
        cycles=cycles,
    )


__all__ = ["analyze_blocking", "build_wait_for_graph"]
