"""Run-order tiers for the pipeline schedule (Kahn's algorithm)."""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterable, Mapping


def topological_tiers(edges: Mapping[str, Iterable[str]]) -> list[list[str]]:
    """Group action ids into tiers that can start together.

    *edges* maps every action id to the ids it waits for; each key is a node.
    Tiers are sorted, so the same graph always yields the same schedule.
    Callers guarantee the graph is acyclic.
    """
    in_degree: dict[str, int] = {node: 0 for node in edges}
    dependents: dict[str, list[str]] = defaultdict(list)

    for node, deps in edges.items():
        for dep in set(deps):
            in_degree[node] += 1
            dependents[dep].append(node)

    queue: deque[str] = deque(n for n, d in in_degree.items() if d == 0)
    tiers: list[list[str]] = []

    while queue:
        tier = sorted(queue)
        tiers.append(tier)
        queue.clear()
        for node in tier:
            for child in dependents[node]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    queue.append(child)

    return tiers
