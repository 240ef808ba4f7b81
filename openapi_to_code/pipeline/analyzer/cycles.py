"""
Detection of circular type aliases.

A definition may refer to itself through an object property, an array item or
a map value: those are structural boundaries and every target language can
express them. A definition that reaches itself only through reference, union
and intersection edges (A = B, B = A, or A = A & {...}) has no finite shape
and is rejected.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..errors import CircularTypeReference
from .ir_nodes import IRIntersection, IRReference, IRType, IRTypeDefinition, IRUnion


def alias_edges(node: IRType) -> list[str]:
    """Names a node depends on without crossing a structural boundary."""
    edges: list[str] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, IRReference):
            if current.name not in edges:
                edges.append(current.name)
        elif isinstance(current, (IRUnion, IRIntersection)):
            stack.extend(reversed(current.members))
    return edges


def find_alias_cycle(types: Sequence[IRTypeDefinition]) -> list[str] | None:
    """
    Find the first alias cycle among the definitions.

    Returns:
        The cycle as a list of names starting and ending with the same name,
        or None when the definitions are acyclic
    """
    graph = {t.name: alias_edges(t.type) for t in types}

    # 0 = unvisited, 1 = on the current path, 2 = done
    state: dict[str, int] = {name: 0 for name in graph}

    for start in graph:
        if state[start]:
            continue
        path = [start]
        iterators = [iter(graph[start])]
        state[start] = 1
        while iterators:
            target = next(iterators[-1], None)
            if target is None:
                state[path.pop()] = 2
                iterators.pop()
                continue
            if target not in graph:
                # Unresolved names are reported elsewhere
                continue
            if state[target] == 1:
                return path[path.index(target) :] + [target]
            if state[target] == 0:
                state[target] = 1
                path.append(target)
                iterators.append(iter(graph[target]))
    return None


def check_alias_cycles(types: Sequence[IRTypeDefinition]) -> None:
    """Raise CircularTypeReference if any definitions form an alias cycle."""
    cycle = find_alias_cycle(types)
    if cycle:
        raise CircularTypeReference(cycle, "definitions refer to each other without an object, array or map in between")
