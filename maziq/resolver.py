"""Dependency ordering for catalog identifiers."""

from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

from maziq.errors import CycleDetected

Node = TypeVar("Node", bound=Hashable)


def resolve(
    roots: Iterable[Node], dependencies_of: Callable[[Node], Iterable[Node]]
) -> list[Node]:
    """Return roots plus transitive dependencies in dependency-first order.

    Depth-first from each root in the given order. Each node appears once,
    after every node it depends on.

    Args:
        roots: Requested nodes
        dependencies_of: Returns the direct dependencies of a node

    Returns:
        Topologically ordered list of nodes

    Raises:
        CycleDetected: If a node is reached again while still being visited
    """
    order: list[Node] = []
    visiting: set[Node] = set()
    done: set[Node] = set()

    def visit(node: Node) -> None:
        if node in done:
            return
        if node in visiting:
            raise CycleDetected(node)
        visiting.add(node)
        for dep in dependencies_of(node):
            visit(dep)
        visiting.discard(node)
        done.add(node)
        order.append(node)

    for root in roots:
        visit(root)
    return order


__all__ = ["resolve"]
