"""Dependency graph resolution for batch imports.

Nodes are ``(resource_type, resource_id)`` tuples. Only ``requires``,
``references`` and ``enhances`` edges order an import and take part in cycle
detection; ``conflicts`` edges are reported but never followed.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional

from workbench.errors import CircularDependency, InvalidResourceType
from workbench.logging_config import get_logger
from workbench.schemas import DependencyEntry, DependencyType
from workbench.services.assignment_repository import AssignmentRepository
from workbench.services.resource_store import (
    ResourceInfo,
    ResourceStore,
    parse_resource_type,
)

logger = get_logger(__name__)

Node = tuple[str, str]

ORDERING_TYPES = frozenset(
    {DependencyType.REQUIRES.value, DependencyType.REFERENCES.value, DependencyType.ENHANCES.value}
)

WHITE, GRAY, BLACK = 0, 1, 2


def _label(node: Node) -> str:
    return f"{node[0]}/{node[1]}"


@dataclass
class DependencyResolution:
    """Everything the orchestrator needs to know about an import set's graph."""

    requested: list[Node]
    plan: list[Node] = field(default_factory=list)
    edges: list[DependencyEntry] = field(default_factory=list)
    cycles: list[list[Node]] = field(default_factory=list)
    critical_missing: list[DependencyEntry] = field(default_factory=list)
    conflicts: list[DependencyEntry] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    # node -> info for every node looked up (None when missing)
    status: dict[Node, Optional[ResourceInfo]] = field(default_factory=dict)
    # critical ordering edges, source -> targets
    critical: dict[Node, list[Node]] = field(default_factory=dict)

    def exists(self, node: Node) -> bool:
        info = self.status.get(node)
        return info is not None and info.is_active

    def critical_closure(self, node: Node) -> list[Node]:
        """Nodes reachable from ``node`` over critical edges, in BFS order."""
        seen = {node}
        order: list[Node] = []
        queue = deque([node])
        while queue:
            current = queue.popleft()
            for target in self.critical.get(current, []):
                if target in seen:
                    continue
                seen.add(target)
                order.append(target)
                queue.append(target)
        return order

    def missing_critical_for(self, node: Node) -> list[Node]:
        return [n for n in self.critical_closure(node) if not self.exists(n)]

    def ensure_acyclic(self) -> None:
        if self.cycles:
            raise CircularDependency(self.cycles[0])


class DependencyResolver:
    def __init__(self, repo: AssignmentRepository, store: ResourceStore):
        self.repo = repo
        self.store = store

    async def _lookup(self, resolution: DependencyResolution, node: Node) -> Optional[ResourceInfo]:
        if node in resolution.status:
            return resolution.status[node]
        try:
            rtype = parse_resource_type(node[0])
        except InvalidResourceType:
            logger.warning(f"Dependency points at unknown resource type: {_label(node)}")
            info = None
        else:
            info = await self.store.get(rtype, node[1])
        resolution.status[node] = info
        return info

    async def resolve(self, nodes: Iterable[Node]) -> DependencyResolution:
        requested = list(dict.fromkeys(nodes))
        resolution = DependencyResolution(requested=requested)
        logger.debug(f"Resolving dependencies for {len(requested)} resources")

        # Breadth-first expansion; missing targets are recorded but not expanded
        graph: dict[Node, list[Node]] = {}
        discovered: list[Node] = list(requested)
        visited = set(requested)
        queue = deque(requested)
        for node in requested:
            await self._lookup(resolution, node)

        while queue:
            source = queue.popleft()
            for dep in await self.repo.list_dependencies(source[0], source[1]):
                target = (dep.target_resource_type, dep.target_resource_id)
                info = await self._lookup(resolution, target)
                exists = info is not None and info.is_active
                entry = DependencyEntry(
                    source_type=source[0],
                    source_id=source[1],
                    target_type=target[0],
                    target_id=target[1],
                    dependency_type=dep.dependency_type,
                    is_critical=bool(dep.is_critical),
                    exists=exists,
                    reason=dep.dependency_reason,
                )
                resolution.edges.append(entry)

                if dep.dependency_type not in ORDERING_TYPES:
                    resolution.conflicts.append(entry)
                    if target in requested:
                        resolution.warnings.append(
                            f"{_label(source)} conflicts with {_label(target)}, both are in this import"
                        )
                    continue

                graph.setdefault(source, []).append(target)
                if entry.is_critical:
                    resolution.critical.setdefault(source, []).append(target)

                if not exists:
                    if entry.is_critical:
                        resolution.critical_missing.append(entry)
                    else:
                        resolution.warnings.append(
                            f"Optional dependency {_label(target)} of {_label(source)} "
                            f"not found or not active"
                        )
                    continue

                if target not in visited:
                    visited.add(target)
                    discovered.append(target)
                    queue.append(target)

        resolution.cycles = self._find_cycles(requested, graph)
        for cycle in resolution.cycles:
            logger.info(f"Circular dependency: {' -> '.join(_label(n) for n in cycle)}")

        closure: dict[Node, None] = dict.fromkeys(requested)
        for node in requested:
            for dep_node in resolution.critical_closure(node):
                if resolution.exists(dep_node):
                    closure[dep_node] = None
        resolution.plan = self._order(discovered, set(closure), graph)
        return resolution

    @staticmethod
    def _find_cycles(roots: list[Node], graph: dict[Node, list[Node]]) -> list[list[Node]]:
        """Three-color DFS with an explicit stack; each back edge yields one cycle."""
        color: dict[Node, int] = {}
        cycles: list[list[Node]] = []
        for root in roots:
            if color.get(root, WHITE) != WHITE:
                continue
            color[root] = GRAY
            path = [root]
            stack = [iter(graph.get(root, []))]
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    stack.pop()
                    color[path.pop()] = BLACK
                    continue
                state = color.get(child, WHITE)
                if state == GRAY:
                    cycles.append(path[path.index(child):] + [child])
                elif state == WHITE:
                    color[child] = GRAY
                    path.append(child)
                    stack.append(iter(graph.get(child, [])))
        return cycles

    @staticmethod
    def _order(discovered: list[Node], members: set[Node], graph: dict[Node, list[Node]]) -> list[Node]:
        """Kahn's topological sort, dependencies first, ties in discovery order.

        Nodes stuck on a cycle are appended in discovery order.
        """
        nodes = [n for n in discovered if n in members]
        rank = {n: i for i, n in enumerate(nodes)}
        in_degree = {n: 0 for n in nodes}
        dependents: dict[Node, list[Node]] = {n: [] for n in nodes}
        for source in nodes:
            for target in set(graph.get(source, [])):
                if target in rank and target != source:
                    dependents[target].append(source)
                    in_degree[source] += 1

        ready = sorted((n for n in nodes if in_degree[n] == 0), key=rank.get)
        ordered: list[Node] = []
        while ready:
            node = ready.pop(0)
            ordered.append(node)
            for dependent in dependents[node]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    ready.append(dependent)
            ready.sort(key=rank.get)

        if len(ordered) < len(nodes):
            placed = set(ordered)
            ordered.extend(n for n in nodes if n not in placed)
        return ordered
