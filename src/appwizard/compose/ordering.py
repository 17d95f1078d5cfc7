"""
Deployment order for Docker Compose services.

Services are started so that every service comes after all services it
``depends_on``. Ties between services that are ready at the same time are
broken by the order in which they were declared in the compose file, so the
result is stable for a given document.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

import structlog

from appwizard.compose.document import load_compose
from appwizard.core.errors import (
    ConfigurationError,
    CycleOrMissingDependencyError,
    ValidationError,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ServiceNode:
    """A compose service and the names it depends on."""

    name: str
    dependencies: frozenset[str]
    declaration_index: int


def build_service_nodes(pairs: Iterable[tuple[str, Sequence[str]]]) -> list[ServiceNode]:
    nodes: list[ServiceNode] = []
    seen: set[str] = set()
    for index, (name, deps) in enumerate(pairs):
        if name in seen:
            raise ValidationError(f"Service '{name}' is declared more than once")
        seen.add(name)
        nodes.append(ServiceNode(name, frozenset(deps), index))
    return nodes


def resolve_deployment_order(pairs: Iterable[tuple[str, Sequence[str]]]) -> list[str]:
    """
    Order services so each one follows all of its dependencies.

    Args:
        pairs: ``(name, dependency_names)`` in declaration order

    Returns:
        Service names in start-up order

    Raises:
        CycleOrMissingDependencyError: if some services cannot be scheduled,
            either because of a cycle or a dependency that is never declared
    """
    nodes = build_service_nodes(pairs)
    by_name = {node.name: node for node in nodes}

    unmet = {node.name: len(node.dependencies) for node in nodes}
    dependents: dict[str, list[ServiceNode]] = {node.name: [] for node in nodes}
    for node in nodes:
        for dep in node.dependencies:
            if dep in dependents:
                dependents[dep].append(node)

    ready = [(node.declaration_index, node.name) for node in nodes if unmet[node.name] == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        _, name = heapq.heappop(ready)
        order.append(name)
        for dependent in dependents[name]:
            unmet[dependent.name] -= 1
            if unmet[dependent.name] == 0:
                heapq.heappush(ready, (dependent.declaration_index, dependent.name))

    if len(order) < len(nodes):
        scheduled = set(order)
        unscheduled = [node.name for node in nodes if node.name not in scheduled]
        missing = {
            dep
            for node in nodes
            for dep in node.dependencies
            if dep not in by_name
        }
        logger.warning(
            "deployment_order_incomplete",
            unscheduled=unscheduled,
            missing=sorted(missing),
        )
        raise CycleOrMissingDependencyError(unscheduled, missing)

    return order


def services_from_compose(document: dict[str, Any]) -> list[tuple[str, list[str]]]:
    """Extract ``(name, depends_on)`` pairs in document order."""
    services = document.get("services") or {}
    pairs: list[tuple[str, list[str]]] = []
    for name, service in services.items():
        depends_on = (service or {}).get("depends_on") or []
        if isinstance(depends_on, dict):
            deps = list(depends_on)
        elif isinstance(depends_on, str):
            deps = [depends_on]
        else:
            deps = [str(d) for d in depends_on]
        pairs.append((str(name), deps))
    return pairs


def deduce_deployment_order(compose_path: str | Path) -> list[str]:
    order = resolve_deployment_order(services_from_compose(load_compose(compose_path)))
    logger.debug("deployment_order", compose_file=str(compose_path), order=order)
    return order


def service_position(compose_path: str | Path, name: str) -> int:
    """1-based position of a service in the deployment order."""
    order = deduce_deployment_order(compose_path)
    if name not in order:
        raise ConfigurationError(
            f"Service '{name}' is not declared in {compose_path}",
            details={"services": order},
        )
    return order.index(name) + 1
