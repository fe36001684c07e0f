"""
Materialization: executing a resolved graph against a backend.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from moraine.core.errors import BackendError
from moraine.core.graph import Graph
from moraine.core.grants import Grant
from moraine.core.resolver import resolve
from moraine.identity.principals import Principal
from moraine.scheduling.resources import CronSchedule

if TYPE_CHECKING:
    from moraine.providers.base import Backend, ProviderRef

logger = logging.getLogger(__name__)


@dataclass
class MaterializationResult:
    """Outcome of a successful materialization."""

    stack_name: str
    refs: dict[str, "ProviderRef"] = field(default_factory=dict)
    """Provider refs of created resources and principals, by logical id"""

    steps: list[tuple[str, str]] = field(default_factory=list)
    """(operation, node id) pairs in the order they ran"""

    def get_ref(self, logical_id: str) -> "ProviderRef | None":
        return self.refs.get(logical_id)


def _run(operation: str, node_id: str, call):
    try:
        return call()
    except BackendError:
        raise
    except Exception as e:
        logger.error("Backend %s failed for '%s': %s", operation, node_id, e)
        raise BackendError(node_id, operation, str(e)) from e


def materialize(graph: Graph, backend: "Backend") -> MaterializationResult:
    """
    Materialize a graph against a provisioning backend.

    Walks the resolver's order and makes one backend call per entity:
    create_resource, create_principal, apply_grant or create_schedule.
    The first failure aborts the walk. Entities created before it are
    left in place; re-running is safe because backend operations are
    idempotent.

    Args:
        graph: Graph to materialize
        backend: Provisioning backend

    Returns:
        MaterializationResult with provider refs and executed steps

    Raises:
        BackendError: If a backend call fails
        CyclicDependencyError: If the graph cannot be ordered
    """
    order = resolve(graph)
    result = MaterializationResult(stack_name=graph.name)
    logger.info(
        "Materializing stack '%s' (%d steps) with %r", graph.name, len(order), backend
    )

    for entity in order:
        if isinstance(entity, Grant):
            operation = "apply_grant"
            principal_ref = result.refs[entity.principal_id]
            resource_ref = result.refs[entity.resource_id]
            _run(
                operation,
                entity.node_id,
                lambda: backend.apply_grant(principal_ref, resource_ref, entity.mode),
            )
        elif isinstance(entity, CronSchedule):
            operation = "create_schedule"
            target_ref = result.refs[entity.target_logical_id]
            _run(
                operation,
                entity.node_id,
                lambda: backend.create_schedule(
                    entity.cron_expression, entity.timezone, target_ref, enabled=entity.enabled
                ),
            )
        elif isinstance(entity, Principal):
            operation = "create_principal"
            result.refs[entity.logical_id] = _run(
                operation, entity.node_id, lambda: backend.create_principal(entity)
            )
        else:
            operation = "create_resource"
            result.refs[entity.logical_id] = _run(
                operation, entity.node_id, lambda: backend.create_resource(entity)
            )

        result.steps.append((operation, entity.node_id))
        logger.info("%s %s", operation, entity.node_id)

    return result
