"""
Dependency Resolver: orders a graph for provisioning.
"""

from moraine.core.dag import DAG
from moraine.core.graph import Entity, Graph


def build_dag(graph: Graph) -> DAG:
    """
    Build the dependency DAG of a graph.

    Nodes are added in registration order. Each entity gets an edge from
    every entity it references: grants from their principal and resource,
    schedules from their target function, functions from their role.
    """
    dag = DAG()
    for entity in graph.entities:
        dag.add_node(entity.node_id, entity)

    for entity in graph.entities:
        for reference in entity.references():
            dag.add_edge(reference, entity.node_id)

    return dag


def resolve(graph: Graph) -> list[Entity]:
    """
    Compute the provisioning order of a graph.

    Every resource and principal precedes the grants that reference it,
    every function precedes its schedule, and entities with no ordering
    constraint between them keep their registration order.

    Raises:
        CyclicDependencyError: If the references form a cycle
    """
    dag = build_dag(graph)
    return [dag.nodes[name].entity for name in dag.topological_sort()]
