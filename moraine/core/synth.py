"""
Stack definition output: a deterministic serialization of a graph.

Used to diff successive deployments. Entities are listed in resolver
order, so identical input always produces identical output.
"""

import json
from typing import Any

import yaml

from moraine.core.grants import Grant
from moraine.core.graph import Graph
from moraine.core.resolver import resolve
from moraine.identity.principals import Principal
from moraine.scheduling.resources import CronSchedule


def synthesize(graph: Graph) -> dict[str, Any]:
    """
    Convert a graph to plain data.

    Returns:
        Dictionary with `stack`, `resources`, `principals`, `grants`,
        `schedules` and the ordered `plan` of node ids
    """
    order = resolve(graph)
    output: dict[str, Any] = {
        "stack": graph.name,
        "resources": [],
        "principals": [],
        "grants": [],
        "schedules": [],
        "plan": [entity.node_id for entity in order],
    }

    for entity in order:
        if isinstance(entity, Grant):
            output["grants"].append(entity.to_dict())
        elif isinstance(entity, CronSchedule):
            output["schedules"].append(entity.to_dict())
        elif isinstance(entity, Principal):
            output["principals"].append(entity.to_dict())
        else:
            output["resources"].append(entity.to_dict())

    return output


def to_yaml(graph: Graph) -> str:
    return yaml.safe_dump(synthesize(graph), sort_keys=False, default_flow_style=False)


def to_json(graph: Graph, indent: int = 2) -> str:
    return json.dumps(synthesize(graph), indent=indent)
