"""A deployment plan: operations connected by dependencies in an acyclic graph."""

from __future__ import annotations

import os
import re
from typing import Pattern

import networkx as nx

from .operation import Operation, OperationType, Status, StageOperation


class PlanError(RuntimeError):
    """Raised when the plan graph cannot be changed or rendered."""


_RESOURCE_TYPES = frozenset(
    {
        OperationType.CREATE,
        OperationType.RECREATE,
        OperationType.UPDATE,
        OperationType.APPLY,
        OperationType.DELETE,
    }
)

_EXTRA_POST_TYPES = frozenset(
    {
        OperationType.EXTRA_POST_CREATE,
        OperationType.EXTRA_POST_RECREATE,
        OperationType.EXTRA_POST_APPLY,
        OperationType.EXTRA_POST_UPDATE,
        OperationType.EXTRA_POST_DELETE,
    }
)

_WORTHY_COMPLETED_TYPES = _RESOURCE_TYPES | _EXTRA_POST_TYPES
_WORTHY_CANCELED_TYPES = _RESOURCE_TYPES
_USEFUL_TYPES = (
    _RESOURCE_TYPES
    | _EXTRA_POST_TYPES
    | {
        OperationType.FAIL_RELEASE,
        OperationType.TRACK_RESOURCE_READINESS,
        OperationType.TRACK_RESOURCE_PRESENCE,
        OperationType.TRACK_RESOURCE_ABSENCE,
    }
)


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class Plan:
    """Operations as vertices of a directed acyclic graph keyed by operation id."""

    def __init__(self) -> None:
        self._graph = nx.DiGraph()

    def operation(self, op_id: str) -> Operation | None:
        """Return the operation with ``op_id``, or None."""
        if op_id not in self._graph:
            return None
        return self._graph.nodes[op_id]["op"]

    def operations_match(self, pattern: str | Pattern[str]) -> list[Operation]:
        """Operations whose id contains a match of ``pattern``."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return [op for op in self.operations() if regex.search(op.id())]

    def operations(self) -> list[Operation]:
        """All operations of the plan."""
        return [op for _, op in self._graph.nodes(data="op")]

    def _with_status(self, status: Status) -> list[Operation]:
        return [op for op in self.operations() if op.status == status]

    def completed_operations(self) -> list[Operation]:
        return self._with_status(Status.COMPLETED)

    def failed_operations(self) -> list[Operation]:
        return self._with_status(Status.FAILED)

    def canceled_operations(self) -> list[Operation]:
        """Operations that never ran."""
        return self._with_status(Status.UNKNOWN)

    def worthy_completed_operations(self) -> list[Operation]:
        """Completed operations that changed resources."""
        return [op for op in self.completed_operations() if op.type() in _WORTHY_COMPLETED_TYPES]

    def worthy_failed_operations(self) -> list[Operation]:
        return self.failed_operations()

    def worthy_canceled_operations(self) -> list[Operation]:
        """Resource-changing operations that never ran, extra-post ones excluded."""
        return [op for op in self.canceled_operations() if op.type() in _WORTHY_CANCELED_TYPES]

    def predecessor_map(self) -> dict[str, set[str]]:
        """Map every operation id to the ids of the operations it depends on."""
        return {node: set(self._graph.predecessors(node)) for node in self._graph.nodes}

    def add_operation(self, op: Operation) -> None:
        """Add ``op``; an operation with the same id already present is kept."""
        op_id = op.id()
        if op_id not in self._graph:
            self._graph.add_node(op_id, op=op)

    def _ensure_stage(self, stage_id: str) -> None:
        if self.operation(stage_id) is None:
            self.add_operation(StageOperation(stage_id))

    def add_staged_operation(self, op: Operation, stage_in_id: str, stage_out_id: str) -> None:
        """Add ``op`` between two stage operations, creating them if needed."""
        self.add_operation(op)
        self._ensure_stage(stage_in_id)
        self._ensure_stage(stage_out_id)
        self.add_dependency(stage_in_id, stage_out_id)
        self.add_dependency(stage_in_id, op.id())
        self.add_dependency(op.id(), stage_out_id)

    def add_in_staged_operation(self, op: Operation, stage_in_id: str) -> None:
        """Add ``op`` after a stage operation, creating it if needed."""
        self.add_operation(op)
        self._ensure_stage(stage_in_id)
        self.add_dependency(stage_in_id, op.id())

    def add_out_staged_operation(self, op: Operation, stage_out_id: str) -> None:
        """Add ``op`` before a stage operation, creating it if needed."""
        self.add_operation(op)
        self._ensure_stage(stage_out_id)
        self.add_dependency(op.id(), stage_out_id)

    def add_dependency(self, from_op_id: str, to_op_id: str) -> None:
        """Make ``to_op_id`` run after ``from_op_id``; an existing edge is left alone."""
        prefix = f'error adding edge from "{from_op_id}" to "{to_op_id}"'
        for op_id in (from_op_id, to_op_id):
            if op_id not in self._graph:
                raise PlanError(f'{prefix}: operation "{op_id}" not found')
        if self._graph.has_edge(from_op_id, to_op_id):
            return
        if nx.has_path(self._graph, to_op_id, from_op_id):
            raise PlanError(f"{prefix}: edge would create a cycle")
        self._graph.add_edge(from_op_id, to_op_id)

    def optimize(self) -> None:
        """Drop every dependency already implied by other dependencies."""
        try:
            reduced = nx.transitive_reduction(self._graph)
        except nx.NetworkXException as err:
            raise PlanError(f"error transitively reducing graph: {err}") from err
        reduced.add_nodes_from(self._graph.nodes(data=True))
        self._graph = reduced

    def dot(self) -> bytes:
        """Render the plan as a Graphviz DOT document."""
        lines = ["strict digraph {", '\trankdir="LR";', ""]
        lines.extend(f"\t{_quote(node)};" for node in self._graph.nodes)
        lines.append("")
        lines.extend(f"\t{_quote(src)} -> {_quote(dst)};" for src, dst in self._graph.edges)
        lines.append("}")
        return ("\n".join(lines) + "\n").encode()

    def save_dot(self, path: str | os.PathLike[str]) -> None:
        """Write the DOT rendering of the plan to ``path``."""
        data = self.dot()
        try:
            with open(path, "wb") as fh:
                fh.write(data)
        except OSError as err:
            raise PlanError(f'error writing DOT graph file at "{path}": {err}') from err

    def useless(self) -> bool:
        """Whether no operation of the plan would do real work."""
        return not any(
            op.type() in _USEFUL_TYPES and not op.empty() for op in self.operations()
        )