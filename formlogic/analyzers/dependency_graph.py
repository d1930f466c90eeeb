"""Dependency graph for conditional fields.

Tracks which fields reference which, assigns each field a depth level,
derives a safe evaluation order and reports cycles. Cycles are detected and
reported, never prevented: the editor may hold a cyclic catalog transiently
and is expected to block saving while ``validate()`` reports errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..config.models import Condition, ConditionalSpec, FieldDescriptor
from ..utils.errors import FieldNotInGraphError
from ..utils.issues import ValidationIssue, ValidationResult
from ..utils.logging import get_logger, log_graph_build
from ..utils.timing import timed

logger = get_logger(__name__)


@dataclass
class DependencyNode:
    field_id: str
    field: FieldDescriptor
    dependencies: List[str] = field(default_factory=list)
    dependents: List[str] = field(default_factory=list)
    level: int = 0


@dataclass
class DependencyGraph:
    nodes: Dict[str, DependencyNode] = field(default_factory=dict)
    evaluation_order: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)

    @property
    def is_acyclic(self) -> bool:
        return not self.cycles


@dataclass
class DependencyChange:
    type: str
    field_id: str
    old_dependencies: Optional[List[str]] = None
    new_dependencies: Optional[List[str]] = None


def extract_dependencies(descriptor: FieldDescriptor) -> List[str]:
    return descriptor.referenced_field_ids()


def build_nodes(fields: Iterable[FieldDescriptor]) -> Dict[str, DependencyNode]:
    """Create one node per field and link dependents to their dependencies."""
    nodes: Dict[str, DependencyNode] = {}
    for descriptor in fields:
        nodes[descriptor.id] = DependencyNode(
            field_id=descriptor.id,
            field=descriptor,
            dependencies=extract_dependencies(descriptor),
        )
    for node in nodes.values():
        for dep_id in node.dependencies:
            dep_node = nodes.get(dep_id)
            if dep_node is not None and node.field_id not in dep_node.dependents:
                dep_node.dependents.append(node.field_id)
    return nodes


def compute_levels(nodes: Dict[str, DependencyNode]) -> None:
    """Assign ``level = 1 + max(level of dependencies)``, 0 for roots.

    Memoized per pass. A node reached again while its own level is still
    being computed returns its partial value; cycles are reported separately.
    """
    for node in nodes.values():
        node.level = 0
    visited = set()

    def level_of(field_id: str) -> int:
        node = nodes.get(field_id)
        if node is None:
            return 0
        if field_id in visited:
            return node.level
        visited.add(field_id)
        if node.dependencies:
            node.level = 1 + max(level_of(dep_id) for dep_id in node.dependencies)
        return node.level

    for field_id in nodes:
        level_of(field_id)


def compute_evaluation_order(nodes: Dict[str, DependencyNode]) -> List[str]:
    ordered = sorted(nodes.values(), key=lambda node: (node.level, node.field.order))
    return [node.field_id for node in ordered]


def detect_cycles(nodes: Dict[str, DependencyNode]) -> List[List[str]]:
    """Find cycles with a DFS over dependency edges.

    Each back edge to a node on the recursion stack is recorded as the path
    slice from that node's first occurrence, closed with the repeated node.
    """
    cycles: List[List[str]] = []
    visited = set()
    on_stack = set()
    path: List[str] = []

    def visit(field_id: str) -> None:
        visited.add(field_id)
        on_stack.add(field_id)
        path.append(field_id)
        for dep_id in nodes[field_id].dependencies:
            if dep_id not in nodes:
                continue
            if dep_id in on_stack:
                start = path.index(dep_id)
                cycles.append(path[start:] + [dep_id])
            elif dep_id not in visited:
                visit(dep_id)
        on_stack.discard(field_id)
        path.pop()

    for field_id in nodes:
        if field_id not in visited:
            visit(field_id)
    return cycles


def format_cycle(cycle: List[str]) -> str:
    return " → ".join(cycle)


class DependencyGraphBuilder:
    """Builds and incrementally maintains the dependency graph of a field catalog."""

    def __init__(self, fields: Optional[Iterable[FieldDescriptor]] = None):
        self._fields: Dict[str, FieldDescriptor] = {}
        self._graph = DependencyGraph()
        self.build(fields or [])

    @property
    def fields(self) -> List[FieldDescriptor]:
        return list(self._fields.values())

    @property
    def cycles(self) -> List[List[str]]:
        return [list(cycle) for cycle in self._graph.cycles]

    def build(self, fields: Iterable[FieldDescriptor]) -> DependencyGraph:
        """Rebuild the whole graph from a field list. Always correct."""
        metrics: Dict[str, float] = {}
        with timed("graph_build", metrics):
            self._fields = {descriptor.id: descriptor for descriptor in fields}
            self._graph.nodes = build_nodes(self._fields.values())
            self._recompute()
        log_graph_build(
            logger,
            node_count=len(self._graph.nodes),
            cycle_count=len(self._graph.cycles),
            duration_ms=metrics["duration_graph_build"],
        )
        return self.get_graph()

    def add_field(self, descriptor: FieldDescriptor) -> DependencyChange:
        """Add a field. Adding an id that is already present updates it instead."""
        if descriptor.id in self._graph.nodes:
            return self.update_field(descriptor)

        metrics: Dict[str, float] = {}
        with timed("graph_add", metrics):
            dependencies = self._insert_node(descriptor)
            self._recompute()
        self._log_change("add", descriptor.id, metrics["duration_graph_add"])
        return DependencyChange(type="add", field_id=descriptor.id, new_dependencies=list(dependencies))

    def remove_field(self, field_id: str) -> DependencyChange:
        """Remove a field and strip every condition that referenced it.

        Conditions in other fields' specs pointing at the removed id would be
        dangling, so they are dropped from those specs as well.
        """
        node = self._require(field_id)
        old_dependencies = list(node.dependencies)

        metrics: Dict[str, float] = {}
        with timed("graph_remove", metrics):
            del self._graph.nodes[field_id]
            del self._fields[field_id]
            for other in self._graph.nodes.values():
                if field_id in other.dependencies:
                    other.dependencies.remove(field_id)
                if field_id in other.dependents:
                    other.dependents.remove(field_id)
                spec = other.field.conditional
                if spec is not None and any(c.referenced_field_id == field_id for c in spec.conditions):
                    spec.conditions = [c for c in spec.conditions if c.referenced_field_id != field_id]
            self._recompute()
        self._log_change("remove", field_id, metrics["duration_graph_remove"])
        return DependencyChange(type="remove", field_id=field_id, old_dependencies=old_dependencies)

    def update_field(self, descriptor: FieldDescriptor) -> DependencyChange:
        """Replace a field's spec, diffing old and new dependencies."""
        metrics: Dict[str, float] = {}
        with timed("graph_update", metrics):
            existing = self._graph.nodes.get(descriptor.id)
            if existing is None:
                old_dependencies: List[str] = []
                new_dependencies = self._insert_node(descriptor)
            else:
                old_dependencies = list(existing.dependencies)
                new_dependencies = extract_dependencies(descriptor)
                for dep_id in old_dependencies:
                    if dep_id not in new_dependencies:
                        self._unlink(dep_id, descriptor.id)
                for dep_id in new_dependencies:
                    if dep_id not in old_dependencies:
                        self._link(dep_id, descriptor.id)
                existing.field = descriptor
                existing.dependencies = new_dependencies
                self._fields[descriptor.id] = descriptor
            self._recompute()
        self._log_change("update", descriptor.id, metrics["duration_graph_update"])
        return DependencyChange(
            type="update",
            field_id=descriptor.id,
            old_dependencies=old_dependencies,
            new_dependencies=list(new_dependencies),
        )

    def get_graph(self) -> DependencyGraph:
        """Return a copy of the graph; mutating it does not affect the builder."""
        return DependencyGraph(
            nodes={field_id: _copy_node(node) for field_id, node in self._graph.nodes.items()},
            evaluation_order=list(self._graph.evaluation_order),
            cycles=self.cycles,
        )

    def get_evaluation_order(self) -> List[str]:
        return list(self._graph.evaluation_order)

    def get_node(self, field_id: str) -> DependencyNode:
        return _copy_node(self._require(field_id))

    def get_dependencies(self, field_id: str) -> List[str]:
        return list(self._require(field_id).dependencies)

    def get_dependents(self, field_id: str) -> List[str]:
        return list(self._require(field_id).dependents)

    def get_dependency_fields(self, field_id: str) -> List[FieldDescriptor]:
        node = self._require(field_id)
        return [self._fields[dep_id] for dep_id in node.dependencies if dep_id in self._fields]

    def get_dependent_fields(self, field_id: str) -> List[FieldDescriptor]:
        node = self._require(field_id)
        return [self._fields[dep_id] for dep_id in node.dependents if dep_id in self._fields]

    def get_root_fields(self) -> List[FieldDescriptor]:
        return [node.field for node in self._graph.nodes.values() if not node.dependencies]

    def get_leaf_fields(self) -> List[FieldDescriptor]:
        return [node.field for node in self._graph.nodes.values() if not node.dependents]

    def is_in_cycle(self, field_id: str) -> bool:
        self._require(field_id)
        return any(field_id in cycle for cycle in self._graph.cycles)

    def cyclic_field_ids(self) -> List[str]:
        seen: List[str] = []
        for cycle in self._graph.cycles:
            for field_id in cycle:
                if field_id not in seen:
                    seen.append(field_id)
        return seen

    def get_available_references(self, field_id: str) -> List[FieldDescriptor]:
        """Fields that ``field_id`` could reference without creating a cycle.

        Each candidate is checked by adding a trial condition to a copy of the
        field and rebuilding the hypothetical graph.
        """
        current = self._require(field_id).field
        available: List[FieldDescriptor] = []
        for candidate_id, candidate in self._fields.items():
            if candidate_id == field_id:
                continue
            trial = _with_trial_reference(current, candidate_id)
            trial_fields = [trial if f.id == field_id else f for f in self._fields.values()]
            if not detect_cycles(build_nodes(trial_fields)):
                available.append(candidate)
        return available

    def validate(self) -> ValidationResult:
        """Report one error per cycle and one per dangling reference."""
        errors: List[str] = []
        issues: List[ValidationIssue] = []
        for cycle in self._graph.cycles:
            message = f"Circular dependency detected: {format_cycle(cycle)}"
            errors.append(message)
            issues.append(
                ValidationIssue(
                    rule_id=f"dependency.cycle.{cycle[0]}",
                    issue_type="circular_dependency",
                    field_id=cycle[0],
                    severity="critical",
                    description=message,
                    related_fields=list(cycle),
                )
            )
        for node in self._graph.nodes.values():
            for dep_id in node.dependencies:
                if dep_id in self._graph.nodes:
                    continue
                message = f'Field "{node.field_id}" references non-existent field "{dep_id}"'
                errors.append(message)
                issues.append(
                    ValidationIssue(
                        rule_id=f"dependency.dangling.{node.field_id}.{dep_id}",
                        issue_type="dangling_reference",
                        field_id=node.field_id,
                        severity="warning",
                        description=message,
                        metadata={"missing_field_id": dep_id},
                    )
                )
        return ValidationResult(is_valid=not errors, errors=errors, issues=issues)

    def _require(self, field_id: str) -> DependencyNode:
        node = self._graph.nodes.get(field_id)
        if node is None:
            raise FieldNotInGraphError(field_id)
        return node

    def _insert_node(self, descriptor: FieldDescriptor) -> List[str]:
        dependencies = extract_dependencies(descriptor)
        self._fields[descriptor.id] = descriptor
        node = DependencyNode(field_id=descriptor.id, field=descriptor, dependencies=dependencies)
        # fields added earlier may already reference this id
        node.dependents = [
            other.field_id for other in self._graph.nodes.values() if descriptor.id in other.dependencies
        ]
        self._graph.nodes[descriptor.id] = node
        for dep_id in dependencies:
            self._link(dep_id, descriptor.id)
        return dependencies

    def _link(self, dep_id: str, dependent_id: str) -> None:
        dep_node = self._graph.nodes.get(dep_id)
        if dep_node is None or dependent_id in dep_node.dependents:
            return
        dep_node.dependents.append(dependent_id)
        positions = {field_id: index for index, field_id in enumerate(self._graph.nodes)}
        dep_node.dependents.sort(key=lambda field_id: positions.get(field_id, len(positions)))

    def _unlink(self, dep_id: str, dependent_id: str) -> None:
        dep_node = self._graph.nodes.get(dep_id)
        if dep_node is not None and dependent_id in dep_node.dependents:
            dep_node.dependents.remove(dependent_id)

    def _recompute(self) -> None:
        compute_levels(self._graph.nodes)
        self._graph.evaluation_order = compute_evaluation_order(self._graph.nodes)
        self._graph.cycles = detect_cycles(self._graph.nodes)

    def _log_change(self, change_type: str, field_id: str, duration_ms: float) -> None:
        log_graph_build(
            logger,
            node_count=len(self._graph.nodes),
            cycle_count=len(self._graph.cycles),
            duration_ms=duration_ms,
            change_type=change_type,
            field_id=field_id,
        )


def _copy_node(node: DependencyNode) -> DependencyNode:
    return DependencyNode(
        field_id=node.field_id,
        field=node.field,
        dependencies=list(node.dependencies),
        dependents=list(node.dependents),
        level=node.level,
    )


def _with_trial_reference(descriptor: FieldDescriptor, candidate_id: str) -> FieldDescriptor:
    trial = descriptor.model_copy(deep=True)
    if trial.conditional is None:
        trial.conditional = ConditionalSpec()
    trial.conditional.conditions.append(
        Condition(referenced_field_id=candidate_id, operator="equals", expected_value=None)
    )
    return trial
