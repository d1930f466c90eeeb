"""Rule evaluation: decide whether a field is visible given the answers so far."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..analyzers.dependency_graph import DependencyGraphBuilder
from ..config.models import ConditionalSpec, FieldDescriptor
from .conditions import evaluate_condition

Catalog = Union[Mapping[str, FieldDescriptor], Iterable[FieldDescriptor]]

NO_CONDITIONS_REASON = "No conditions defined"
MATCHED_HIDE_REASON = "Conditions matched and the field is set to hide when matched"


@dataclass
class EvaluationResult:
    visible: bool
    reasons: List[str] = field(default_factory=list)


def build_catalog_index(catalog: Catalog) -> Dict[str, FieldDescriptor]:
    """Index a catalog by field id for O(1) lookups."""
    if isinstance(catalog, Mapping):
        return dict(catalog)
    return {descriptor.id: descriptor for descriptor in catalog}


def evaluate(
    spec: Optional[ConditionalSpec],
    field_values: Mapping[str, Any],
    catalog: Catalog,
) -> EvaluationResult:
    """Evaluate a conditional spec against a snapshot of answers.

    Never raises for missing data: unknown references and unanswered fields
    degrade to failed conditions with a reason.
    """
    if spec is None:
        return EvaluationResult(visible=True)

    if not spec.conditions:
        return EvaluationResult(visible=spec.show_when_matched, reasons=[NO_CONDITIONS_REASON])

    index = catalog if isinstance(catalog, dict) else build_catalog_index(catalog)
    reasons: List[str] = []
    outcomes: List[bool] = []
    for condition in spec.conditions:
        passed, reason = evaluate_condition(condition, field_values, index)
        outcomes.append(passed)
        if not passed:
            reasons.append(reason or "Condition not met")

    if spec.combinator == "any":
        satisfied = any(outcomes)
    else:
        satisfied = all(outcomes)

    visible = spec.show_when_matched if satisfied else not spec.show_when_matched
    if visible:
        return EvaluationResult(visible=True)
    if not reasons:
        reasons.append(MATCHED_HIDE_REASON)
    return EvaluationResult(visible=False, reasons=reasons)


def evaluate_field(
    descriptor: FieldDescriptor,
    field_values: Mapping[str, Any],
    catalog: Catalog,
) -> EvaluationResult:
    return evaluate(descriptor.conditional, field_values, catalog)


def evaluate_all(
    fields: List[FieldDescriptor],
    field_values: Mapping[str, Any],
) -> Dict[str, EvaluationResult]:
    """Evaluate every field of a catalog in dependency order."""
    index = build_catalog_index(fields)
    order = DependencyGraphBuilder(fields).get_evaluation_order()
    return {field_id: evaluate_field(index[field_id], field_values, index) for field_id in order}


def get_field_dependencies(descriptor: FieldDescriptor) -> List[str]:
    return descriptor.referenced_field_ids()


def get_field_dependents(field_id: str, fields: Iterable[FieldDescriptor]) -> List[str]:
    return [f.id for f in fields if field_id in get_field_dependencies(f)]
