"""Per-field validation of conditional logic, surfaced in the property panel."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..config.models import OPERATORS, FieldDescriptor
from ..utils.issues import ValidationIssue, ValidationResult
from .dependency_graph import DependencyGraphBuilder, format_cycle


def validate_field(
    descriptor: FieldDescriptor,
    fields: List[FieldDescriptor],
    builder: Optional[DependencyGraphBuilder] = None,
) -> ValidationResult:
    """Validate one field's conditional logic against the rest of the catalog.

    Args:
        descriptor: Field to validate
        fields: Full catalog, used to resolve references and detect cycles
        builder: Optional prebuilt graph for the same catalog

    Returns:
        ValidationResult with one error per problem found
    """
    issues = _field_issues(descriptor, fields, builder or DependencyGraphBuilder(fields))
    return ValidationResult(
        is_valid=not issues,
        errors=[issue.description for issue in issues],
        issues=issues,
    )


def validate_catalog(fields: List[FieldDescriptor]) -> List[ValidationIssue]:
    builder = DependencyGraphBuilder(fields)
    issues: List[ValidationIssue] = []
    for descriptor in fields:
        issues.extend(_field_issues(descriptor, fields, builder))
    return issues


def summarize(issues: Iterable[ValidationIssue]) -> Dict[str, int]:
    counts: Dict[str, int] = defaultdict(int)
    for issue in issues:
        counts[issue.issue_type] += 1
        counts[f"{issue.issue_type}:{issue.severity}"] += 1
        counts[f"severity:{issue.severity}"] += 1
    return dict(counts)


def _field_issues(
    descriptor: FieldDescriptor,
    fields: List[FieldDescriptor],
    builder: DependencyGraphBuilder,
) -> List[ValidationIssue]:
    spec = descriptor.conditional
    if spec is None:
        return []

    issues: List[ValidationIssue] = []
    known_ids = {f.id for f in fields}

    if descriptor.id in known_ids and builder.is_in_cycle(descriptor.id):
        cycle = next(c for c in builder.cycles if descriptor.id in c)
        issues.append(
            ValidationIssue(
                rule_id=f"conditional.{descriptor.id}.cycle",
                issue_type="circular_dependency",
                field_id=descriptor.id,
                severity="critical",
                description=f"Circular dependency detected in conditional logic: {format_cycle(cycle)}",
                related_fields=list(cycle),
            )
        )

    for index, condition in enumerate(spec.conditions):
        ref = condition.referenced_field_id
        if ref == descriptor.id:
            issues.append(
                ValidationIssue(
                    rule_id=f"conditional.{descriptor.id}.{index}.self_reference",
                    issue_type="self_reference",
                    field_id=descriptor.id,
                    severity="warning",
                    description="Field cannot reference itself in conditional logic",
                )
            )
        elif ref not in known_ids:
            issues.append(
                ValidationIssue(
                    rule_id=f"conditional.{descriptor.id}.{index}.missing_reference",
                    issue_type="dangling_reference",
                    field_id=descriptor.id,
                    severity="warning",
                    description=f'Referenced field "{ref}" does not exist',
                    metadata={"missing_field_id": ref},
                )
            )
        if condition.operator not in OPERATORS:
            issues.append(
                ValidationIssue(
                    rule_id=f"conditional.{descriptor.id}.{index}.operator",
                    issue_type="unknown_operator",
                    field_id=descriptor.id,
                    severity="warning",
                    description=f"Unknown operator: {condition.operator}",
                )
            )
        if condition.expected_value is None:
            issues.append(
                ValidationIssue(
                    rule_id=f"conditional.{descriptor.id}.{index}.empty_value",
                    issue_type="empty_value",
                    field_id=descriptor.id,
                    severity="info",
                    description="Condition value cannot be empty",
                )
            )
    return issues
