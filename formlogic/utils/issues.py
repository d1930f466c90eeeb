"""Dataclasses describing validation payloads surfaced to the editor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ValidationIssue:
    rule_id: str
    issue_type: str
    field_id: str
    severity: str
    description: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    related_fields: Optional[List[str]] = None


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)
