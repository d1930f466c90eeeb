"""Conditional field-visibility engine for conversational forms."""

from .analyzers.dependency_graph import (
    DependencyChange,
    DependencyGraph,
    DependencyGraphBuilder,
    DependencyNode,
)
from .checks.evaluator import EvaluationResult, evaluate, evaluate_all, evaluate_field
from .config.models import Condition, ConditionalSpec, FieldDescriptor
from .config.settings import EngineSettings
from .services.form_values import ConditionalFormValues
from .services.visibility_controller import VisibilityController, VisibilityState
from .utils.errors import CatalogLoadError, ConfigError, FieldNotInGraphError, FormLogicError
from .utils.issues import ValidationIssue, ValidationResult

__all__ = [
    "CatalogLoadError",
    "Condition",
    "ConditionalFormValues",
    "ConditionalSpec",
    "ConfigError",
    "DependencyChange",
    "DependencyGraph",
    "DependencyGraphBuilder",
    "DependencyNode",
    "EngineSettings",
    "EvaluationResult",
    "FieldDescriptor",
    "FieldNotInGraphError",
    "FormLogicError",
    "ValidationIssue",
    "ValidationResult",
    "VisibilityController",
    "VisibilityState",
    "evaluate",
    "evaluate_all",
    "evaluate_field",
]
