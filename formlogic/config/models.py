"""Pydantic models for the field catalog as seen by the visibility engine.

The catalog is owned by the form editor; the engine only reads these models.
Both snake_case names and the editor's camelCase keys are accepted.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

OPERATORS = ("equals", "not_equals", "contains", "greater_than", "less_than")
COMBINATORS = ("all", "any")


class Condition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    referenced_field_id: str = Field(alias="referencedFieldId")
    operator: str = "equals"
    expected_value: Any = Field(default=None, alias="expectedValue")


class ConditionalSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    show_when_matched: bool = Field(default=True, alias="showWhenMatched")
    conditions: List[Condition] = Field(default_factory=list)
    combinator: Literal["all", "any"] = "all"


class FieldDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    order: int = 0
    label: Optional[str] = None
    type: str = "text"
    conditional: Optional[ConditionalSpec] = None

    @property
    def display_name(self) -> str:
        return self.label or self.id

    def referenced_field_ids(self) -> List[str]:
        """Referenced ids in declaration order, deduplicated, self references stripped."""
        if self.conditional is None:
            return []
        seen: List[str] = []
        for condition in self.conditional.conditions:
            ref = condition.referenced_field_id
            if ref != self.id and ref not in seen:
                seen.append(ref)
        return seen
