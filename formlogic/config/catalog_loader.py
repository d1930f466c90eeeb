"""Utility helpers for loading a field catalog."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from ..utils.errors import CatalogLoadError
from ..utils.logging import get_logger, log_catalog_load
from ..utils.timing import timed
from .models import FieldDescriptor

logger = get_logger(__name__)

LOGIC_TO_COMBINATOR = {"and": "all", "or": "any", "all": "all", "any": "any"}


def _convert_legacy_conditional(conditional: Dict[str, Any]) -> Dict[str, Any]:
    """Convert the editor's stored conditional shape to ConditionalSpec keys.

    The editor persists ``{show, logic: and|or, conditions: [{fieldId, operator, value}]}``.
    Keys already in the engine's shape pass through untouched.
    """
    converted = dict(conditional)
    if "show" in converted and "showWhenMatched" not in converted and "show_when_matched" not in converted:
        converted["show_when_matched"] = converted.pop("show")
    if "logic" in converted and "combinator" not in converted:
        logic = str(converted.pop("logic")).lower()
        converted["combinator"] = LOGIC_TO_COMBINATOR.get(logic, logic)

    conditions = []
    for cond_data in converted.get("conditions") or []:
        cond = dict(cond_data)
        if "fieldId" in cond and "referencedFieldId" not in cond and "referenced_field_id" not in cond:
            cond["referenced_field_id"] = cond.pop("fieldId")
        if "value" in cond and "expectedValue" not in cond and "expected_value" not in cond:
            cond["expected_value"] = cond.pop("value")
        conditions.append(cond)
    converted["conditions"] = conditions
    return converted


def catalog_from_dicts(items: List[Dict[str, Any]]) -> List[FieldDescriptor]:
    """Build field descriptors from plain dicts, accepting the legacy editor shape."""
    fields: List[FieldDescriptor] = []
    for index, item in enumerate(items):
        data = dict(item)
        data.setdefault("order", index)
        if data.get("conditional"):
            data["conditional"] = _convert_legacy_conditional(data["conditional"])
        fields.append(FieldDescriptor.model_validate(data))
    return fields


def load_catalog_document(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a catalog file (YAML or JSON) into ``{"fields": [...], "values": {...}}``."""
    target = Path(path)
    try:
        with target.open("r", encoding="utf-8") as handle:
            if target.suffix.lower() == ".json":
                raw = json.load(handle)
            else:
                raw = yaml.safe_load(handle)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise CatalogLoadError(str(target), str(exc)) from exc

    if isinstance(raw, list):
        return {"fields": raw, "values": {}}
    if isinstance(raw, dict) and isinstance(raw.get("fields"), list):
        return {"fields": raw["fields"], "values": raw.get("values") or {}}
    raise CatalogLoadError(str(target), "expected a list of fields or a mapping with a 'fields' list")


def load_catalog(path: Union[str, Path]) -> List[FieldDescriptor]:
    """Load and validate the field catalog stored at ``path``."""
    metrics: Dict[str, float] = {}
    with timed("catalog_load", metrics):
        document = load_catalog_document(path)
        try:
            fields = catalog_from_dicts(document["fields"])
        except (TypeError, ValidationError) as exc:
            raise CatalogLoadError(str(path), str(exc)) from exc
    log_catalog_load(
        logger,
        source=str(path),
        field_count=len(fields),
        duration_ms=metrics["duration_catalog_load"],
    )
    return fields
