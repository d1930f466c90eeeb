"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from typing import Dict, List

import pytest

from formlogic.config.catalog_loader import catalog_from_dicts
from formlogic.config.models import FieldDescriptor


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def driver_form_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "driver_form.json"


@pytest.fixture
def driver_form_document(driver_form_path: Path) -> Dict:
    """Load the raw driver form catalog, stored in the editor's shape."""
    with open(driver_form_path) as f:
        return json.load(f)


@pytest.fixture
def driver_form(driver_form_document: Dict) -> List[FieldDescriptor]:
    """Field descriptors for the driver form."""
    return catalog_from_dicts(driver_form_document["fields"])


@pytest.fixture
def scenario_a_fields() -> List[FieldDescriptor]:
    """B is shown only when A equals "yes"."""
    return [
        FieldDescriptor(id="A", order=1),
        FieldDescriptor.model_validate(
            {
                "id": "B",
                "order": 2,
                "conditional": {
                    "showWhenMatched": True,
                    "combinator": "all",
                    "conditions": [{"referencedFieldId": "A", "operator": "equals", "expectedValue": "yes"}],
                },
            }
        ),
    ]
