"""Answer storage that drops values of fields the user can no longer see."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from ..analyzers.dependency_graph import DependencyChange
from ..config.models import FieldDescriptor
from ..config.settings import EngineSettings
from ..utils.logging import get_logger
from .visibility_controller import VisibilityController

logger = get_logger(__name__)


class ConditionalFormValues:
    """Owns the submission values of a form session.

    Reacts to every visibility notification by deleting the values of hidden
    fields, here and in the controller's snapshot, so answers to questions
    the user never saw are not submitted and do not come back when the field
    is shown again.
    """

    def __init__(
        self,
        fields: Iterable[FieldDescriptor],
        initial_values: Optional[Mapping[str, Any]] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._settings = settings or EngineSettings()
        self._values: Dict[str, Any] = dict(initial_values or {})
        self._visibility: Dict[str, bool] = {}
        self._controller = VisibilityController(fields, initial_values=self._values, settings=self._settings)
        self._unsubscribe = self._controller.on_visibility_change(self._handle_visibility_change)
        # initial answers may belong to fields that start hidden
        self._controller.refresh()

    @property
    def controller(self) -> VisibilityController:
        return self._controller

    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    @property
    def visibility(self) -> Dict[str, bool]:
        return dict(self._visibility)

    def update_value(self, field_id: str, value: Any) -> None:
        self._values[field_id] = value
        self._controller.set_field_value(field_id, value)

    def get_value(self, field_id: str) -> Any:
        return self._values.get(field_id)

    def get_visible_values(self) -> Dict[str, Any]:
        known = {descriptor.id for descriptor in self._controller.fields}
        return {
            field_id: value
            for field_id, value in self._values.items()
            if field_id in known and self._controller.get_visibility(field_id)
        }

    def remove_field(self, field_id: str) -> DependencyChange:
        """Remove a field from the form along with its answer."""
        change = self._controller.remove_field(field_id)
        self._values.pop(field_id, None)
        return change

    def close(self) -> None:
        """Stop reacting to the controller, e.g. when the form session ends."""
        self._unsubscribe()

    def _handle_visibility_change(self, visibility: Dict[str, bool]) -> None:
        previous = self._visibility
        self._visibility = dict(visibility)

        # fields removed from the catalog take their answers with them
        removed = [field_id for field_id in previous if field_id not in visibility and field_id in self._values]
        for field_id in removed:
            del self._values[field_id]
        if removed:
            logger.info(
                "Dropped values of removed fields",
                extra={"session_id": self._controller.session_id, "removed_fields": removed},
            )

        if not self._settings.clear_hidden_values:
            return

        hidden = [field_id for field_id, visible in visibility.items() if not visible and field_id in self._values]
        if not hidden:
            return
        for field_id in hidden:
            del self._values[field_id]
        logger.info(
            "Cleared values of hidden fields",
            extra={
                "session_id": self._controller.session_id,
                "cleared_fields": hidden,
                "newly_hidden": [fid for fid in hidden if previous.get(fid, True)],
            },
        )
        self._controller.discard_values(hidden)
