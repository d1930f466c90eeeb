"""Reactive visibility session for a single form fill."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..analyzers.dependency_graph import DependencyChange, DependencyGraphBuilder
from ..checks.evaluator import EvaluationResult, evaluate_field
from ..config.models import FieldDescriptor
from ..config.settings import EngineSettings
from ..utils.logging import get_logger, log_evaluation_pass, log_visibility_transitions
from ..utils.timing import timed

logger = get_logger(__name__)

VisibilityListener = Callable[[Dict[str, bool]], None]


@dataclass
class VisibilityState:
    visibility: Dict[str, bool] = field(default_factory=dict)
    evaluation_results: Dict[str, EvaluationResult] = field(default_factory=dict)
    last_updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class VisibilityController:
    """Holds the current answers and recomputes visibility on every change.

    Every mutation runs a full synchronous pass over the dependency graph's
    evaluation order and then notifies listeners with the complete map.
    Only answers gate evaluation; a dependency's own visibility does not.
    """

    def __init__(
        self,
        fields: Iterable[FieldDescriptor],
        initial_values: Optional[Mapping[str, Any]] = None,
        settings: Optional[EngineSettings] = None,
        on_visibility_change: Optional[VisibilityListener] = None,
    ):
        self._settings = settings or EngineSettings()
        self.session_id = str(uuid.uuid4())
        self._builder = DependencyGraphBuilder(fields)
        self._values: Dict[str, Any] = dict(initial_values or {})
        self._listeners: List[VisibilityListener] = []
        self._notifying = False
        self._dirty = False
        self._state = self._all_visible_state()
        if on_visibility_change is not None:
            self._listeners.append(on_visibility_change)
        self._reevaluate()

    @property
    def dependency_graph(self) -> DependencyGraphBuilder:
        return self._builder

    @property
    def fields(self) -> List[FieldDescriptor]:
        return self._builder.fields

    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    @property
    def state(self) -> VisibilityState:
        return VisibilityState(
            visibility=dict(self._state.visibility),
            evaluation_results=dict(self._state.evaluation_results),
            last_updated_at=self._state.last_updated_at,
        )

    def set_field_value(self, field_id: str, value: Any) -> None:
        self._values[field_id] = value
        self._request_pass()

    def set_field_values(self, values: Mapping[str, Any]) -> None:
        """Apply several answers and run a single pass."""
        self._values.update(values)
        self._request_pass()

    def discard_values(self, field_ids: Iterable[str]) -> None:
        """Forget answers, e.g. for fields the value store cleared after they were hidden."""
        removed = False
        for field_id in field_ids:
            if field_id in self._values:
                del self._values[field_id]
                removed = True
        if removed:
            self._request_pass()

    def refresh(self) -> Dict[str, bool]:
        self._request_pass()
        return dict(self._state.visibility)

    def get_visibility(self, field_id: str) -> bool:
        return self._state.visibility.get(field_id, True)

    def get_evaluation_result(self, field_id: str) -> Optional[EvaluationResult]:
        return self._state.evaluation_results.get(field_id)

    def get_visible_fields(self) -> List[FieldDescriptor]:
        return [f for f in self._builder.fields if self._state.visibility.get(f.id) is not False]

    def get_hidden_fields(self) -> List[FieldDescriptor]:
        return [f for f in self._builder.fields if self._state.visibility.get(f.id) is False]

    def override_visibility(self, field_id: str, visible: bool) -> None:
        """Force a field's visibility for preview tooling. The next pass replaces it."""
        self._state.visibility[field_id] = visible
        self._state.last_updated_at = datetime.now(timezone.utc)

    def reset(self) -> None:
        """Mark every field visible and drop recorded reasons."""
        self._state = self._all_visible_state()
        self._notify()
        if self._dirty:
            self._reevaluate()

    def on_visibility_change(self, callback: VisibilityListener) -> Callable[[], None]:
        """Register a listener called with the full visibility map after each pass.

        Returns:
            A callable that unregisters the listener.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def update_catalog(self, fields: Iterable[FieldDescriptor]) -> None:
        self._builder.build(fields)
        self._request_pass()

    def add_field(self, descriptor: FieldDescriptor) -> DependencyChange:
        change = self._builder.add_field(descriptor)
        self._request_pass()
        return change

    def update_field(self, descriptor: FieldDescriptor) -> DependencyChange:
        change = self._builder.update_field(descriptor)
        self._request_pass()
        return change

    def remove_field(self, field_id: str) -> DependencyChange:
        change = self._builder.remove_field(field_id)
        self._values.pop(field_id, None)
        self._request_pass()
        return change

    def _request_pass(self) -> None:
        # listeners may change answers while being notified; the running loop picks that up
        if self._notifying:
            self._dirty = True
            return
        self._reevaluate()

    def _reevaluate(self) -> None:
        max_passes = len(self._builder.fields) + 2
        passes = 0
        self._dirty = True
        while self._dirty:
            if passes >= max_passes:
                logger.warning(
                    "Visibility did not settle; listeners keep changing answers",
                    extra={"session_id": self.session_id, "passes": passes},
                )
                self._dirty = False
                break
            self._dirty = False
            self._run_pass()
            self._notify()
            passes += 1

    def _run_pass(self) -> None:
        metrics: Dict[str, float] = {}
        previous = self._state.visibility
        with timed("evaluate", metrics):
            catalog = {descriptor.id: descriptor for descriptor in self._builder.fields}
            cyclic = set()
            if self._settings.cyclic_field_policy == "visible":
                cyclic = set(self._builder.cyclic_field_ids())

            results: Dict[str, EvaluationResult] = {}
            for field_id in self._builder.get_evaluation_order():
                results[field_id] = self._evaluate_one(catalog[field_id], catalog, cyclic)
            for descriptor in catalog.values():
                if descriptor.id not in results:
                    results[descriptor.id] = self._evaluate_one(descriptor, catalog, cyclic)

        visibility = {field_id: result.visible for field_id, result in results.items()}
        self._state = VisibilityState(
            visibility=visibility,
            evaluation_results=results,
            last_updated_at=datetime.now(timezone.utc),
        )

        log_evaluation_pass(
            logger,
            self.session_id,
            field_count=len(results),
            hidden_count=sum(1 for visible in visibility.values() if not visible),
            duration_ms=metrics["duration_evaluate"],
        )
        log_visibility_transitions(
            logger,
            self.session_id,
            hidden=[fid for fid, visible in visibility.items() if not visible and previous.get(fid, True)],
            shown=[fid for fid, visible in visibility.items() if visible and previous.get(fid) is False],
        )

    def _evaluate_one(
        self,
        descriptor: FieldDescriptor,
        catalog: Dict[str, FieldDescriptor],
        cyclic: set,
    ) -> EvaluationResult:
        if descriptor.id in cyclic:
            result = EvaluationResult(visible=True)
        else:
            result = evaluate_field(descriptor, self._values, catalog)
        if self._settings.debug:
            logger.debug(
                f"Field {descriptor.id} evaluated",
                extra={"session_id": self.session_id, "visible": result.visible, "reasons": result.reasons},
            )
        return result

    def _notify(self) -> None:
        snapshot = dict(self._state.visibility)
        self._notifying = True
        try:
            for listener in list(self._listeners):
                listener(dict(snapshot))
        finally:
            self._notifying = False

    def _all_visible_state(self) -> VisibilityState:
        return VisibilityState(
            visibility={f.id: True for f in self._builder.fields},
            evaluation_results={f.id: EvaluationResult(visible=True) for f in self._builder.fields},
        )
