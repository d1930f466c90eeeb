"""Unit tests for rule evaluation."""

import pytest

from formlogic.checks.conditions import evaluate_condition
from formlogic.checks.evaluator import (
    MATCHED_HIDE_REASON,
    NO_CONDITIONS_REASON,
    evaluate,
    evaluate_all,
    evaluate_field,
    get_field_dependents,
)
from formlogic.config.models import Condition, ConditionalSpec, FieldDescriptor


def _spec(*conditions, show=True, combinator="all"):
    return ConditionalSpec(
        show_when_matched=show,
        combinator=combinator,
        conditions=[
            Condition(referenced_field_id=ref, operator=op, expected_value=value)
            for ref, op, value in conditions
        ],
    )


def _catalog(*ids):
    return [FieldDescriptor(id=field_id, order=index) for index, field_id in enumerate(ids)]


def _field(fields, field_id):
    return next(f for f in fields if f.id == field_id)


def test_no_spec_is_visible():
    """Test that a field without conditional logic is always visible."""
    result = evaluate(None, {}, _catalog("A"))
    assert result.visible is True
    assert result.reasons == []


def test_scenario_a_single_equals(scenario_a_fields):
    """Test B shows when A is "yes" and hides with a reason naming A otherwise."""
    spec = _field(scenario_a_fields, "B").conditional

    shown = evaluate(spec, {"A": "yes"}, scenario_a_fields)
    assert shown.visible is True
    assert shown.reasons == []

    hidden = evaluate(spec, {"A": "no"}, scenario_a_fields)
    assert hidden.visible is False
    assert len(hidden.reasons) == 1
    assert "A" in hidden.reasons[0]


def test_scenario_b_any_combinator():
    """Test OR combination across two referenced fields."""
    catalog = _catalog("A", "B", "C")
    spec = _spec(("A", "equals", "x"), ("B", "equals", "y"), combinator="any")

    assert evaluate(spec, {"A": "x", "B": "z"}, catalog).visible is True

    hidden = evaluate(spec, {"A": "w", "B": "z"}, catalog)
    assert hidden.visible is False
    assert len(hidden.reasons) == 2


def test_all_combinator_requires_every_condition():
    """Test AND combination fails when one condition fails."""
    catalog = _catalog("A", "B", "C")
    spec = _spec(("A", "equals", "x"), ("B", "equals", "y"))

    assert evaluate(spec, {"A": "x", "B": "y"}, catalog).visible is True
    result = evaluate(spec, {"A": "x", "B": "z"}, catalog)
    assert result.visible is False
    assert result.reasons == ['B does not equal "y"']


def test_scenario_d_dangling_reference():
    """Test a condition pointing at a missing field always fails."""
    catalog = _catalog("A")
    spec = _spec(("ghost", "equals", "boo"))

    result = evaluate(spec, {"ghost": "boo"}, catalog)
    assert result.visible is False
    assert "referenced field not found" in result.reasons[0].lower()
    assert "ghost" in result.reasons[0]


def test_scenario_e_array_contains():
    """Test membership on multi-select values."""
    catalog = _catalog("colors", "follow_up")
    values = {"colors": ["red", "blue"]}

    assert evaluate(_spec(("colors", "contains", "blue")), values, catalog).visible is True
    assert evaluate(_spec(("colors", "contains", "green")), values, catalog).visible is False


def test_contains_on_text_is_case_insensitive_substring():
    """Test contains on scalar text values."""
    catalog = _catalog("bio", "follow_up")
    spec = _spec(("bio", "contains", "world"))

    assert evaluate(spec, {"bio": "Hello World"}, catalog).visible is True
    assert evaluate(spec, {"bio": "Hello there"}, catalog).visible is False


@pytest.mark.parametrize(
    "value, expected_visible",
    [
        ("yes", True),
        ("  yes ", True),
        ("YES", False),
        ("no", False),
        ("", False),
        (None, False),
        (1, False),
        (True, False),
        (["yes"], False),
    ],
)
def test_visibility_polarity_law(value, expected_visible):
    """Test that flipping show_when_matched inverts visibility for every input."""
    catalog = _catalog("A", "B")
    values = {"A": value}

    shown = evaluate(_spec(("A", "equals", "yes"), show=True), values, catalog)
    inverted = evaluate(_spec(("A", "equals", "yes"), show=False), values, catalog)

    assert shown.visible is expected_visible
    assert inverted.visible is (not expected_visible)


def test_missing_value_fails_with_reason():
    """Test that an unanswered referenced field fails the condition."""
    catalog = [FieldDescriptor(id="A", label="Favourite Food"), FieldDescriptor(id="B")]
    result = evaluate(_spec(("A", "equals", "pizza")), {}, catalog)

    assert result.visible is False
    assert result.reasons == ["Favourite Food field has no value"]
    assert "field has no value" in result.reasons[0]


def test_not_equals_on_unanswered_field():
    """Test not_equals against an unanswered field only passes for an empty expectation."""
    catalog = _catalog("A", "B")

    assert evaluate(_spec(("A", "not_equals", None)), {}, catalog).visible is True
    assert evaluate(_spec(("A", "not_equals", None)), {"A": None}, catalog).visible is True

    result = evaluate(_spec(("A", "not_equals", "x")), {}, catalog)
    assert result.visible is False
    assert "field has no value" in result.reasons[0]


def test_not_equals_on_answered_field():
    """Test not_equals passes on a different answer and explains a match."""
    catalog = _catalog("A", "B")
    spec = _spec(("A", "not_equals", "x"))

    assert evaluate(spec, {"A": "y"}, catalog).visible is True
    assert evaluate(spec, {"A": "x"}, catalog).reasons == ['A equals "x"']


@pytest.mark.parametrize("show", [True, False])
def test_empty_condition_list(show):
    """Test an empty condition list returns the polarity flag with an explanation."""
    result = evaluate(_spec(show=show), {}, _catalog("A"))
    assert result.visible is show
    assert result.reasons == [NO_CONDITIONS_REASON]


def test_empty_condition_list_with_any():
    """Test an empty condition list is visible under the any combinator too."""
    result = evaluate(_spec(show=True, combinator="any"), {}, _catalog("A"))
    assert result.visible is True
    assert "no conditions defined" in result.reasons[0].lower()


def test_greater_than_numeric_when_both_parse():
    """Test numeric ordering is used for numeric strings."""
    catalog = _catalog("age", "B")
    spec = _spec(("age", "greater_than", 18))

    assert evaluate(spec, {"age": "25"}, catalog).visible is True
    # "9" > "18" lexicographically, but not numerically
    assert evaluate(spec, {"age": "9"}, catalog).visible is False
    assert evaluate(spec, {"age": 18}, catalog).visible is False


def test_less_than_falls_back_to_lexicographic():
    """Test string ordering when a side is not numeric."""
    catalog = _catalog("name", "B")
    spec = _spec(("name", "less_than", "banana"))

    assert evaluate(spec, {"name": "apple"}, catalog).visible is True
    assert evaluate(spec, {"name": "cherry"}, catalog).visible is False


def test_boolean_values_compare_by_identity():
    """Test booleans only match booleans."""
    catalog = _catalog("agree", "B")
    spec = _spec(("agree", "equals", True))

    assert evaluate(spec, {"agree": True}, catalog).visible is True
    assert evaluate(spec, {"agree": False}, catalog).visible is False
    assert evaluate(spec, {"agree": "true"}, catalog).visible is False


def test_unknown_operator_fails_softly():
    """Test unknown operators degrade to a failed condition."""
    catalog = _catalog("A", "B")
    result = evaluate(_spec(("A", "matches", "x")), {"A": "x"}, catalog)

    assert result.visible is False
    assert result.reasons == ["Unknown operator: matches"]


def test_hidden_by_matched_conditions_has_reason():
    """Test hide-when-matched fields explain why they are hidden."""
    catalog = _catalog("A", "B")
    result = evaluate(_spec(("A", "equals", "x"), show=False), {"A": "x"}, catalog)

    assert result.visible is False
    assert result.reasons == [MATCHED_HIDE_REASON]


def test_evaluate_accepts_indexed_catalog():
    """Test the catalog may be passed as a mapping keyed by id."""
    catalog = {f.id: f for f in _catalog("A", "B")}
    assert evaluate(_spec(("A", "equals", "x")), {"A": "x"}, catalog).visible is True


def test_evaluate_condition_returns_reason():
    """Test a failed ordering comparison explains itself with the field label."""
    catalog = {"A": FieldDescriptor(id="A", label="Age")}
    condition = Condition(referenced_field_id="A", operator="less_than", expected_value=18)

    passed, reason = evaluate_condition(condition, {"A": 30}, catalog)
    assert passed is False
    assert reason == 'Age is not less than "18"'


def test_driver_form_reasons(driver_form):
    """Test reasons use field labels from the catalog."""
    license_number = _field(driver_form, "license_number")
    vehicle_type = _field(driver_form, "vehicle_type")

    missing = evaluate_field(license_number, {}, driver_form)
    assert missing.visible is False
    assert "Has Driver License field has no value" in missing.reasons

    underage = evaluate_field(vehicle_type, {"has_license": True, "age": 16}, driver_form)
    assert underage.visible is False
    assert 'Age is not greater than "18"' in underage.reasons

    adult = evaluate_field(vehicle_type, {"has_license": True, "age": 25}, driver_form)
    assert adult.visible is True


def test_evaluate_all(driver_form):
    """Test evaluating the whole catalog in dependency order."""
    results = evaluate_all(driver_form, {"has_license": False, "age": 25, "colors": ["blue"]})

    assert set(results) == {f.id for f in driver_form}
    assert results["name"].visible is True
    assert results["license_number"].visible is False
    assert results["vehicle_type"].visible is False
    assert results["emergency_contact"].visible is True
    assert results["blue_reason"].visible is True


def test_get_field_dependents(driver_form):
    """Test dependents are listed in catalog order."""
    assert get_field_dependents("has_license", driver_form) == [
        "license_number",
        "vehicle_type",
        "emergency_contact",
    ]
    assert get_field_dependents("name", driver_form) == []
