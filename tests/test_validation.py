"""Unit tests for per-field conditional logic validation."""

from formlogic.analyzers.dependency_graph import DependencyGraphBuilder
from formlogic.analyzers.validation import summarize, validate_catalog, validate_field
from formlogic.config.models import Condition, ConditionalSpec, FieldDescriptor


def _field(field_id, *conditions):
    conditional = None
    if conditions:
        conditional = ConditionalSpec(
            conditions=[
                Condition(referenced_field_id=ref, operator=op, expected_value=value)
                for ref, op, value in conditions
            ]
        )
    return FieldDescriptor(id=field_id, conditional=conditional)


def test_field_without_logic_is_valid():
    """Test a field without conditional logic has no issues."""
    fields = [_field("A")]
    result = validate_field(fields[0], fields)
    assert result.is_valid is True
    assert result.issues == []


def test_valid_field(driver_form):
    """Test a well-formed field passes against the driver form."""
    target = next(f for f in driver_form if f.id == "vehicle_type")
    result = validate_field(target, driver_form)
    assert result.is_valid is True
    assert result.errors == []


def test_self_reference():
    """Test a condition on the field itself is flagged."""
    fields = [_field("A", ("A", "equals", "x"))]
    result = validate_field(fields[0], fields)

    assert result.is_valid is False
    assert result.errors == ["Field cannot reference itself in conditional logic"]
    assert result.issues[0].issue_type == "self_reference"


def test_missing_reference():
    """Test a condition on an unknown field is flagged with its id."""
    fields = [_field("A"), _field("B", ("ghost", "equals", "x"))]
    result = validate_field(fields[1], fields)

    assert result.errors == ['Referenced field "ghost" does not exist']
    assert result.issues[0].metadata == {"missing_field_id": "ghost"}


def test_unknown_operator_and_empty_value():
    """Test unknown operators and empty expected values are both flagged."""
    fields = [_field("A"), _field("B", ("A", "matches", None))]
    result = validate_field(fields[1], fields)

    assert [issue.issue_type for issue in result.issues] == ["unknown_operator", "empty_value"]
    assert "Unknown operator: matches" in result.errors
    assert "Condition value cannot be empty" in result.errors


def test_cycle_is_reported_on_each_member():
    """Test both fields of a two-field cycle carry a circular dependency issue."""
    fields = [_field("A", ("B", "equals", "x")), _field("B", ("A", "equals", "y"))]
    builder = DependencyGraphBuilder(fields)

    for descriptor in fields:
        result = validate_field(descriptor, fields, builder=builder)
        assert result.is_valid is False
        assert result.issues[0].issue_type == "circular_dependency"
        assert result.issues[0].related_fields == ["A", "B", "A"]
        assert "A → B → A" in result.errors[0]


def test_validate_catalog_and_summary():
    """Test catalog-wide issues are counted by type and severity."""
    fields = [
        _field("A", ("B", "equals", "x")),
        _field("B", ("A", "equals", "y")),
        _field("C", ("ghost", "equals", "z")),
        _field("D", ("D", "equals", "w")),
    ]
    issues = validate_catalog(fields)
    counts = summarize(issues)

    assert counts["circular_dependency"] == 2
    assert counts["circular_dependency:critical"] == 2
    assert counts["dangling_reference"] == 1
    assert counts["self_reference"] == 1
    assert counts["severity:warning"] == 2


def test_summarize_empty():
    """Test summarizing no issues gives no counts."""
    assert summarize([]) == {}
