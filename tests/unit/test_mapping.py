"""Data mapper tests."""

from formflow.contracts import FieldMapping, FormDefinition
from formflow.mapping import DataMapper
from formflow.persistence import Submission


def _submission(position: int, **values) -> Submission:
    return Submission(
        form_id=f"F{position}",
        workflow_id="wf",
        workflow_session_id="scope",
        step_position=position,
        owner="session:anon",
        field_values=values,
    )


RULES = [FieldMapping(from_key="plaintiff_name", to_key="plaintiff_name")]


def test_copies_present_values_into_blank_targets():
    source = _submission(1, plaintiff_name="Jane")
    target = _submission(2)

    updates = DataMapper.apply(source, target, RULES)

    assert updates == {"plaintiff_name": "Jane"}
    assert target.field_values["plaintiff_name"] == "Jane"


def test_never_overwrites_existing_target_value():
    source = _submission(1, plaintiff_name="Jane")
    target = _submission(2, plaintiff_name="Prior Value")

    updates = DataMapper.apply(source, target, RULES)

    assert updates == {}
    assert target.field_values["plaintiff_name"] == "Prior Value"


def test_blank_source_values_are_ignored():
    source = _submission(1, plaintiff_name="   ")
    target = _submission(2)

    assert DataMapper.apply(source, target, RULES) == {}
    assert "plaintiff_name" not in target.field_values


def test_source_is_not_mutated():
    source = _submission(1, a="x", b="y")
    target = _submission(2)
    rules = [FieldMapping(from_key="a", to_key="b"), FieldMapping(from_key="b", to_key="a")]

    DataMapper.apply(source, target, rules)

    assert source.field_values == {"a": "x", "b": "y"}
    assert target.field_values == {"b": "x", "a": "y"}


def test_first_rule_wins_for_same_target():
    updates = DataMapper.plan(
        {"first": "1", "second": "2"},
        {},
        [FieldMapping(from_key="first", to_key="t"), FieldMapping(from_key="second", to_key="t")],
    )
    assert updates == {"t": "1"}


def test_prefill_shared_respects_existing_input():
    form = FormDefinition(
        form_id="F2", shared_fields={"owner_name": "plaintiff_name", "city": "city"}
    )
    target = _submission(2, city="Fresno")

    updates = DataMapper.prefill_shared(
        {"plaintiff_name": "Jane", "city": "Oakland"}, target, form
    )

    assert updates == {"owner_name": "Jane"}
    assert target.field_values == {"city": "Fresno", "owner_name": "Jane"}


def test_prefill_shared_without_form_is_noop():
    target = _submission(2)
    assert DataMapper.prefill_shared({"plaintiff_name": "Jane"}, target, None) == {}
