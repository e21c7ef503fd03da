from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from redmodel.domain.schema import FieldSpec, Schema


def _schema() -> Schema:
    return Schema.from_mapping(
        "food",
        {
            "name": {"type": "string", "required": True},
            "group": {"type": "string", "index": True, "default": "misc"},
            "calories": {"type": "number"},
            "created": {"type": "date", "default": datetime.now},
            "extra": {},
        },
    )


def test_from_mapping_resolves_indexes_and_types() -> None:
    schema = _schema()

    assert schema.indexes == ["group"]
    assert schema.field_type("calories") == "number"
    assert schema.field_type("extra") == "any"
    assert schema.field_type("unknown") is None


def test_unknown_field_type_is_rejected() -> None:
    with pytest.raises(ValidationError):
        FieldSpec(type="integer")


def test_apply_defaults_fills_only_missing_fields() -> None:
    props = {"name": "apple", "group": "fruit"}

    _schema().apply_defaults(props)

    assert props["group"] == "fruit"
    assert isinstance(props["created"], datetime)
    assert "calories" not in props


def test_validate_reports_missing_and_mistyped_fields() -> None:
    result = _schema().validate_properties({"calories": "ninety", "extra": object()})

    assert not result.valid
    errors = {error.field: error.message for error in result.errors}
    assert errors["name"] == "is required"
    assert errors["calories"] == "expected number, got string"
    assert "extra" not in errors


def test_validate_accepts_well_typed_properties() -> None:
    result = _schema().validate_properties({"name": "apple", "calories": 90, "group": None})

    assert result.valid
    assert result.errors == []
