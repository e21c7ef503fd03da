"""
Schema declarations for record sets.

A schema is a static configuration resolved once when a RecordSet is built:
field name -> FieldSpec (type, index, required, default). It drives default
values, validation and the list of indexed fields.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field

from redmodel.utils.codec import kind_of

FieldType = Literal["any", "string", "number", "boolean", "date", "object", "array", "pattern"]


class FieldSpec(BaseModel):
    """
    Declaration of a single schema field.
    """

    type: FieldType = Field("any", description="Expected codec kind of the value.")
    index: bool = Field(False, description="Maintain an index set for this field.")
    required: bool = Field(False, description="Reject saves where the field is missing or None.")
    default: Any = Field(None, description="Default value, or a zero-argument callable.")

    model_config = {
        "frozen": True,
        "arbitrary_types_allowed": True,
    }

    def default_value(self) -> Any:
        return self.default() if callable(self.default) else self.default


class FieldError(BaseModel):
    """One field-level validation failure."""

    field: str
    message: str

    model_config = {"frozen": True}


class ValidationResult(BaseModel):
    valid: bool
    errors: List[FieldError] = Field(default_factory=list)


class Schema(BaseModel):
    """
    Named set of field declarations shared by every record of a RecordSet.
    """

    name: str
    fields: Dict[str, FieldSpec] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def from_mapping(cls, name: str, fields: Optional[Mapping[str, Any]] = None) -> "Schema":
        """
        Build a schema from plain declarations such as
        ``{"group": {"type": "string", "index": True}}``.
        """
        specs = {
            field: spec if isinstance(spec, FieldSpec) else FieldSpec(**spec)
            for field, spec in (fields or {}).items()
        }
        return cls(name=name, fields=specs)

    @property
    def indexes(self) -> List[str]:
        return [field for field, spec in self.fields.items() if spec.index]

    def field_type(self, field: str) -> Optional[str]:
        spec = self.fields.get(field)
        return spec.type if spec else None

    def apply_defaults(self, properties: Dict[str, Any]) -> None:
        """Fill fields that are absent from ``properties`` with their defaults."""
        for field, spec in self.fields.items():
            if field not in properties and spec.default is not None:
                properties[field] = spec.default_value()

    def validate_properties(self, properties: Mapping[str, Any]) -> ValidationResult:
        errors: List[FieldError] = []
        for field, spec in self.fields.items():
            value = properties.get(field)
            if value is None:
                if spec.required:
                    errors.append(FieldError(field=field, message="is required"))
                continue
            if spec.type == "any":
                continue
            try:
                kind = kind_of(value)
            except TypeError as exc:
                errors.append(FieldError(field=field, message=str(exc)))
                continue
            if kind != spec.type:
                errors.append(
                    FieldError(field=field, message=f"expected {spec.type}, got {kind}")
                )
        return ValidationResult(valid=not errors, errors=errors)


__all__ = ["FieldSpec", "FieldError", "FieldType", "Schema", "ValidationResult"]
