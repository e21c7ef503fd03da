"""
Domain package for redmodel.

Exports schema declarations and the error types shared by records, record
sets and views. Keep this package focused on data definitions and validation.
"""

from redmodel.domain.errors import ConfigurationError, ValidationFailed
from redmodel.domain.schema import FieldError, FieldSpec, Schema, ValidationResult

__all__ = [
    "ConfigurationError",
    "ValidationFailed",
    "FieldError",
    "FieldSpec",
    "Schema",
    "ValidationResult",
]
