"""Tool schema validation."""

from .schema_validator import SchemaValidator

__all__ = ["SchemaValidator"]
