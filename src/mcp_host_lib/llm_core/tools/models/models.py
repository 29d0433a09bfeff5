"""Tool descriptors as reported by protocol servers."""

from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..schema import SchemaValidator


class ToolDescriptor(BaseModel):
    """
    Describes a tool hosted by a connected server.

    Attributes:
        name: The tool name, unique within one server.
        description: What the tool does, shown to the model.
        input_schema: JSON schema of the tool's arguments (wire name ``inputSchema``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "ToolDescriptor":
        """Build a descriptor from a ``tools/list`` entry, normalising its input schema."""
        descriptor = cls.model_validate(payload)
        return descriptor.model_copy(update={"input_schema": SchemaValidator.normalize(descriptor.input_schema)})
