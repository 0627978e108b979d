"""Base model for client-held and wire-level records.

These records are external contracts: they are serialized to JSON for the
durable client storage and for collaborator HTTP calls, which speak
camelCase. Python code uses the snake_case attribute names.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Dump with camelCase keys and without unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
