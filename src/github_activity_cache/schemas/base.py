"""Base schema class shared by every persisted record."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, TypeAdapter


class SchemaBase(BaseModel):
    """Base class for all Pydantic schemas.

    Attributes are snake_case in Python; the JSON aliases keep the field
    names the cache files have always used.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using the on-disk field names."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def list_adapter(cls) -> TypeAdapter[list[Self]]:
        """Get a TypeAdapter for (de)serializing a list of this schema."""
        return TypeAdapter(list[cls])  # type: ignore[valid-type]
