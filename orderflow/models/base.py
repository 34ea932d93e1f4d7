"""
Base class for records persisted in the key-value store.

Records are stored as JSON objects with camelCase keys. Python code uses
snake_case attribute names; the alias generator maps between the two.
"""

from typing import Any, Dict, TypeVar, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


R = TypeVar("R", bound="StoredRecord")


class StoredRecord(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        # Unknown keys written by older versions are kept, not dropped
        extra="allow",
    )

    def to_store(self) -> Dict[str, Any]:
        """Serialize to the JSON document written to the store."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def from_store(cls: Type[R], data: Dict[str, Any]) -> R:
        return cls.model_validate(data)
