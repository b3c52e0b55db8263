# neuroscroll/base_models.py
"""Base model for records stored in camelCase and handled in snake_case."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model whose serialized form uses camelCase keys.

    Fields are snake_case in Python; ``to_storage()`` produces the camelCase
    shape used by storage (``videoId``, ``startTime``...). Both spellings are
    accepted on input and by dict-style access, so ``session["startTime"]``
    and ``session["start_time"]`` read the same field.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def field_name(cls, key: str) -> str | None:
        """Resolve a snake_case or camelCase key to the Python field name."""
        if key in cls.model_fields:
            return key
        for name, field in cls.model_fields.items():
            if field.alias == key:
                return name
        return None

    def __getitem__(self, key: str) -> Any:
        name = type(self).field_name(key)
        if name is None:
            raise KeyError(key)
        return getattr(self, name)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and type(self).field_name(key) is not None

    def to_storage(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
