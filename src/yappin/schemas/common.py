"""Shared Pydantic base classes for stored records and API payloads."""
from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StoreRecord(BaseModel):
    """Base for records persisted in the store under camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    # Fields derived from the record's path rather than stored inside it.
    key_fields: ClassVar[frozenset[str]] = frozenset()

    def to_store(self) -> dict[str, Any]:
        """Return the record as it is written to the store."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude=set(self.key_fields),
        )


class MediaItem(StoreRecord):
    """A single attachment on a yap or message."""

    type: str
    url: str
