from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_storage(value: Any) -> Any:
    """Convert enums and plain dates to storable primitives (BSON has no date type)."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_storage(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_storage(v) for v in value]
    return value


class Record(BaseModel):
    """Base for every stored record. Ids are strings at the service boundary."""
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    user_id: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )

    def to_document(self) -> dict:
        """Fields to persist, without the id (assigned by the store)."""
        return to_storage(self.model_dump(exclude={"id"}))
