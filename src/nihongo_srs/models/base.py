"""Shared model configuration."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def as_local_naive(value: datetime) -> datetime:
    """Convert an aware timestamp to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


# Stored and imported timestamps (e.g. "2026-04-01T10:00:00.000Z") are compared
# against the naive local clock, so every datetime field is normalised on input.
LocalDatetime = Annotated[datetime, AfterValidator(as_local_naive)]


class CamelModel(BaseModel):
    """Model persisted with camelCase keys, constructed with either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
