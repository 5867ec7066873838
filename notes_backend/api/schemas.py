from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_TITLE_LENGTH = 255
MAX_CONTENT_LENGTH = 1_000_000


class CamelModel(BaseModel):
    """Serializes attributes with camelCase keys, read from ORM objects."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _not_blank(value):
    if value is not None and not value.strip():
        raise ValueError("must not be empty")
    # Stored verbatim; only the emptiness check looks at trimmed text.
    return value


class NoteCreate(BaseModel):
    title: str = Field(..., max_length=MAX_TITLE_LENGTH, description="Note title")
    content: str = Field(..., max_length=MAX_CONTENT_LENGTH, description="Note content (HTML)")

    @field_validator("title", "content")
    @classmethod
    def check_not_blank(cls, value):
        return _not_blank(value)


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=MAX_TITLE_LENGTH)
    content: Optional[str] = Field(None, max_length=MAX_CONTENT_LENGTH)

    @field_validator("title", "content")
    @classmethod
    def check_not_blank(cls, value):
        return _not_blank(value)


class NoteOut(CamelModel):
    id: str
    title: str
    content: str
    user_id: str
    created_at: datetime
    updated_at: datetime


class ProfileOut(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    provider: Optional[str] = None
    last_signed_in: datetime
    notes_count: int


class MessageOut(BaseModel):
    message: str


class HealthOut(BaseModel):
    status: str
    timestamp: datetime
