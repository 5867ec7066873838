import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timestamp stored in UTC and always read back timezone-aware.

    Some dialects (SQLite) drop the offset, so naive values coming out of the
    database are UTC by construction.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def new_note_id():
    return str(uuid.uuid4())


# PUBLIC_INTERFACE
class User(Base):
    """
    A user of the notes service.

    The primary key is the identity provider's subject claim; rows are created
    lazily on first authentication and never deleted by the application.
    """
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(320), unique=True, nullable=False)
    name = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    image_url = Column(String(2048), nullable=True)
    provider = Column(String(64), nullable=True)
    provider_id = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)
    last_signed_in = Column(UTCDateTime(), default=utcnow, nullable=False)

    notes = relationship("Note", back_populates="owner")

    def __repr__(self):
        return f"<User {self.id}>"


# PUBLIC_INTERFACE
class Note(Base):
    """
    A rich-text note owned by exactly one user.
    """
    __tablename__ = "notes"

    id = Column(String(36), primary_key=True, default=new_note_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False, index=True)
    updated_at = Column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False)

    user_id = Column(String(255), ForeignKey("users.id"), nullable=False, index=True)
    owner = relationship("User", back_populates="notes")

    def __repr__(self):
        return f"<Note {self.id}>"
