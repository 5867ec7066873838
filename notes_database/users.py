"""
User provisioning.

Users are never registered explicitly: the first authenticated request from a
new identity inserts the row and every later one refreshes it. Both happen in
one ``INSERT ... ON CONFLICT (id) DO UPDATE`` statement so that concurrent
first requests for the same identity cannot produce two rows.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from notes_database.models import Note, User, utcnow

logger = logging.getLogger(__name__)

PLACEHOLDER_EMAIL_DOMAIN = "no-email.local"

PROFILE_FIELDS = ("email", "name", "first_name", "last_name", "image_url", "provider", "provider_id")

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ProvisioningError(Exception):
    """The user row could not be created or refreshed."""


# PUBLIC_INTERFACE
@dataclass
class UserProfile:
    """Identity attributes known for a user at sign-in time."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    provider: Optional[str] = None
    provider_id: Optional[str] = None

    def known_fields(self):
        """Profile fields that carry a value."""
        return {
            field: getattr(self, field)
            for field in PROFILE_FIELDS
            if getattr(self, field) is not None
        }


def placeholder_email(user_id: str) -> str:
    return f"{user_id}@{PLACEHOLDER_EMAIL_DOMAIN}"


# PUBLIC_INTERFACE
def upsert_user(session, profile: UserProfile, now=None) -> str:
    """
    Inserts the user if absent, otherwise touches ``last_signed_in`` and
    refreshes the profile fields present in ``profile``.

    Fields missing from the profile never overwrite stored values. Returns the
    user id. Raises ProvisioningError when a constraint is violated, e.g. the
    email already belongs to another user.
    """
    now = now or utcnow()
    values = {field: None for field in PROFILE_FIELDS}
    values.update(profile.known_fields())
    if not values["email"]:
        values["email"] = placeholder_email(profile.id)
    values.update(id=profile.id, created_at=now, last_signed_in=now)

    changes = profile.known_fields()
    changes["last_signed_in"] = now

    dialect = session.get_bind().dialect.name
    try:
        if dialect in _UPSERT_INSERTS:
            stmt = _UPSERT_INSERTS[dialect](User).values(**values)
            stmt = stmt.on_conflict_do_update(index_elements=[User.id], set_=changes)
            session.execute(stmt)
        else:
            _insert_or_update(session, values, changes)
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Could not provision user %s: %s", profile.id, exc.orig)
        raise ProvisioningError(profile.id) from exc
    except ProvisioningError:
        session.rollback()
        logger.warning("Could not provision user %s", profile.id)
        raise
    return profile.id


def _insert_or_update(session, values, changes):
    # Dialects without ON CONFLICT: rely on the primary key to reject the insert.
    try:
        with session.begin_nested():
            session.execute(insert(User).values(**values))
        logger.info("Created user %s", values["id"])
        return
    except IntegrityError:
        pass
    result = session.execute(update(User).where(User.id == values["id"]).values(**changes))
    if result.rowcount == 0:
        # The insert failed on another constraint (email) and no row has this id.
        raise ProvisioningError(values["id"])


# PUBLIC_INTERFACE
def get_user(session, user_id: str):
    return session.get(User, user_id)


# PUBLIC_INTERFACE
def count_notes(session, user_id: str) -> int:
    return session.scalar(select(func.count(Note.id)).where(Note.user_id == user_id))
