import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from notes_backend.api.config import get_settings
from notes_backend.api.errors import AuthenticationError
from notes_backend.api.identity import IdentityProvider
from notes_database.db import SessionLocal
from notes_database.users import ProvisioningError, upsert_user

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# DATABASE Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_identity_provider(settings=Depends(get_settings)) -> IdentityProvider:
    return IdentityProvider.from_settings(settings)


# PUBLIC_INTERFACE
def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db=Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> str:
    """
    Verifies the bearer token and makes sure a local user row exists for it.

    Returns the user id; every failure is reported as a plain 401.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("missing or malformed Authorization header")
    profile = identity.authenticate(credentials.credentials)
    try:
        return upsert_user(db, profile)
    except ProvisioningError as exc:
        raise AuthenticationError(f"could not provision user {profile.id}") from exc
