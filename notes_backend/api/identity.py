"""
Identity provider integration.

Tokens are always verified cryptographically, either with a configured key or
with the provider's published JWKS. The provider's user API is optionally
consulted to fill in profile data that session tokens do not carry.
"""
import logging
import time
from typing import Optional

import requests
from jose import JWTError, jwt
from jose.exceptions import JWKError

from notes_backend.api.errors import AuthenticationError
from notes_database.users import UserProfile

logger = logging.getLogger(__name__)

# (fetched_at, JWKS document) keyed by URL.
_jwks_cache = {}


def _first(mapping, *keys):
    for key in keys:
        value = mapping.get(key)
        if value:
            return value
    return None


def _full_name(first_name, last_name):
    return " ".join(part for part in (first_name, last_name) if part) or None


# PUBLIC_INTERFACE
def profile_from_claims(claims: dict) -> UserProfile:
    """Builds a profile from the verified token claims."""
    first_name = _first(claims, "first_name", "given_name")
    last_name = _first(claims, "last_name", "family_name")
    return UserProfile(
        id=claims["sub"],
        email=_first(claims, "email", "primary_email"),
        name=_first(claims, "name") or _full_name(first_name, last_name),
        first_name=first_name,
        last_name=last_name,
        image_url=_first(claims, "image_url", "picture"),
        provider=_first(claims, "oauth_provider"),
        provider_id=_first(claims, "oauth_provider_id"),
    )


# PUBLIC_INTERFACE
def profile_from_directory(data: dict) -> UserProfile:
    """Builds a profile from a user record returned by the provider's user API."""
    addresses = data.get("email_addresses") or []
    primary = next(
        (a for a in addresses if a.get("id") == data.get("primary_email_address_id")),
        addresses[0] if addresses else {},
    )
    accounts = data.get("external_accounts") or []
    account = accounts[0] if accounts else {}
    first_name = data.get("first_name") or None
    last_name = data.get("last_name") or None
    return UserProfile(
        id=data["id"],
        email=primary.get("email_address") or None,
        name=_full_name(first_name, last_name),
        first_name=first_name,
        last_name=last_name,
        image_url=_first(data, "image_url", "profile_image_url"),
        provider=account.get("provider") or None,
        provider_id=account.get("provider_user_id") or None,
    )


def merge_profiles(base: UserProfile, extra: Optional[UserProfile]) -> UserProfile:
    """Overlays the known fields of ``extra`` onto ``base``."""
    if extra is None:
        return base
    merged = UserProfile(id=base.id, **base.known_fields())
    for name, value in extra.known_fields().items():
        setattr(merged, name, value)
    return merged


# PUBLIC_INTERFACE
class TokenVerifier:
    """Verifies session tokens issued by the identity provider."""

    def __init__(self, settings):
        self.settings = settings

    @property
    def configured(self):
        return bool(self.settings.identity_jwt_key or self.settings.identity_jwks_url)

    def verify(self, token: str) -> dict:
        """Returns the verified claims or raises AuthenticationError."""
        if not self.configured:
            raise AuthenticationError("no token verification key configured")
        try:
            header = jwt.get_unverified_header(token)
            key = self._signing_key(header.get("kid"))
            claims = jwt.decode(
                token,
                key,
                algorithms=self.settings.identity_algorithms,
                audience=self.settings.identity_audience,
                issuer=self.settings.identity_issuer,
                options={"verify_aud": self.settings.identity_audience is not None},
            )
        except (JWTError, JWKError) as exc:
            raise AuthenticationError(f"token rejected: {exc}") from exc
        if not claims.get("sub"):
            raise AuthenticationError("token has no subject")
        return claims

    def _signing_key(self, kid):
        if self.settings.identity_jwt_key:
            return self.settings.identity_jwt_key
        url = self.settings.identity_jwks_url
        fetched_at, jwks = _jwks_cache.get(url, (None, None))
        key = self._find_key(jwks, kid)
        if key is None and self._may_refetch(fetched_at):
            # Unknown kid: the provider may have rotated its keys. The attempt
            # is recorded before fetching so failures are rate limited too.
            now = time.monotonic()
            _jwks_cache[url] = (now, jwks)
            jwks = self._fetch_jwks(url)
            _jwks_cache[url] = (now, jwks)
            key = self._find_key(jwks, kid)
        if key is None:
            raise AuthenticationError(f"no signing key matches kid {kid!r}")
        return key

    def _may_refetch(self, fetched_at):
        if fetched_at is None:
            return True
        return time.monotonic() - fetched_at >= self.settings.identity_jwks_refresh_interval

    @staticmethod
    def _find_key(jwks, kid):
        if not jwks:
            return None
        keys = jwks.get("keys", [])
        if kid is None and len(keys) == 1:
            return keys[0]
        return next((k for k in keys if k.get("kid") == kid), None)

    def _fetch_jwks(self, url):
        logger.debug("Fetching JWKS from %s", url)
        try:
            response = requests.get(url, timeout=self.settings.identity_timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise AuthenticationError(f"could not fetch JWKS: {exc}") from exc


# PUBLIC_INTERFACE
class UserDirectory:
    """Client for the identity provider's user-lookup API."""

    def __init__(self, settings):
        self.settings = settings

    @property
    def enabled(self):
        return bool(self.settings.identity_secret_key)

    def fetch_profile(self, user_id: str) -> UserProfile:
        url = f"{self.settings.identity_api_url}/users/{user_id}"
        try:
            response = requests.get(
                url,
                headers={
                    "Authorization": f"Bearer {self.settings.identity_secret_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.settings.identity_timeout,
            )
        except requests.RequestException as exc:
            raise AuthenticationError(f"user lookup failed: {exc}") from exc
        if response.status_code != 200:
            raise AuthenticationError(f"user lookup returned {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise AuthenticationError("user lookup returned invalid JSON") from exc
        if data.get("id") != user_id:
            raise AuthenticationError("user lookup returned a different user")
        return profile_from_directory(data)


# PUBLIC_INTERFACE
class IdentityProvider:
    """Turns a bearer token into the profile of a verified user."""

    def __init__(self, verifier: TokenVerifier, directory: UserDirectory):
        self.verifier = verifier
        self.directory = directory

    @classmethod
    def from_settings(cls, settings):
        return cls(TokenVerifier(settings), UserDirectory(settings))

    def authenticate(self, token: str) -> UserProfile:
        claims = self.verifier.verify(token)
        profile = profile_from_claims(claims)
        if self.directory.enabled:
            profile = merge_profiles(profile, self.directory.fetch_profile(profile.id))
        return profile
