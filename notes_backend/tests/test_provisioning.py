from datetime import datetime, timedelta, timezone

import pytest

from conftest import bearer, make_token
from notes_database.models import User
from notes_database.users import ProvisioningError, UserProfile, count_notes, get_user, upsert_user

T0 = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def naive(value):
    return value.replace(tzinfo=None)


# ------- UPSERT --------
def test_first_sign_in_creates_user(db_session):
    profile = UserProfile(id="user_1", email="one@example.com", name="One", provider="oauth_google")
    assert upsert_user(db_session, profile, now=T0) == "user_1"

    user = get_user(db_session, "user_1")
    assert user.email == "one@example.com"
    assert user.name == "One"
    assert user.provider == "oauth_google"
    assert naive(user.last_signed_in) == naive(T0)
    assert naive(user.created_at) == naive(T0)

def test_missing_email_gets_placeholder(db_session):
    upsert_user(db_session, UserProfile(id="user_1"), now=T0)
    assert get_user(db_session, "user_1").email == "user_1@no-email.local"

def test_repeat_sign_in_touches_without_duplicating(db_session):
    upsert_user(db_session, UserProfile(id="user_1", email="one@example.com", first_name="One"), now=T0)
    later = T0 + timedelta(hours=2)
    upsert_user(db_session, UserProfile(id="user_1", image_url="new.png"), now=later)

    assert db_session.query(User).count() == 1
    user = get_user(db_session, "user_1")
    assert naive(user.last_signed_in) == naive(later)
    assert naive(user.created_at) == naive(T0)
    # Unknown fields never clobber what was stored.
    assert user.email == "one@example.com"
    assert user.first_name == "One"
    assert user.image_url == "new.png"

def test_email_taken_by_another_user(db_session):
    upsert_user(db_session, UserProfile(id="user_1", email="shared@example.com"), now=T0)
    with pytest.raises(ProvisioningError):
        upsert_user(db_session, UserProfile(id="user_2", email="shared@example.com"), now=T0)

    # The session is still usable and nothing was half-written.
    assert db_session.query(User).count() == 1
    assert get_user(db_session, "user_2") is None

def test_count_notes_of_new_user(db_session):
    upsert_user(db_session, UserProfile(id="user_1"), now=T0)
    assert count_notes(db_session, "user_1") == 0


# ------- THROUGH THE API --------
def test_first_request_provisions_exactly_one_user(client, db_session, auth_header, user_data, clock):
    assert db_session.query(User).count() == 0
    r = client.get("/api/notes", headers=auth_header)
    assert r.status_code == 200
    assert db_session.query(User).count() == 1
    first_seen = get_user(db_session, user_data["sub"]).last_signed_in

    db_session.expire_all()
    r = client.get("/api/notes", headers=auth_header)
    assert r.status_code == 200
    assert db_session.query(User).count() == 1
    assert get_user(db_session, user_data["sub"]).last_signed_in > first_seen

def test_token_without_email_is_provisioned(client):
    r = client.get("/api/user/profile", headers=bearer(make_token("user_noemail")))
    assert r.status_code == 200
    assert r.json()["email"] == "user_noemail@no-email.local"
    assert r.json()["notesCount"] == 0

def test_email_collision_is_rejected_generically(client, auth_header, user_data, db_session):
    assert client.get("/api/notes", headers=auth_header).status_code == 200
    impostor = bearer(make_token("user_other", email=user_data["email"]))
    r = client.get("/api/notes", headers=impostor)
    assert r.status_code == 401
    assert r.json() == {"detail": "Could not validate credentials."}
    assert db_session.query(User).count() == 1
