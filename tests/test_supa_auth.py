import pytest

from app.errors import ExternalServiceError
from app.services.supa_auth import AuthService


@pytest.fixture
def auth(fake_supabase, store):
    return AuthService(fake_supabase, store, "secret", max_age_sec=3600)


def test_session_round_trip(auth):
    claims = auth.verify_session(auth.issue_session("user-1", "ada@example.com"))
    assert claims == {"user_id": "user-1", "email": "ada@example.com"}


def test_expired_session_is_rejected(fake_supabase, store):
    expired = AuthService(fake_supabase, store, "secret", max_age_sec=-10)
    with pytest.raises(ValueError):
        expired.verify_session(expired.issue_session("user-1", None))


def test_session_signed_with_other_secret_is_rejected(auth, fake_supabase, store):
    other = AuthService(fake_supabase, store, "other-secret", max_age_sec=3600)
    with pytest.raises(ValueError):
        auth.verify_session(other.issue_session("user-1", None))


def test_missing_secret_is_a_config_error(fake_supabase, store):
    with pytest.raises(RuntimeError):
        AuthService(fake_supabase, store, "", max_age_sec=3600)


def test_sign_up_stores_user_and_rejects_duplicates(auth, fake_supabase):
    user = auth.sign_up("Ada", "ada@example.com", "secret123")
    assert fake_supabase.tables["users"] == [{"id": user["id"], "name": "Ada", "email": "ada@example.com"}]

    with pytest.raises(ExternalServiceError):
        auth.sign_up("Ada", "ada@example.com", "secret123")


def test_sign_in_issues_session_for_known_user(auth):
    user = auth.sign_up("Ada", "ada@example.com", "secret123")
    token = auth.sign_in("ada@example.com", "secret123")
    assert auth.verify_session(token)["user_id"] == user["id"]

    with pytest.raises(ExternalServiceError):
        auth.sign_in("ada@example.com", "wrong")
