import time

import jwt

from pizzeria.core.config import get_settings
from pizzeria.core.identity import Identity, extract_token, resolve_identity
from pizzeria.core.security import create_access_token


def _supabase_token(secret="supabase-secret", **claims):
    payload = {
        "iss": "https://demo-project.supabase.co/auth/v1",
        "sub": "6f1c2d3e-aaaa-bbbb-cccc-0123456789ab",
        "email": "jane@example.com",
        "exp": int(time.time()) + 3600,
        "user_metadata": {"full_name": "Jane Doe"},
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def test_legacy_token_resolves_user_id_and_role():
    token = create_access_token(user_id=42, username="pat", role="kitchen")

    identity = resolve_identity(token)

    assert identity.user_id == 42
    assert identity.supabase_user_id is None
    assert identity.role == "kitchen"
    assert identity.username == "pat"


def test_legacy_token_with_wrong_signature_is_anonymous():
    token = jwt.encode({"userId": 1, "role": "admin"}, "not-the-secret", algorithm="HS256")

    identity = resolve_identity(token)

    assert identity == Identity.anonymous()
    assert not identity.is_authenticated


def test_expired_legacy_token_is_anonymous():
    token = jwt.encode(
        {"userId": 1, "sub": "1", "exp": int(time.time()) - 10},
        get_settings().JWT_SECRET_KEY,
        algorithm="HS256",
    )

    assert resolve_identity(token).is_authenticated is False


def test_malformed_token_is_anonymous():
    assert resolve_identity("definitely.not.a-jwt") == Identity.anonymous()
    assert resolve_identity(None) == Identity.anonymous()


def test_supabase_token_without_configured_secret_is_decoded(monkeypatch):
    monkeypatch.setattr(get_settings(), "SUPABASE_JWT_SECRET", None)

    identity = resolve_identity(_supabase_token())

    assert identity.user_id is None
    assert identity.supabase_user_id == "6f1c2d3e-aaaa-bbbb-cccc-0123456789ab"
    assert identity.email == "jane@example.com"
    assert identity.first_name == "Jane"
    assert identity.last_name == "Doe"
    assert identity.role == "customer"
    assert identity.verified is False


def test_expired_supabase_token_is_anonymous(monkeypatch):
    monkeypatch.setattr(get_settings(), "SUPABASE_JWT_SECRET", None)

    identity = resolve_identity(_supabase_token(exp=int(time.time()) - 60))

    assert identity == Identity.anonymous()


def test_supabase_token_is_verified_when_secret_configured(monkeypatch):
    monkeypatch.setattr(get_settings(), "SUPABASE_JWT_SECRET", "supabase-secret")

    assert resolve_identity(_supabase_token()).is_supabase
    assert resolve_identity(_supabase_token()).verified is True
    assert resolve_identity(_supabase_token(secret="forged")) == Identity.anonymous()


def test_supabase_role_prefers_linked_account_role(monkeypatch):
    monkeypatch.setattr(get_settings(), "SUPABASE_JWT_SECRET", None)
    token = _supabase_token(user_metadata={"role": "manager"})

    assert resolve_identity(token).role == "manager"
    assert resolve_identity(token, role_lookup=lambda subject: "admin").role == "admin"


def test_failing_role_lookup_falls_back_to_metadata(monkeypatch):
    monkeypatch.setattr(get_settings(), "SUPABASE_JWT_SECRET", None)

    def broken_lookup(subject):
        raise RuntimeError("database down")

    identity = resolve_identity(_supabase_token(), role_lookup=broken_lookup)

    assert identity.role == "customer"
    assert identity.is_authenticated


def test_extract_token_prefers_header_over_cookies():
    headers = {"authorization": "Bearer header-token"}
    cookies = {"auth-token": "cookie-token"}

    assert extract_token(headers, cookies) == "header-token"
    assert extract_token({}, cookies) == "cookie-token"
    assert extract_token({}, {"session": "s"}) == "s"
    assert extract_token({"authorization": "Basic abc"}, {}) is None
