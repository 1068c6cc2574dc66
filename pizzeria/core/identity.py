"""Bearer token to caller identity resolution.

Two token families reach the API: tokens minted by :mod:`pizzeria.core.security`
for legacy username/password accounts, and Supabase Auth access tokens for
Google sign-ins. Both are reduced to an :class:`Identity`. Anything that cannot
be decoded resolves to the anonymous identity instead of raising.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import jwt

from . import security
from .config import get_settings

logger = logging.getLogger(__name__)

TOKEN_COOKIE_NAMES = ("auth-token", "token", "jwt", "session")
ANONYMOUS_ROLE = "anonymous"
DEFAULT_ROLE = "customer"

RoleLookup = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class Identity:
    user_id: int | None = None
    supabase_user_id: str | None = None
    role: str = ANONYMOUS_ROLE
    username: str | None = None
    email: str | None = None
    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    marketing_opt_in: bool = True
    verified: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None or self.supabase_user_id is not None

    @property
    def is_supabase(self) -> bool:
        return self.supabase_user_id is not None

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls()


def extract_token(headers: Mapping[str, str], cookies: Mapping[str, str]) -> str | None:
    """Return the bearer token from the Authorization header or auth cookies."""

    authorization = headers.get("authorization")
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    for name in TOKEN_COOKIE_NAMES:
        value = cookies.get(name)
        if value:
            return value
    return None


def _is_supabase_issuer(claims: Mapping[str, Any]) -> bool:
    issuer = claims.get("iss")
    return isinstance(issuer, str) and "supabase" in issuer


def _split_name(full_name: str | None) -> tuple[str | None, str | None]:
    if not full_name:
        return None, None
    first, _, rest = full_name.strip().partition(" ")
    return first or None, rest.strip() or None


def _supabase_identity(
    claims: Mapping[str, Any], role_lookup: RoleLookup | None, *, verified: bool
) -> Identity:
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        return Identity.anonymous()

    metadata = claims.get("user_metadata") or {}
    if not isinstance(metadata, Mapping):
        metadata = {}

    role = None
    if role_lookup is not None:
        try:
            role = role_lookup(subject)
        except Exception:
            logger.exception("Role lookup failed for supabase user %s", subject)
    role = role or metadata.get("role") or DEFAULT_ROLE

    full_name = metadata.get("full_name") or metadata.get("name")
    first_name, last_name = _split_name(full_name)
    return Identity(
        user_id=None,
        supabase_user_id=subject,
        role=role,
        username=claims.get("email") or "supabase_user",
        email=claims.get("email"),
        full_name=full_name,
        first_name=first_name or metadata.get("first_name"),
        last_name=last_name or metadata.get("last_name"),
        marketing_opt_in=metadata.get("marketing_opt_in") is not False,
        verified=verified,
    )


def _legacy_identity(claims: Mapping[str, Any]) -> Identity:
    raw_user_id = claims.get("userId", claims.get("sub"))
    try:
        user_id = int(raw_user_id)
    except (TypeError, ValueError):
        return Identity.anonymous()
    return Identity(
        user_id=user_id,
        role=claims.get("role") or DEFAULT_ROLE,
        username=claims.get("username"),
        email=claims.get("email"),
        verified=True,
    )


def resolve_identity(token: str | None, *, role_lookup: RoleLookup | None = None) -> Identity:
    """Map a bearer token to an identity, failing closed to anonymous."""

    if not token:
        return Identity.anonymous()

    try:
        claims = security.peek_claims(token)
    except jwt.PyJWTError:
        logger.info("Rejected malformed bearer token")
        return Identity.anonymous()

    if _is_supabase_issuer(claims):
        settings = get_settings()
        if settings.SUPABASE_JWT_SECRET:
            try:
                claims = security.decode_supabase_token(token)
            except jwt.PyJWTError as exc:
                logger.info("Rejected supabase token: %s", exc)
                return Identity.anonymous()
        else:
            expires_at = claims.get("exp")
            if isinstance(expires_at, (int, float)) and expires_at < time.time():
                logger.info("Rejected expired supabase token")
                return Identity.anonymous()
        return _supabase_identity(claims, role_lookup, verified=bool(settings.SUPABASE_JWT_SECRET))

    try:
        verified = security.decode_access_token(token)
    except jwt.PyJWTError as exc:
        logger.info("Rejected legacy token: %s", exc)
        return Identity.anonymous()
    return _legacy_identity(verified)
