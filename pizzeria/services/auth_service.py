import logging
from urllib.parse import urlencode, urlsplit

from passlib.exc import UnknownHashError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from pizzeria.core import security
from pizzeria.core.config import get_settings
from pizzeria.models import User

from . import exceptions
from .account_service import AccountService

logger = logging.getLogger(__name__)


def _origin(url: str) -> str | None:
    parts = urlsplit(url.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc.lower()}"


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        self.accounts = AccountService(db)

    def issue_token(self, user: User) -> str:
        return security.create_access_token(
            user_id=user.id,
            username=user.username,
            role=user.role.value,
            additional_claims={"email": user.email},
        )

    def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        phone: str | None = None,
        marketing_opt_in: bool = True,
    ) -> tuple[User, str]:
        username = username.strip()
        email = email.strip().lower()
        taken = (
            self.db.query(User.id)
            .filter(or_(func.lower(User.username) == username.lower(), func.lower(User.email) == email))
            .first()
        )
        if taken:
            raise exceptions.ConflictError("An account with this username or email already exists")

        user = self.accounts.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            marketing_opt_in=marketing_opt_in,
        )
        return user, self.issue_token(user)

    def login(self, *, username: str, password: str) -> tuple[User, str]:
        identifier = username.strip()
        user = (
            self.db.query(User)
            .filter(or_(User.username == identifier, func.lower(User.email) == identifier.lower()))
            .first()
        )
        if user is None or not self._password_matches(password, user.password_hash):
            logger.info("Failed login for %s", identifier)
            raise exceptions.AuthenticationError("Invalid username or password")
        if not user.is_active:
            raise exceptions.AuthorizationError("Account is disabled")
        logger.info("User %s logged in", user.id)
        return user, self.issue_token(user)

    def google_oauth_url(self, redirect_to: str | None = None) -> str:
        if not self.settings.SUPABASE_URL:
            raise exceptions.ServiceError("Google sign-in is not configured")
        params = {"provider": "google"}
        if redirect_to and not self._allowed_redirect(redirect_to):
            logger.warning("Rejected OAuth redirect to %s", redirect_to)
            raise exceptions.ValidationError("Redirect URL is not allowed", details={"redirect_to": redirect_to})
        redirect = redirect_to or self.settings.OAUTH_REDIRECT_URL
        if redirect:
            params["redirect_to"] = redirect
        return f"{self.settings.SUPABASE_URL.rstrip('/')}/auth/v1/authorize?{urlencode(params)}"

    def _allowed_redirect(self, url: str) -> bool:
        """Only the configured callback's origin and explicit CORS origins may receive tokens."""

        origin = _origin(url)
        if origin is None:
            return False
        allowed = {_origin(value) for value in self.settings.cors_origins if value != "*"}
        if self.settings.OAUTH_REDIRECT_URL:
            allowed.add(_origin(self.settings.OAUTH_REDIRECT_URL))
        return origin in allowed

    @staticmethod
    def _password_matches(password: str, password_hash: str | None) -> bool:
        if not password_hash:
            return False
        try:
            return security.verify_password(password, password_hash)
        except (ValueError, UnknownHashError):
            return False
