import logging

from passlib.exc import UnknownHashError
from sqlalchemy.exc import IntegrityError

from pizzeria.core import security
from pizzeria.core.config import get_settings
from pizzeria.core.db import Database
from pizzeria.models import User, UserPoints, UserRole

logger = logging.getLogger(__name__)


def ensure_default_admin(database: Database) -> None:
    """Create or update the default admin account defined via environment variables."""

    settings = get_settings()
    username = (settings.DEFAULT_ADMIN_USERNAME or "").strip()
    email = (settings.DEFAULT_ADMIN_EMAIL or "").strip().lower()
    password = settings.DEFAULT_ADMIN_PASSWORD

    if not username or not email or not password:
        logger.warning("Default admin bootstrap skipped: username, email or password not configured")
        return

    with database.session_scope() as db:
        admin = db.query(User).filter(User.username == username).first()
        if admin:
            updated = False
            if admin.role != UserRole.SUPER_ADMIN:
                admin.role = UserRole.SUPER_ADMIN
                updated = True
            if not admin.is_active:
                admin.is_active = True
                updated = True
            needs_password_update = False
            if not admin.password_hash:
                needs_password_update = True
            else:
                try:
                    if not security.verify_password(password, admin.password_hash):
                        needs_password_update = True
                except (ValueError, UnknownHashError):
                    needs_password_update = True
            if needs_password_update:
                admin.password_hash = security.create_password_hash(password)
                updated = True
            if updated:
                logger.info("Default admin '%s' updated", username)
            return

        admin = User(
            username=username,
            email=email,
            password_hash=security.create_password_hash(password),
            first_name="Admin",
            role=UserRole.SUPER_ADMIN,
        )
        db.add(admin)
        try:
            db.flush()
        except IntegrityError:
            logger.warning(
                "Default admin bootstrap encountered integrity error (username=%s). Another process may have created it.",
                username,
            )
            db.rollback()
        else:
            db.add(UserPoints(user_id=admin.id, points=0, total_earned=0, total_redeemed=0))
            logger.info("Default admin '%s' created", username)
