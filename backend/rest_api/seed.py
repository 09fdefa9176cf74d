"""
Startup data: the platform admin account.

Restaurants and their owners are created by the admin through the API, so
the only row seeded is the ADMIN user, and only when
``BOOTSTRAP_ADMIN_PASSWORD`` is configured.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import User
from shared.config.constants import Roles
from shared.config.logging import get_logger, mask_email
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.security.password import hash_password

logger = get_logger(__name__)


def seed(db: Session) -> User | None:
    """Create the admin account if it is configured and missing. Idempotent."""
    if not settings.bootstrap_admin_password:
        logger.debug("No bootstrap admin configured, skipping seed")
        return None

    email = settings.bootstrap_admin_email.lower()
    existing = db.scalar(select(User).where(User.email == email))
    if existing:
        return existing

    admin = User(
        email=email,
        name="Admin",
        password_hash=hash_password(settings.bootstrap_admin_password),
        role=Roles.ADMIN,
        restaurant_id=None,
        is_active=True,
    )
    db.add(admin)
    safe_commit(db)
    logger.info("Bootstrap admin created", email=mask_email(email))
    return admin
