"""Bootstrap data."""

import logging
from typing import Optional

from sqlmodel import Session

from complaint_desk.entities import User
from complaint_desk.security import PasswordHasher
from complaint_desk.services import UserService

logger = logging.getLogger(__name__)

SUPER_ADMIN_DEFAULTS = {
    "nip": "SUPERADMIN001",
    "name": "Super Administrator",
    "email": "superadmin@rri.co.id",
    "home_address": "Jakarta, Indonesia",
    "phone_number": "+62812345678",
}


def seed_super_admin(
    session: Session,
    password: str,
    hasher: Optional[PasswordHasher] = None,
    **overrides,
) -> Optional[User]:
    """
    Create the SuperAdmin account unless one exists.

    Args:
        session: Database session
        password: Plain-text password for the account
        hasher: Password hasher (defaults to bcrypt with 12 rounds)
        overrides: Replacements for :data:`SUPER_ADMIN_DEFAULTS`

    Returns:
        Optional[User]: The created account, or None if a SuperAdmin exists
    """
    service = UserService(session, hasher=hasher)
    existing = service.repository.get_super_admin()
    if existing is not None:
        logger.info("SuperAdmin already exists (%s)", existing.nip)
        return None

    user = service.create_super_admin({**SUPER_ADMIN_DEFAULTS, **overrides, "password": password})
    logger.info("SuperAdmin created with NIP %s", user.nip)
    return user
