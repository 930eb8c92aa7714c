"""Account provisioning for invited users who have no account yet."""

import logging
from typing import Optional

from accessgate.core.exceptions import ValidationError
from accessgate.core.security import hash_password
from accessgate.models.sql.user import User
from accessgate.repositories.users import UserRepository

logger = logging.getLogger(__name__)


async def provision_user(
    users: UserRepository, email: str, name: Optional[str], password: Optional[str]
) -> User:
    """Create a user and its profile; both name and password are required."""
    if not name or not password:
        raise ValidationError("Name and password are required to create an account", email)

    user = await users.create(email, name, hash_password(password))
    await users.create_profile(user, name)
    logger.info(f"Provisioned account {user.id} for invited email {user.email}")
    return user
