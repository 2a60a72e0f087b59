"""
Admin seeding command.

Creates an approved admin account, or promotes and approves the existing
account with the same email. Credentials come from ADMIN_NAME,
ADMIN_EMAIL and ADMIN_PASSWORD unless given on the command line.

Usage:
    mente-create-admin
    mente-create-admin --email admin@example.com --password segredo123
"""

import argparse
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from mentemerecedora.api.dependencies import Settings
from mentemerecedora.security import get_password_hash
from mentemerecedora.storage.database import Database
from mentemerecedora.storage.models import UserRole, UserStatus
from mentemerecedora.storage.user_repository import StoredUser, UserRepository

DEFAULT_ADMIN_NAME = "Administrador"
MIN_PASSWORD_LENGTH = 6


def ensure_admin(
    repo: UserRepository,
    name: str,
    email: str,
    password: Optional[str],
) -> tuple[StoredUser, bool]:
    """
    Create or promote an admin.

    Returns:
        (admin user, True when the account was created)

    Raises:
        ValueError: A new account needs a password of at least 6 characters
    """
    existing = repo.get_by_email(email)
    if existing:
        updates = {"role": UserRole.ADMIN.value, "status": UserStatus.APPROVED.value}
        if password:
            updates["hashed_password"] = get_password_hash(password)
        user = repo.update(existing.id, **updates)
        logger.info(f"Promoted existing account {email} to approved admin")
        return user, False

    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"ADMIN_PASSWORD must have at least {MIN_PASSWORD_LENGTH} characters")

    user = repo.create(
        name=name,
        email=email,
        hashed_password=get_password_hash(password),
        role=UserRole.ADMIN.value,
        status=UserStatus.APPROVED.value,
    )
    logger.info(f"Admin account created: {email}")
    return user, True


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Create or promote the portal admin account")
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", DEFAULT_ADMIN_NAME))
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    args = parser.parse_args(argv)

    if not args.email:
        parser.error("an admin email is required (ADMIN_EMAIL or --email)")

    settings = Settings.from_env()
    database = Database(args.database_url or settings.database_url)
    database.create_tables()

    try:
        user, created = ensure_admin(UserRepository(database), args.name, args.email, args.password)
    except ValueError as e:
        logger.error(str(e))
        return 1
    finally:
        database.dispose()

    action = "created" if created else "updated"
    print(f"Admin {user.email} {action}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
