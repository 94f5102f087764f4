"""User Registry — idempotent get-or-create keyed by the normalized email.

Invariants:
    - At most one row per contact key (unique constraint on users.email)
    - Merge is non-destructive (core/user_merge.py)
    - A concurrent insert of the same key is absorbed: DuplicateKeyError is
      caught here, the transaction rolled back, and the winner's row merged.
      Callers never see the conflict.

Design Decisions:
    - Full rollback instead of a SAVEPOINT on the duplicate path: the registry
      runs before any other write in its unit of work
    - Callers must not touch ORM objects loaded earlier in the same session
      after get_or_create returns: the rollback path expires them
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.errors import (
    DuplicateKeyError,
    InputValidationError,
    PersistenceError,
    UserNotFoundError,
)
from aurum.core.user_merge import (
    MAX_NAME_LENGTH,
    MAX_PHONE_LENGTH,
    clean_optional,
    merge_contact_details,
    normalize_contact_key,
)
from aurum.models.user import User

logger = logging.getLogger(__name__)


async def find_by_email(db: AsyncSession, contact_key: str) -> User | None:
    result = await db.execute(
        select(User)
        .where(User.email == contact_key)
        .execution_options(populate_existing=True),
    )
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def get_or_create(
    db: AsyncSession,
    email: str,
    name: str | None = None,
    phone: str | None = None,
) -> User:
    """GetOrCreate(contactKey, displayName, phone) -> User. Commits."""
    key = normalize_contact_key(email)
    user = await find_by_email(db, key)

    if user is None:
        clean_name = clean_optional(name, MAX_NAME_LENGTH, "name")
        clean_phone = clean_optional(phone, MAX_PHONE_LENGTH, "phone")
        if not clean_name:
            raise InputValidationError("Name is required for a new user", field="name")
        try:
            return await _insert_user(db, key, clean_name, clean_phone)
        except DuplicateKeyError:
            logger.info("Concurrent registration detected, merging into existing user")
            user = await find_by_email(db, key)
            if user is None:
                raise PersistenceError("user row missing after duplicate insert", "insert")

    return await _merge_user(db, user, name, phone)


async def _insert_user(
    db: AsyncSession, key: str, name: str, phone: str | None,
) -> User:
    now = datetime.now(timezone.utc)
    user = User(name=name, email=key, phone=phone, created_at=now, updated_at=now)
    db.add(user)
    try:
        await db.flush()
        user_id = user.id
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateKeyError("users.email")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"User insert failed: {e.__class__.__name__}")
        raise PersistenceError("user could not be stored", "insert")
    logger.info("User registered", extra={"user_id": user_id})
    return user


async def _merge_user(
    db: AsyncSession, user: User, name: str | None, phone: str | None,
) -> User:
    merged = merge_contact_details(user.name, user.phone, name, phone)
    if not merged.touched:
        return user
    user.name = merged.name
    user.phone = merged.phone
    user.updated_at = datetime.now(timezone.utc)
    user_id = user.id
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"User merge failed: {e.__class__.__name__}", extra={"user_id": user_id},
        )
        raise PersistenceError("user could not be updated", "update")
    return user
