"""
Authentication service — login, password and profile business rules.

This module contains the core auth logic, separated from HTTP concerns.
Routers and the admin CLI call these functions and translate the results
(or the domain exceptions) into responses.

Login flow (authenticate):
  1. Look up the active user by username
  2. Reject if the user has no password set
  3. Verify the password against the stored Argon2 hash
  4. Record last_login (best effort) and return the identity snapshot

Password change flow (change_password):
  1. Look up the active user by id
  2. Reject if no password was ever set (administrators use set_password)
  3. Verify the current password
  4. Enforce the minimum length on the new password
  5. Hash and store it

Security notes:
  - Every login rejection raises the same InvalidCredentialsError. Which
    check failed is only written to the log, so the response cannot be
    used to enumerate usernames.
  - Unknown usernames still pay for one Argon2 verification, keeping the
    response time close to that of a wrong password.
  - Argon2 runs in a worker thread so a credential check does not block
    the event loop for other requests.
  - Concurrent password changes for the same user are last-write-wins.
"""

import asyncio

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from webbase.config import settings
from webbase.exceptions import (
    IncorrectPasswordError,
    InvalidCredentialsError,
    MalformedHashError,
    PasswordPolicyError,
    StoreError,
    UserNotFoundError,
)
from webbase.models.user import User
from webbase.schemas.user import AuthenticatedIdentity
from webbase.security import hash_password, verify_password
from webbase.services import user_store

logger = structlog.get_logger(__name__)

# Verified against when there is no real hash, so every login attempt pays for one Argon2 check
_TIMING_EQUALIZER_HASH = hash_password("webbase-timing-equalizer")


async def _hash(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def _verify(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)


async def _burn_verification(password: str) -> None:
    """Spend one Argon2 verification so unknown usernames aren't answered faster."""
    await _verify(password, _TIMING_EQUALIZER_HASH)


def check_password_policy(password: str) -> None:
    """
    Raises:
        PasswordPolicyError: If the password is shorter than MIN_PASSWORD_LENGTH
            or longer than MAX_PASSWORD_LENGTH.
    """
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise PasswordPolicyError(min_length=settings.MIN_PASSWORD_LENGTH)
    if len(password) > settings.MAX_PASSWORD_LENGTH:
        raise PasswordPolicyError(max_length=settings.MAX_PASSWORD_LENGTH)


def to_identity(user: User) -> AuthenticatedIdentity:
    """Project a User row onto the session-safe identity snapshot."""
    return AuthenticatedIdentity.model_validate(user)


async def authenticate(
    db: AsyncSession,
    username: str,
    password: str,
) -> AuthenticatedIdentity:
    """
    Authenticate a user by username and password.

    Args:
        db: Database session.
        username: Login name as typed.
        password: Plaintext password to verify.

    Returns:
        The AuthenticatedIdentity to store in the session.

    Raises:
        InvalidCredentialsError: Unknown/inactive user, no password set,
            wrong password, or a corrupted stored hash.
        StoreError: If the user lookup itself fails.
    """
    log = logger.bind(username=username)

    user = await user_store.get_user_by_username(db, username)
    if user is None:
        await _burn_verification(password)
        log.info("login_rejected", reason="user_not_found")
        raise InvalidCredentialsError()

    if not user.password_hash:
        await _burn_verification(password)
        log.info("login_rejected", reason="no_password_set", user_id=user.id)
        raise InvalidCredentialsError()

    try:
        matches = await _verify(password, user.password_hash)
    except MalformedHashError:
        log.error("malformed_password_hash", reason="malformed_hash", user_id=user.id)
        raise InvalidCredentialsError()

    if not matches:
        log.info("login_rejected", reason="password_mismatch", user_id=user.id)
        raise InvalidCredentialsError()

    # last_login is a liveness signal; losing it must not fail the login
    try:
        async with db.begin_nested():
            await user_store.update_last_login(db, user.id)
    except (StoreError, SQLAlchemyError) as exc:
        log.warning("last_login_update_failed", user_id=user.id, error=str(exc))

    log.info("login_succeeded", user_id=user.id)
    return to_identity(user)


async def change_password(
    db: AsyncSession,
    user_id: int,
    current_password: str,
    new_password: str,
) -> None:
    """
    Change a user's password after verifying the current one.

    The caller has already checked that new_password matches its
    confirmation field.

    Raises:
        IncorrectPasswordError: User missing/inactive, no password set,
            or current_password wrong.
        PasswordPolicyError: new_password is too short.
        StoreError: On database failure.
    """
    log = logger.bind(user_id=user_id)

    user = await user_store.get_user_by_id(db, user_id)
    if user is None:
        log.info("password_change_rejected", reason="user_not_found")
        raise IncorrectPasswordError()

    if not user.password_hash:
        log.info("password_change_rejected", reason="no_password_set")
        raise IncorrectPasswordError()

    try:
        matches = await _verify(current_password, user.password_hash)
    except MalformedHashError:
        log.error("malformed_password_hash")
        raise IncorrectPasswordError()

    if not matches:
        log.info("password_change_rejected", reason="password_mismatch")
        raise IncorrectPasswordError()

    check_password_policy(new_password)

    new_hash = await _hash(new_password)
    if not await user_store.update_password_hash(db, user_id, new_hash):
        # Deactivated between the lookup and the update
        log.info("password_change_rejected", reason="user_vanished")
        raise IncorrectPasswordError()

    log.info("password_changed")


async def update_profile(db: AsyncSession, user_id: int, email: str) -> bool:
    """
    Store a new email address for an active user.

    Returns:
        True if the row changed; False if the user is missing or inactive.

    Raises:
        DuplicateEmailError: If another account already uses ``email``.
        StoreError: On database failure.
    """
    updated = await user_store.update_email(db, user_id, email)
    logger.info("profile_updated" if updated else "profile_update_skipped", user_id=user_id)
    return updated


async def set_password(db: AsyncSession, user_id: int, new_password: str) -> None:
    """
    Administrative password set/reset — no current password required.

    Works for inactive users too. Existence is decided by the UPDATE's
    affected-row count, not by a prior lookup.

    Raises:
        PasswordPolicyError: If new_password is too short or too long.
        UserNotFoundError: If no user has this id.
        StoreError: On database failure.
    """
    check_password_policy(new_password)
    new_hash = await _hash(new_password)
    if not await user_store.update_password_hash(db, user_id, new_hash, active_only=False):
        raise UserNotFoundError(user_id)
    logger.info("password_set", user_id=user_id)


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str | None = None,
) -> User:
    """
    Administrative user creation (there is no self-registration).

    The new user is active and email-unverified. Without a password the
    hash stays NULL and the user cannot log in until set_password runs.

    Raises:
        PasswordPolicyError: If a password is given and violates the policy.
        DuplicateUsernameError / DuplicateEmailError: On uniqueness conflicts.
        StoreError: On database failure.
    """
    if password:
        check_password_policy(password)
    password_hash = await _hash(password) if password else None
    user = await user_store.create_user(db, username, email, password_hash)
    logger.info("user_created", user_id=user.id, has_password=password_hash is not None)
    return user
