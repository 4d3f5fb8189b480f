"""
Tests for the user store (users table persistence).

These tests verify:
  - Created users are active, unverified, and keep a NULL hash when no password is given
  - Lookups only return active users; "not found" is None, not an error
  - Duplicate usernames and emails raise their own domain errors
  - Updates touch exactly one active row and report whether it changed
  - Database failures surface as StoreError, not raw SQLAlchemy errors
"""

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from webbase.exceptions import DuplicateEmailError, DuplicateUsernameError, StoreError
from webbase.models.user import User
from webbase.security import hash_password
from webbase.services import user_store


async def _deactivate(db, user_id):
    await db.execute(update(User).where(User.id == user_id).values(is_active=False))
    await db.commit()


class TestCreate:

    async def test_create_user_defaults(self, db_session):
        user = await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()

        assert user.id is not None
        assert user.username == "carol"
        assert user.email == "carol@example.com"
        assert user.password_hash is None
        assert user.is_active is True
        assert user.email_verified is False
        assert user.last_login is None
        assert user.created_at is not None

    async def test_duplicate_username(self, db_session):
        await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()

        with pytest.raises(DuplicateUsernameError):
            await user_store.create_user(db_session, "carol", "other@example.com")

    async def test_duplicate_email(self, db_session):
        await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()

        with pytest.raises(DuplicateEmailError):
            await user_store.create_user(db_session, "dave", "carol@example.com")

    async def test_duplicate_does_not_poison_transaction(self, db_session):
        await user_store.create_user(db_session, "carol", "carol@example.com")
        with pytest.raises(DuplicateUsernameError):
            await user_store.create_user(db_session, "carol", "carol2@example.com")

        # The savepoint rolled back only the failed insert
        dave = await user_store.create_user(db_session, "dave", "dave@example.com")
        await db_session.commit()
        assert await user_store.get_user_by_username(db_session, "carol") is not None
        assert dave.id is not None


class TestLookups:

    async def test_lookup_by_username_and_id(self, db_session):
        created = await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()

        by_name = await user_store.get_user_by_username(db_session, "carol")
        by_id = await user_store.get_user_by_id(db_session, created.id)
        assert by_name.id == created.id
        assert by_id.username == "carol"

    async def test_missing_user_is_none(self, db_session):
        assert await user_store.get_user_by_username(db_session, "nobody") is None
        assert await user_store.get_user_by_id(db_session, 9999) is None

    async def test_inactive_user_is_invisible(self, db_session):
        user = await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()
        await _deactivate(db_session, user.id)

        assert await user_store.get_user_by_username(db_session, "carol") is None
        assert await user_store.get_user_by_id(db_session, user.id) is None


class TestUpdates:

    async def test_update_email(self, db_session):
        user = await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()

        assert await user_store.update_email(db_session, user.id, "carol2@example.com") is True
        await db_session.commit()

        refreshed = await user_store.get_user_by_id(db_session, user.id)
        assert refreshed.email == "carol2@example.com"

    async def test_update_email_missing_or_inactive(self, db_session):
        assert await user_store.update_email(db_session, 9999, "x@example.com") is False

        user = await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()
        await _deactivate(db_session, user.id)
        assert await user_store.update_email(db_session, user.id, "x@example.com") is False

    async def test_update_email_to_taken_address(self, db_session):
        await user_store.create_user(db_session, "carol", "carol@example.com")
        dave = await user_store.create_user(db_session, "dave", "dave@example.com")
        await db_session.commit()

        with pytest.raises(DuplicateEmailError):
            await user_store.update_email(db_session, dave.id, "carol@example.com")

    async def test_update_password_hash(self, db_session):
        user = await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()

        new_hash = hash_password("brandnewpass")
        assert await user_store.update_password_hash(db_session, user.id, new_hash) is True
        await db_session.commit()

        result = await db_session.execute(select(User.password_hash).where(User.id == user.id))
        assert result.scalar_one() == new_hash

    async def test_update_password_hash_rejects_empty(self, db_session):
        with pytest.raises(ValueError):
            await user_store.update_password_hash(db_session, 1, "")

    async def test_update_password_hash_inactive_needs_opt_out(self, db_session):
        user = await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()
        await _deactivate(db_session, user.id)

        new_hash = hash_password("brandnewpass")
        assert await user_store.update_password_hash(db_session, user.id, new_hash) is False
        assert await user_store.update_password_hash(
            db_session, user.id, new_hash, active_only=False
        ) is True

    async def test_update_last_login(self, db_session):
        user = await user_store.create_user(db_session, "carol", "carol@example.com")
        await db_session.commit()

        assert await user_store.update_last_login(db_session, user.id) is True
        await db_session.commit()

        refreshed = await user_store.get_user_by_id(db_session, user.id)
        assert refreshed.last_login is not None


class TestStoreFailures:

    async def test_database_error_becomes_store_error(self, db_session, monkeypatch):
        async def broken_execute(*args, **kwargs):
            raise OperationalError("SELECT ...", {}, Exception("database is unreachable"))

        monkeypatch.setattr(db_session, "execute", broken_execute)

        with pytest.raises(StoreError) as exc_info:
            await user_store.get_user_by_username(db_session, "carol")

        assert "unreachable" not in exc_info.value.detail
        assert exc_info.value.detail == "System error. Please try again later."
