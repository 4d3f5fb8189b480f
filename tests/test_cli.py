"""
Tests for the webbase-admin CLI.

The async command functions are called directly with the test
session_factory; prompts are replaced through monkeypatch.
"""

import pytest

from webbase import cli
from webbase.services import auth_service


def _answers(monkeypatch, name, values):
    feed = iter(values)
    monkeypatch.setattr(cli, name, lambda *args, **kwargs: next(feed), raising=False)


class TestCreateUser:

    async def test_with_arguments(self, session_factory, db_session, capsys):
        code = await cli.create_user(session_factory, "bob", "bob@example.com", "bobpassword")

        assert code == 0
        out = capsys.readouterr().out
        assert "User created successfully!" in out
        assert "Password: Set" in out

        identity = await auth_service.authenticate(db_session, "bob", "bobpassword")
        assert identity.email == "bob@example.com"

    async def test_without_password(self, session_factory, capsys):
        code = await cli.create_user(
            session_factory, "bob", "bob@example.com", None, ask_password=False
        )

        assert code == 0
        out = capsys.readouterr().out
        assert "Password: Not set" in out
        assert "webbase-admin set-password" in out

    async def test_prompts_for_missing_values(self, session_factory, db_session, monkeypatch):
        _answers(monkeypatch, "input", ["bob@example.com", "y"])
        _answers(monkeypatch, "getpass", ["bobpassword", "bobpassword"])

        assert await cli.create_user(session_factory, "bob", None, None) == 0
        assert (await auth_service.authenticate(db_session, "bob", "bobpassword")).username == "bob"

    async def test_prompted_passwords_must_match(self, session_factory, monkeypatch):
        _answers(monkeypatch, "getpass", ["bobpassword", "different"])

        with pytest.raises(SystemExit):
            await cli.set_password(session_factory, 1, None)

    async def test_empty_email(self, session_factory, monkeypatch, capsys):
        _answers(monkeypatch, "input", [""])

        assert await cli.create_user(session_factory, "bob", None, None) == 1
        assert "Email cannot be empty" in capsys.readouterr().err

    async def test_short_password(self, session_factory, capsys):
        code = await cli.create_user(session_factory, "bob", "bob@example.com", "short")

        assert code == 1
        assert "Password must be at least 8 characters" in capsys.readouterr().err

    async def test_duplicate_username(self, session_factory, alice, capsys):
        code = await cli.create_user(session_factory, "alice", "other@example.com", "password123")

        assert code == 1
        assert "Failed to create user" in capsys.readouterr().err


class TestSetPassword:

    async def test_set_password(self, session_factory, db_session, create_user, capsys):
        user = await create_user("bob", "bob@example.com")

        assert await cli.set_password(session_factory, user.id, "bobpassword") == 0
        assert f"Password set successfully for user ID {user.id}" in capsys.readouterr().out
        assert (await auth_service.authenticate(db_session, "bob", "bobpassword")).id == user.id

    async def test_missing_user(self, session_factory, capsys):
        assert await cli.set_password(session_factory, 9999, "whatever123") == 1
        assert "User with ID 9999 not found" in capsys.readouterr().err

    async def test_short_password(self, session_factory, capsys):
        assert await cli.set_password(session_factory, 1, "short") == 1
        assert "Password must be at least 8 characters" in capsys.readouterr().err

    async def test_oversized_password(self, session_factory, alice, capsys):
        assert await cli.set_password(session_factory, alice.id, "x" * 5000) == 1
        assert "Password must be at most 1024 characters" in capsys.readouterr().err


class TestParser:

    def test_create_user_arguments(self):
        args = cli.build_parser().parse_args(
            ["create-user", "bob", "--email", "bob@example.com", "--no-password"]
        )
        assert args.command == "create-user"
        assert args.username == "bob"
        assert args.email == "bob@example.com"
        assert args.password is None
        assert args.no_password is True

    def test_set_password_arguments(self):
        args = cli.build_parser().parse_args(["set-password", "7", "--password", "newpass123"])
        assert args.command == "set-password"
        assert args.user_id == 7
        assert args.password == "newpass123"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])
