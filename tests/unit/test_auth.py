"""Tests for account registration and login."""

import asyncpg
import bcrypt
import pytest

from sqlterm.services.auth.service import AuthService


@pytest.fixture
def auth(settings, database):
    return AuthService(settings, database)


@pytest.mark.parametrize(
    "username, password, expected",
    [
        ("", "secret1", "Username and password are required"),
        ("al", "secret1", "Username must be at least 3 characters long"),
        ("alice", "123", "Password must be at least 6 characters long"),
        ("alice!", "secret1", "Username can only contain letters, numbers, and underscores"),
        ("alice_01", "secret1", None),
    ],
)
def test_validate_registration(auth, username, password, expected):
    assert auth.validate_registration(username, password) == expected


@pytest.mark.asyncio
async def test_register_stores_bcrypt_hash(auth, database):
    result = await auth.register("alice", "secret1")

    assert result.success
    assert result.message == "Account created successfully"
    assert result.username == "alice"

    _, username, hashed = database.execute.call_args.args
    assert username == "alice"
    assert hashed != "secret1"
    assert bcrypt.checkpw(b"secret1", hashed.encode("utf-8"))


@pytest.mark.asyncio
async def test_register_existing_user(auth, database):
    database.fetch.return_value = [{"user_id": "alice", "password": "x"}]

    result = await auth.register("alice", "secret1")

    assert not result.success
    assert result.message == "Username already exists"
    database.execute.assert_not_called()


@pytest.mark.asyncio
async def test_register_race_on_unique_key(auth, database):
    database.execute.side_effect = asyncpg.exceptions.UniqueViolationError("duplicate key")

    result = await auth.register("alice", "secret1")

    assert not result.success
    assert result.message == "Username already exists"


@pytest.mark.asyncio
async def test_login(auth, database):
    hashed = bcrypt.hashpw(b"secret1", bcrypt.gensalt(4)).decode("utf-8")
    database.fetch.return_value = [{"user_id": "alice", "password": hashed}]

    ok = await auth.login("alice", "secret1")
    wrong = await auth.login("alice", "wrong-password")

    assert ok.success
    assert ok.message == "Login successful"
    assert ok.username == "alice"
    assert not wrong.success
    assert wrong.message == "Invalid username or password"


@pytest.mark.asyncio
async def test_login_unknown_user(auth, database):
    result = await auth.login("nobody", "secret1")
    assert not result.success
    assert result.message == "Invalid username or password"


@pytest.mark.asyncio
async def test_login_database_error(auth, database):
    database.fetch.side_effect = RuntimeError("connection lost")
    result = await auth.login("alice", "secret1")
    assert not result.success
    assert result.message == "Login failed"


@pytest.mark.asyncio
async def test_ensure_table(auth, database):
    await auth.ensure_table()
    assert 'public."user"' in database.execute.call_args.args[0]
