"""Account registration and login."""

import asyncio
import logging
import re

import asyncpg
import bcrypt
from pydantic import BaseModel

from sqlterm.config.settings import Settings
from sqlterm.infrastructure.database.connection import Database

logger = logging.getLogger(__name__)

_USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

_CREATE_USER_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS public."user" (
        user_id TEXT PRIMARY KEY NOT NULL,
        create_ts TIMESTAMP NOT NULL DEFAULT now(),
        password TEXT NOT NULL
    )
"""
_SELECT_USER_SQL = 'SELECT user_id, password FROM public."user" WHERE user_id = $1 LIMIT 1'
_INSERT_USER_SQL = 'INSERT INTO public."user" (user_id, password) VALUES ($1, $2)'


class AuthResult(BaseModel):
    """Outcome of a register or login attempt."""

    success: bool
    message: str
    username: str | None = None


class AuthService:
    """Stores accounts in ``public."user"`` with bcrypt password hashes."""

    def __init__(self, settings: Settings, database: Database):
        self.settings = settings
        self.database = database

    async def ensure_table(self) -> None:
        await self.database.execute(_CREATE_USER_TABLE_SQL)

    def validate_registration(self, username: str, password: str) -> str | None:
        """Return the first problem with the requested credentials, or None."""
        if not username or not password:
            return "Username and password are required"
        if len(username) < self.settings.min_username_length:
            return f"Username must be at least {self.settings.min_username_length} characters long"
        if len(password) < self.settings.min_password_length:
            return f"Password must be at least {self.settings.min_password_length} characters long"
        if not _USERNAME_PATTERN.match(username):
            return "Username can only contain letters, numbers, and underscores"
        return None

    async def register(self, username: str, password: str) -> AuthResult:
        try:
            if await self.database.fetch(_SELECT_USER_SQL, username):
                return AuthResult(success=False, message="Username already exists")

            hashed = await asyncio.to_thread(
                bcrypt.hashpw, password.encode("utf-8"), bcrypt.gensalt(self.settings.bcrypt_rounds)
            )
            await self.database.execute(_INSERT_USER_SQL, username, hashed.decode("utf-8"))

            logger.info("Account created for '%s'", username)
            return AuthResult(success=True, message="Account created successfully", username=username)

        except asyncpg.UniqueViolationError:
            return AuthResult(success=False, message="Username already exists")
        except Exception as e:
            logger.error("Registration error: %s", e, exc_info=True)
            return AuthResult(success=False, message="Failed to create account")

    async def login(self, username: str, password: str) -> AuthResult:
        try:
            rows = await self.database.fetch(_SELECT_USER_SQL, username)
            if not rows:
                return AuthResult(success=False, message="Invalid username or password")

            user = rows[0]
            is_valid = await asyncio.to_thread(
                bcrypt.checkpw, password.encode("utf-8"), user["password"].encode("utf-8")
            )
            if not is_valid:
                return AuthResult(success=False, message="Invalid username or password")

            return AuthResult(success=True, message="Login successful", username=user["user_id"])

        except Exception as e:
            logger.error("Login error: %s", e, exc_info=True)
            return AuthResult(success=False, message="Login failed")
