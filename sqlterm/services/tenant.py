"""Tenant identity and schema naming."""

import re
from dataclasses import dataclass

_UNSAFE_SCHEMA_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def schema_name_for(username: str) -> str:
    """Map a username to its schema name.

    Every character outside ``[a-zA-Z0-9_]`` becomes ``_``, so applying the
    mapping to its own output returns the same value.
    """
    return _UNSAFE_SCHEMA_CHARS.sub("_", username)


@dataclass(frozen=True)
class Tenant:
    """An authenticated user mapped 1:1 to a PostgreSQL schema."""

    username: str

    @property
    def schema_name(self) -> str:
        return schema_name_for(self.username)

    @property
    def schema_key(self) -> str:
        """Lower-cased schema name, as it appears in lower-cased SQL text."""
        return self.schema_name.lower()
