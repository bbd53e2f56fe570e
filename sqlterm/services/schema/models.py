"""Schema introspection models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ColumnInfo(_CamelModel):
    """A column of a tenant table."""

    column_name: str
    data_type: str
    is_nullable: bool
    default_value: str | None = None
    is_primary_key: bool = False


class TableInfo(_CamelModel):
    """A tenant table with its rows and primary-key maxima."""

    table_name: str
    columns: list[ColumnInfo] = Field(default_factory=list)
    sample_data: list[dict[str, Any]] = Field(default_factory=list)
    # Last rows of a table larger than the fetched sample
    tail_data: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    max_primary_keys: dict[str, int | None] = Field(default_factory=dict)

    @property
    def next_ids(self) -> dict[str, int]:
        """Next free value of each integer primary key (``1`` for an empty table)."""
        return {column: (maximum or 0) + 1 for column, maximum in self.max_primary_keys.items()}


class SchemaInfo(_CamelModel):
    """All (or a subset of) the tables in a tenant schema."""

    tables: list[TableInfo] = Field(default_factory=list)
    total_tables: int = 0

    @classmethod
    def empty(cls) -> "SchemaInfo":
        return cls(tables=[], total_tables=0)

    @property
    def table_names(self) -> list[str]:
        return [table.table_name for table in self.tables]


class ForeignKeyInfo(_CamelModel):
    column_name: str
    foreign_table_name: str
    foreign_column_name: str


class TableDescription(_CamelModel):
    """Column, primary-key and foreign-key description of one table."""

    table_name: str
    columns: list[dict[str, Any]] = Field(default_factory=list)
    primary_keys: list[str] = Field(default_factory=list)
    foreign_keys: list[ForeignKeyInfo] = Field(default_factory=list)
