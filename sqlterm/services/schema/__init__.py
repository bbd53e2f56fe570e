"""Schema service module."""

from sqlterm.services.schema.service import SchemaService
from sqlterm.services.schema.table_selector import TableSelector

__all__ = ["SchemaService", "TableSelector"]
