"""Plain-text rendering of query results for the terminal."""

from typing import Any

from sqlterm.services.sql.models import QueryResult


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def format_query_result(result: QueryResult) -> str:
    """
    Render a result the way SQL*Plus-style terminals print it.

    Failures become ``ERROR: <error>``; results without rows print their
    message. Rows become a pipe-delimited table followed by a blank line and
    ``(n row)`` / ``(n rows)``. Columns come from the first row.
    """
    if not result.success:
        return f"ERROR: {result.error}"

    if not result.data:
        return result.message or "Query executed successfully"

    data = result.data
    columns = list(data[0].keys())
    widths = [
        max(len(column), max(len(_cell(row.get(column))) for row in data), 3)
        for column in columns
    ]

    header = " | ".join(column.ljust(width) for column, width in zip(columns, widths))
    separator = "-+-".join("-" * width for width in widths)
    rows = [
        " | ".join(_cell(row.get(column)).ljust(width) for column, width in zip(columns, widths))
        for row in data
    ]

    count = len(data)
    footer = f"({count} row{'s' if count != 1 else ''})"
    return "\n".join([header, separator, *rows, "", footer])
