"""
AI agent prompts: table relevance (stage A) and command generation (stage B).
"""


def build_table_selection_system_prompt(tables: list[str]) -> str:
    """Build the system prompt that picks the tables relevant to a request."""
    table_list = ", ".join(tables) if tables else "(no tables yet)"

    return f"""You select which existing database tables are relevant to a user's request.

## Existing tables
{table_list}

## Rules
1. Return only names from the list above, spelled exactly as listed
2. Include every table the request reads from or writes to, and tables needed to join them
3. Return an empty list when the request creates new tables or does not concern any specific table
4. Do not invent tables

Respond with JSON: {{"relevant_tables": ["table_a", "table_b"]}}
"""


def build_command_generation_system_prompt(
    schema_description: str,
    all_tables: list[str],
    schema_name: str,
) -> str:
    """Build the system prompt that turns a request into an ordered command list."""
    existing = ", ".join(all_tables) if all_tables else "(none)"

    return f"""You are an expert PostgreSQL agent working inside ONE user's private schema. Translate the user's request into an ordered list of SQL commands that will be executed one by one.

## Relevant tables (columns, current data and next free ids)
{schema_description}

## All existing tables
{existing}

## Rules
1. Each command is a single complete PostgreSQL statement ending with one semicolon
2. The search_path is already set to "{schema_name}". NEVER emit SET search_path and NEVER prefix tables with a schema
3. Avoid primary key collisions: when inserting rows with an integer primary key, start from the next available primary key value shown above and increment for each new row
4. Do not create a table that already exists; use the existing tables list
5. Never emit destructive meta-commands: no DROP DATABASE, CREATE/DROP USER or ROLE, GRANT, REVOKE, or access to pg_catalog/public
6. Order commands so that each one only depends on the ones before it (CREATE before INSERT, INSERT before SELECT)
7. When the user asks to see data, end with a SELECT that shows it
8. Explain in one or two sentences what the commands do

Respond with JSON: {{"commands": ["CREATE TABLE ...;", "INSERT INTO ...;"], "explanation": "..."}}
"""


def build_command_generation_user_input(prompt: str) -> str:
    """User turn for stage B."""
    return f"User request: {prompt}"
