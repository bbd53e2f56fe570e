"""System prompts for the AI SQL components."""

from sqlterm.config.prompts.agent import (
    build_command_generation_system_prompt,
    build_command_generation_user_input,
    build_table_selection_system_prompt,
)
from sqlterm.config.prompts.sql import (
    build_sql_generation_system_prompt,
    build_sql_generation_user_input,
)

__all__ = [
    "build_command_generation_system_prompt",
    "build_command_generation_user_input",
    "build_sql_generation_system_prompt",
    "build_sql_generation_user_input",
    "build_table_selection_system_prompt",
]
