"""Configuration, constants and SQL access rules."""
