"""SQL validation, execution and generation."""
