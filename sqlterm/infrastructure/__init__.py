"""Infrastructure: database, LLM and logging."""
