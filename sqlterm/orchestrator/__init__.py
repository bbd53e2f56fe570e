"""AI SQL flow orchestration."""
