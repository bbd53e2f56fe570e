"""Account registration, login and cleanup."""
