"""Terminal session."""
