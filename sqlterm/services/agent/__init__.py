"""Two-stage AI agent."""
