"""sqlterm: terminal-style SQL client with per-user PostgreSQL schemas and AI-assisted SQL."""

__version__ = "0.1.0"
