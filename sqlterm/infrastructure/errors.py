"""Infrastructure error types."""


class ConfigurationError(Exception):
    """Required configuration (API key, database URL) is missing."""


class StatementError(Exception):
    """A statement of a tenant batch failed; the batch was rolled back."""

    def __init__(self, index: int, statement: str, cause: Exception):
        super().__init__(str(cause))
        self.index = index
        self.statement = statement
        self.cause = cause
