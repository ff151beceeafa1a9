"""Custom exceptions for row-store operations."""

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class ConflictError(Exception):
    """Raised when a write violates a uniqueness constraint (e.g., duplicate email)."""

    def __init__(self, table: str, message: str) -> None:
        super().__init__(message)
        self.table = table
