"""Data store error types."""

from typing import Any, Optional


class DataStoreError(Exception):
    """A query or mutation failed in the backing store."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Any = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
