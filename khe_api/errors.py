# khe_api/errors.py
from typing import List, Optional


class ValidationError(ValueError):
    """Raised when a point grant is missing a field or has a badly typed one."""

    def __init__(self, fields: List[str], message: str = "invalid input") -> None:
        super().__init__(f"{message}: {', '.join(fields)}" if fields else message)
        self.fields = fields


class StorageError(RuntimeError):
    """Raised when the database fails during a count, insert or aggregation."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class DeliveryError(RuntimeError):
    """Raised when the push or mail provider cannot be reached or returns an error."""
    pass
