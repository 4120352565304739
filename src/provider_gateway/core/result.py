"""
Discriminated success/failure value returned by every fallible
gateway operation.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a gateway operation.

    Exactly one of ``data`` (when ``success``) or ``error`` (when not)
    is meaningful.
    """
    success: bool
    data: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: Exception) -> "Result[T]":
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Return the data or raise the carried error."""
        if not self.success:
            raise self.error
        return self.data

    def __bool__(self) -> bool:
        return self.success
