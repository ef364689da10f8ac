"""Result type returned by git adapter queries."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class GitResult(Generic[T]):
    """Outcome of a git query: a value on success, the git error text otherwise.

    Callers choose their own default with ``value_or`` instead of relying on
    exceptions being swallowed further down.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "GitResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "GitResult[T]":
        return cls(ok=False, error=error)

    def value_or(self, default: T) -> T:
        return self.value if self.ok and self.value is not None else default
