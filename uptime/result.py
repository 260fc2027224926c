"""
Result type for expected failures.

API calls and per-target fetches fail as a matter of course on a dashboard,
so they return ``Result`` values instead of raising. Exceptions stay
reserved for programming errors.
"""

from collections.abc import Callable
from typing import Generic, TypeVar

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)
MappedT = TypeVar("MappedT")


class Result(Generic[ValueT, ErrorT]):
    """Either a value or an error, never both. ``None`` is not a valid value."""

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if (value is None) == (error is None):
            raise ValueError("Result needs exactly one of value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Result.err({self._error!r})"
        return f"Result.ok({self._value!r})"

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        """The value; re-raises the stored error otherwise."""
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    def unwrap_or(self, default: ValueT) -> ValueT:
        return default if self._error is not None else self._value  # type: ignore[return-value]

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error

    def map(self, fn: Callable[[ValueT], MappedT]) -> "Result[MappedT, ErrorT]":
        """Transform the value, passing an error through untouched."""
        if self._error is not None:
            return Result(error=self._error)
        return Result(value=fn(self._value))  # type: ignore[arg-type]
