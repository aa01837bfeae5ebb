# queueline/core/types/result.py
"""
Two-variant outcome container used for every unit of queued work.

This module should not import from other queueline modules.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Literal, TypeVar, overload

T = TypeVar('T')  # success payload
E = TypeVar('E')  # error payload
U = TypeVar('U')


class UnwrapError(ValueError):
    """Raised when a Result is unwrapped as the variant it does not hold.

    Signals a programming mistake; never use it for control flow.
    """


class _Unset:
    """Sentinel type for distinguishing 'not provided' from None."""

    __slots__ = ()


_UNSET: _Unset = _Unset()


class Result(Generic[T, E]):
    """
    Discriminated union: exactly one of ok / err is set.
    None is a valid success value (e.g. Result[None, JobError]).

    Internally a tagged tuple:
    - (True, value) for success
    - (False, error) for failure
    """

    __slots__ = ('_data',)
    _data: tuple[Literal[True], T] | tuple[Literal[False], E]

    @overload
    def __init__(self, *, ok: T) -> None: ...

    @overload
    def __init__(self, *, err: E) -> None: ...

    def __init__(
        self,
        *,
        ok: T | _Unset = _UNSET,
        err: E | _Unset = _UNSET,
    ) -> None:
        ok_provided = not isinstance(ok, _Unset)
        err_provided = not isinstance(err, _Unset)

        if ok_provided and err_provided:
            raise ValueError('Result cannot have both ok and err')

        if not isinstance(ok, _Unset):
            self._data = (True, ok)
        elif not isinstance(err, _Unset):
            self._data = (False, err)
        else:
            raise ValueError('Result must have exactly one of ok / err')

    def is_ok(self) -> bool:
        return self._data[0]

    def is_err(self) -> bool:
        return not self._data[0]

    @property
    def ok(self) -> T | None:
        """The success value, or None if this is an error result."""
        match self._data:
            case (True, value):
                return value
            case _:
                return None

    @property
    def err(self) -> E | None:
        """The error value, or None if this is a success result."""
        match self._data:
            case (False, error):
                return error
            case _:
                return None

    def unwrap(self) -> T:
        """Get the success value. Raises UnwrapError on an error result."""
        match self._data:
            case (True, value):
                return value
            case (False, error):
                raise UnwrapError(f'Called unwrap on Err: {error!r}')

    def unwrap_err(self) -> E:
        """Get the error value. Raises UnwrapError on a success result."""
        match self._data:
            case (False, error):
                return error
            case (True, value):
                raise UnwrapError(f'Called unwrap_err on Ok: {value!r}')

    @property
    def ok_value(self) -> T:
        return self.unwrap()

    @property
    def err_value(self) -> E:
        return self.unwrap_err()

    def unwrap_or(self, default: T) -> T:
        match self._data:
            case (True, value):
                return value
            case _:
                return default

    def unwrap_or_else(self, fallback: Callable[[E], T]) -> T:
        match self._data:
            case (True, value):
                return value
            case (False, error):
                return fallback(error)

    # transforms

    def map(self, fn: Callable[[T], U]) -> Result[U, E]:
        """Apply fn to the success value; error results pass through."""
        match self._data:
            case (True, value):
                return Result(ok=fn(value))
            case (False, error):
                return Result(err=error)

    def map_err(self, fn: Callable[[E], U]) -> Result[T, U]:
        """Apply fn to the error value; success results pass through."""
        match self._data:
            case (False, error):
                return Result(err=fn(error))
            case (True, value):
                return Result(ok=value)

    def map_or(self, default: U, fn: Callable[[T], U]) -> U:
        match self._data:
            case (True, value):
                return fn(value)
            case _:
                return default

    def map_or_else(self, fallback: Callable[[E], U], fn: Callable[[T], U]) -> U:
        match self._data:
            case (True, value):
                return fn(value)
            case (False, error):
                return fallback(error)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._data == other._data

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        tag = 'Ok' if self._data[0] else 'Err'
        return f'{tag}({self._data[1]!r})'


def Ok(value: T) -> Result[T, Any]:
    """Build a success result."""
    return Result(ok=value)


def Err(error: E) -> Result[Any, E]:
    """Build an error result."""
    return Result(err=error)


def is_ok(result: Result[Any, Any]) -> bool:
    return result.is_ok()


def is_err(result: Result[Any, Any]) -> bool:
    return result.is_err()
