"""Exact-class exception-to-error-code mapper.

Turns an exception raised by a job's operation into a JobErrorCode by exact
class match (``type(exc) in mapper``), so a raising operation fails the same
way as one that returns ``Err(...)``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from queueline.core.models.job_error import JobErrorCode, JobErrorException

ExceptionMapper = dict[type[BaseException], JobErrorCode]


def resolve_exception_error_code(
    exc: BaseException,
    mapper: Mapping[type[BaseException], JobErrorCode] | None,
    default: JobErrorCode = JobErrorCode.INTERNAL,
) -> JobErrorCode:
    """Resolve an exception to an error code.

    Resolution order:
        1. JobErrorException carries its own code
        2. mapper (exact class lookup, subclasses do not match)
        3. default
    """
    if isinstance(exc, JobErrorException):
        return exc.code

    if isinstance(mapper, Mapping):
        code = mapper.get(type(exc))
        if isinstance(code, JobErrorCode):
            return code

    return default


def validate_exception_mapper(mapper: object) -> list[str]:
    """Validate mapper entries. Returns error messages (empty = valid)."""
    if not isinstance(mapper, Mapping):
        return [
            'exception_mapper must be a mapping of '
            '{ExceptionClass: JobErrorCode} entries'
        ]

    errors: list[str] = []
    for key, value in cast(Mapping[object, object], mapper).items():
        key_label = key.__name__ if isinstance(key, type) else repr(key)
        if not isinstance(key, type) or not issubclass(key, BaseException):
            errors.append(f'Mapper key {key!r} is not a BaseException subclass')
        if isinstance(value, JobErrorCode):
            continue
        try:
            JobErrorCode(value)
        except ValueError:
            errors.append(
                f'Mapper value for {key_label} is {value!r}; '
                'expected a JobErrorCode member or one of its values'
            )
    return errors
