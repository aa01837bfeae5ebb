# queueline/core/models/job_error.py
from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class JobErrorCode(str, Enum):
    """
    Closed set of error categories carried by a failed job.

    Values are stable wire identifiers and are used as recovery-map keys.

    Categories:
    - Base: CONFLICT, INTERNAL, INVALID, NOT_FOUND, NOT_IMPLEMENTED,
      UNAUTHORIZED, UNKNOWN, FORBIDDEN, EXISTS
    - Queue: MAX_ATTEMPTS (produced by the queue itself)
    - Session: NOT_AUTHENTICATED
    - Virtual machine family: MGVM, MGVM_LOW_FUEL, MGVM_CORE_POOL_NOT_FOUND,
      MGVM_CORE_POOL_TIMEOUT
    - Contract executor family: ANCHORAGE
    """

    CONFLICT = 'conflict'  # conflict with current state
    INTERNAL = 'internal'
    INVALID = 'invalid'  # invalid input
    NOT_FOUND = 'not_found'
    NOT_IMPLEMENTED = 'not_implemented'
    UNAUTHORIZED = 'unauthorized'  # access denied
    UNKNOWN = 'unknown'
    FORBIDDEN = 'forbidden'
    EXISTS = 'exists'  # resource already exists
    MAX_ATTEMPTS = 'max_attempts'
    NOT_AUTHENTICATED = 'not_authenticated'

    # Subcodes. Opaque values; both families count as INTERNAL.
    MGVM = 'mgvm'
    MGVM_LOW_FUEL = 'low_fuel'
    MGVM_CORE_POOL_NOT_FOUND = 'core_pool_not_found'
    MGVM_CORE_POOL_TIMEOUT = 'core_pool_timeout'
    ANCHORAGE = 'anchorage'

    @property
    def family(self) -> JobErrorCode:
        """Base category this code belongs to."""
        if self in _INTERNAL_SUBCODES:
            return JobErrorCode.INTERNAL
        return self


_INTERNAL_SUBCODES: frozenset[JobErrorCode] = frozenset({
    JobErrorCode.MGVM,
    JobErrorCode.MGVM_LOW_FUEL,
    JobErrorCode.MGVM_CORE_POOL_NOT_FOUND,
    JobErrorCode.MGVM_CORE_POOL_TIMEOUT,
    JobErrorCode.ANCHORAGE,
})

_HTTP_STATUS: dict[JobErrorCode, int] = {
    JobErrorCode.CONFLICT: 409,
    JobErrorCode.FORBIDDEN: 403,
    JobErrorCode.INTERNAL: 500,
    JobErrorCode.INVALID: 400,
    JobErrorCode.NOT_FOUND: 404,
    JobErrorCode.NOT_IMPLEMENTED: 501,
    JobErrorCode.UNAUTHORIZED: 401,
}


class JobError(BaseModel):
    """
    The error payload of a failed job.

    Produced either by the operation a job wraps (the collaborator decides
    the code) or by the queue itself (MAX_ATTEMPTS). Immutable.
    """

    model_config = ConfigDict(frozen=True)

    code: JobErrorCode
    message: str
    details: Optional[tuple[str, ...]] = None

    @field_validator('details', mode='before')
    @classmethod
    def _details_to_tuple(cls, value: Any) -> Any:
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            return tuple(value)
        return value

    @classmethod
    def new(
        cls,
        code: JobErrorCode,
        message: str,
        details: Sequence[str] | None = None,
    ) -> JobError:
        return cls(code=code, message=message, details=details)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> JobError:
        """Build from a ``{code, message, details}`` wire payload.

        Codes outside JobErrorCode become UNKNOWN; the raw code is kept as
        the last detail so it is not lost.
        """
        raw_code = payload.get('code')
        message = str(payload.get('message') or '')
        raw_details = payload.get('details')
        details = (
            [str(d) for d in raw_details]
            if isinstance(raw_details, Sequence) and not isinstance(raw_details, (str, bytes))
            else None
        )

        try:
            code = JobErrorCode(raw_code)
        except ValueError:
            code = JobErrorCode.UNKNOWN
            details = [*(details or []), f'code={raw_code}']

        return cls(code=code, message=message, details=details)

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        code: JobErrorCode = JobErrorCode.INTERNAL,
    ) -> JobError:
        if isinstance(exc, JobErrorException):
            return exc.error
        return cls(
            code=code,
            message=str(exc) or type(exc).__name__,
            details=(type(exc).__name__,),
        )

    def __str__(self) -> str:
        return f'error: code={self.code.value} message={self.message}'


class JobErrorException(Exception):
    """Exception carrying a JobError, for operations that prefer raising.

    The queue unpacks it back into ``Err(error)`` with the original code.
    """

    def __init__(self, error: JobError) -> None:
        super().__init__(str(error))
        self.error = error

    @property
    def code(self) -> JobErrorCode:
        return self.error.code


def error_code(obj: JobError | BaseException | None) -> str:
    """Code of a JobError / JobErrorException; INTERNAL for other exceptions, '' for None."""
    if obj is None:
        return ''
    if isinstance(obj, JobError):
        return obj.code.value
    if isinstance(obj, JobErrorException):
        return obj.error.code.value
    return JobErrorCode.INTERNAL.value


def error_message(obj: JobError | BaseException | None) -> str:
    if obj is None:
        return ''
    if isinstance(obj, JobError):
        return obj.message
    if isinstance(obj, JobErrorException):
        return obj.error.message
    return str(obj)


def http_status_for(code: JobErrorCode) -> int:
    """HTTP status a code maps to; 500 for anything unmapped."""
    return _HTTP_STATUS.get(code, 500)


def public_message(error: JobError) -> str:
    """Message safe to show an end user; internal details are obscured."""
    if error.code.family is JobErrorCode.INTERNAL:
        return 'Internal Server Error'
    if not error.message:
        return 'An error occurred'
    return error.message
