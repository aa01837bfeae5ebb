# queueline/core/models/jobs.py
from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, TypeAlias, TypeVar

from queueline.core.exception_mapper import resolve_exception_error_code
from queueline.core.logging import get_logger
from queueline.core.models.job_error import JobError, JobErrorCode
from queueline.core.types.result import Err, Result
from queueline.core.types.status import JobStatus

T = TypeVar('T')

JobResult: TypeAlias = Result[T, JobError]
JobOperation: TypeAlias = Callable[[], Awaitable[JobResult[T]]]
SuccessCallback: TypeAlias = Callable[[T], None]
FailureCallback: TypeAlias = Callable[[JobError], None]
SettledCallback: TypeAlias = Callable[[JobResult[T]], None]

DEFAULT_MAX_ATTEMPTS: int = 3

logger = get_logger('jobs')


def _operation_name(operation: Callable[..., Any]) -> str:
    return getattr(operation, '__qualname__', None) or type(operation).__name__


@dataclass(eq=False)
class Job(Generic[T]):
    """
    A unit of deferred async work and the callbacks interested in its outcome.

    Also the shape of a recovery: a Job registered against an error code runs
    its operation once per recovery cycle and is never retry-tracked.
    """

    operation: JobOperation[T]
    on_success: Optional[SuccessCallback[T]] = None
    on_failure: Optional[FailureCallback] = None
    on_settled: Optional[SettledCallback[T]] = None
    name: str = ''

    def __post_init__(self) -> None:
        if not callable(self.operation):
            raise TypeError(f'Job operation must be callable, got {self.operation!r}')
        if not self.name:
            self.name = _operation_name(self.operation)

    async def run(
        self,
        exception_mapper: Mapping[type[BaseException], JobErrorCode] | None = None,
        default_code: JobErrorCode = JobErrorCode.INTERNAL,
    ) -> JobResult[T]:
        """Await the operation once and return its Result.

        A raised exception becomes ``Err(JobError)`` with a code resolved by
        the exception mapper. Cancellation is never converted.
        """
        try:
            result = await self.operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            code = resolve_exception_error_code(exc, exception_mapper, default_code)
            logger.debug(f'Job {self.name!r} raised {type(exc).__name__}; failing with {code.value}')
            return Err(JobError.from_exception(exc, code))

        if not isinstance(result, Result):
            return Err(
                JobError.new(
                    JobErrorCode.INTERNAL,
                    f'Job {self.name} returned {type(result).__name__}, expected Result',
                )
            )
        return result


@dataclass(eq=False)
class RetryableJob(Job[T]):
    """
    A Job with a bounded attempt counter.

    Invariants:
    - 0 <= attempts <= max_attempts
    - attempts grows by exactly one per execution of the operation
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    attempts: int = field(default=0, init=False)
    status: JobStatus = field(default=JobStatus.PENDING, init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise TypeError(f'max_attempts must be an int, got {self.max_attempts!r}')
        if self.max_attempts < 1:
            raise ValueError(f'max_attempts must be >= 1, got {self.max_attempts}')

    def still_valid(self) -> bool:
        """Whether another attempt is allowed."""
        return self.attempts < self.max_attempts

    async def attempt(
        self,
        exception_mapper: Mapping[type[BaseException], JobErrorCode] | None = None,
        default_code: JobErrorCode = JobErrorCode.INTERNAL,
    ) -> JobResult[T]:
        """Run the operation once, or fail with MAX_ATTEMPTS once the budget is spent.

        MAX_ATTEMPTS is the only error the queue produces itself; everything
        else comes from the operation unchanged.
        """
        if not self.still_valid():
            return Err(
                JobError.new(
                    JobErrorCode.MAX_ATTEMPTS,
                    f'Max attempts reached for job {self.name}',
                )
            )
        self.attempts += 1
        return await self.run(exception_mapper, default_code)
