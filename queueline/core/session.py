"""Session-refresh recovery wiring.

The common use of recoveries: when queued requests start failing because
a credential expired, refresh it once and replay the request that failed.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, Optional, TypeAlias

from queueline.core.logging import get_logger
from queueline.core.manager import QueueManager
from queueline.core.models.job_error import JobError, JobErrorCode
from queueline.core.models.jobs import FailureCallback, Job, JobResult
from queueline.core.types.result import Err, Ok, Result

logger = get_logger('session')

SESSION_ERROR_CODES: tuple[JobErrorCode, ...] = (
    JobErrorCode.NOT_AUTHENTICATED,
    JobErrorCode.UNAUTHORIZED,
)

RefreshFn: TypeAlias = Callable[[], Awaitable[Any]]


def _refresh_operation(refresh: RefreshFn, code: JobErrorCode) -> Callable[[], Awaitable[JobResult[Any]]]:
    async def refresh_session() -> JobResult[Any]:
        outcome = await refresh()
        if isinstance(outcome, Result):
            return outcome
        if outcome:
            return Ok(outcome)
        return Err(JobError.new(code, 'Failed to refresh session'))

    return refresh_session


def install_session_recovery(
    manager: QueueManager,
    refresh: RefreshFn,
    on_expired: Optional[FailureCallback] = None,
    codes: Iterable[JobErrorCode] = SESSION_ERROR_CODES,
) -> dict[JobErrorCode, Job[Any]]:
    """Register ``refresh`` as the recovery for each session error code.

    ``refresh`` may return a Result, or any value whose truthiness says
    whether the session was renewed. ``on_expired`` fires when it was not;
    the job that triggered the refresh then ends without its own
    on_failure.

    Returns the registered recovery jobs by code.
    """
    installed: dict[JobErrorCode, Job[Any]] = {}
    for code in codes:
        job: Job[Any] = Job(
            operation=_refresh_operation(refresh, code),
            on_failure=on_expired,
            name=f'session-refresh[{code.value}]',
        )
        manager.register_recovery(code, job)
        installed[code] = job
    logger.debug(f'Session recovery installed for {", ".join(c.value for c in installed)}')
    return installed


def end_session(manager: QueueManager) -> None:
    """Drop queued work that belonged to the session being closed."""
    logger.info(f'Ending session; dropping {manager.pending} pending job(s)')
    manager.flush()
