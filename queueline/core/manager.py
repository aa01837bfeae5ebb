# queueline/core/manager.py
from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Callable, Optional

from queueline.core.errors import DispatchError, ErrorCode
from queueline.core.logging import apply_level, get_logger
from queueline.core.models.config import QueueConfig
from queueline.core.models.job_error import JobErrorCode
from queueline.core.models.jobs import (
    FailureCallback,
    Job,
    JobOperation,
    RetryableJob,
    SettledCallback,
    SuccessCallback,
)
from queueline.core.types.status import DispatchState, JobStatus

logger = get_logger('manager')


class QueueManager:
    """
    Single-flight FIFO queue of async jobs with error-code keyed recovery.

      - enqueue() appends a job and starts the dispatch loop when idle
      - the loop runs one job at a time, in enqueue order, to completion
      - a failed job whose error code has a registered recovery runs that
        recovery and, if it succeeds, is attempted again in place
      - flush() drops every job still waiting, without firing its callbacks

    Construct one per application and hand it to producers. Every method must
    be called from the thread running the event loop.
    """

    def __init__(self, config: QueueConfig | None = None) -> None:
        self.config = config or QueueConfig()
        self._queue: deque[RetryableJob[Any]] = deque()
        self._recoveries: dict[JobErrorCode, Job[Any]] = {}
        self._dispatching = False
        self._dispatch_task: asyncio.Task[None] | None = None
        self._idle = asyncio.Event()
        self._idle.set()

        level = self.config.resolved_log_level()
        if level is not None:
            apply_level(level)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> DispatchState:
        return DispatchState.DISPATCHING if self._dispatching else DispatchState.IDLE

    @property
    def is_dispatching(self) -> bool:
        return self._dispatching

    @property
    def pending(self) -> int:
        """Number of jobs waiting; the one being dispatched is not counted."""
        return len(self._queue)

    def recovery_for(self, code: JobErrorCode | str) -> Job[Any] | None:
        return self._recoveries.get(self._coerce_code(code))

    async def join(self) -> None:
        """Wait until the dispatch loop has drained the queue and gone idle."""
        await self._idle.wait()

    # ------------------------------------------------------------------ #
    # Producer API
    # ------------------------------------------------------------------ #

    def enqueue(
        self,
        operation: JobOperation[Any],
        on_success: Optional[SuccessCallback[Any]] = None,
        on_failure: Optional[FailureCallback] = None,
        on_settled: Optional[SettledCallback[Any]] = None,
    ) -> None:
        """Queue an operation with the configured attempt budget."""
        job: RetryableJob[Any] = RetryableJob(
            operation=operation,
            on_success=on_success,
            on_failure=on_failure,
            on_settled=on_settled,
            max_attempts=self.config.default_max_attempts,
        )
        self.enqueue_job(job)

    def enqueue_job(self, job: RetryableJob[Any]) -> None:
        """Queue a caller-built job (custom name or max_attempts)."""
        if job.status is not JobStatus.PENDING or job.attempts != 0:
            raise ValueError(
                f'Job {job.name!r} was already dispatched '
                f'(status={job.status.value}, attempts={job.attempts})'
            )

        if any(queued is job for queued in self._queue):
            raise ValueError(f'Job {job.name!r} is already queued')

        loop = self._running_loop()
        self._queue.append(job)
        logger.debug(f'Enqueued job {job.name!r} (pending={len(self._queue)})')

        if not self._dispatching:
            self._start_dispatch(loop)

    def register_recovery(self, code: JobErrorCode | str, job: Job[Any]) -> None:
        """Run ``job`` whenever a dispatched job fails with ``code``. Last writer wins."""
        key = self._coerce_code(code)
        previous = self._recoveries.get(key)
        if previous is not None and previous is not job and self.config.warn_on_recovery_overwrite:
            logger.warning(
                f'Replacing recovery {previous.name!r} for {key.value} with {job.name!r}'
            )
        self._recoveries[key] = job

    def unregister_recovery(self, code: JobErrorCode | str) -> Job[Any] | None:
        return self._recoveries.pop(self._coerce_code(code), None)

    def flush(self) -> None:
        """Drop every waiting job. In-flight work runs to completion."""
        dropped = len(self._queue)
        for job in self._queue:
            job.status = JobStatus.DROPPED
        self._queue.clear()
        if dropped:
            logger.info(f'Flushed {dropped} pending job(s)')

    # ------------------------------------------------------------------ #
    # Dispatch loop
    # ------------------------------------------------------------------ #

    def _running_loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise DispatchError(
                message='enqueue requires a running event loop',
                code=ErrorCode.DISPATCH_NO_RUNNING_LOOP,
                notes=['enqueue() was called from synchronous code with no loop running'],
                help_text='call enqueue() from a coroutine, e.g. inside asyncio.run(main())',
            ) from exc

    def _start_dispatch(self, loop: asyncio.AbstractEventLoop) -> None:
        # Flip the flag before the task exists so re-entrant enqueues see it.
        self._dispatching = True
        self._idle.clear()
        self._dispatch_task = loop.create_task(self._dispatch(), name='queueline-dispatch')
        self._dispatch_task.add_done_callback(self._on_dispatch_done)

    def _on_dispatch_done(self, task: asyncio.Task[None]) -> None:
        # A task cancelled before its first step never reaches _dispatch's finally.
        if self._dispatch_task is task:
            self._mark_idle()
        if task.cancelled():
            logger.warning(f'Dispatch loop cancelled with {len(self._queue)} job(s) pending')
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f'Dispatch loop failed: {exc!r}')

    async def _dispatch(self) -> None:
        logger.debug('Dispatch loop started')
        try:
            while self._queue:
                job = self._queue.popleft()
                await self._dispatch_one(job)
        finally:
            self._mark_idle()

    def _mark_idle(self) -> None:
        self._dispatching = False
        self._dispatch_task = None
        self._idle.set()
        logger.debug('Dispatch loop idle')

    async def _dispatch_one(self, job: RetryableJob[Any]) -> None:
        """Drive one job to its terminal outcome.

        Each pass attempts the job once. A failure with a registered recovery
        runs the recovery; a successful recovery starts another pass for the
        same job, which keeps its place ahead of the rest of the queue and
        keeps its attempt counter. on_settled fires once, after the last pass,
        with that pass's result.
        """
        mapper = self.config.exception_mapper
        default_code = self.config.default_exception_code

        while True:
            job.status = JobStatus.RUNNING
            result = await job.attempt(mapper, default_code)
            logger.debug(f'Job {job.name!r} attempt {job.attempts}/{job.max_attempts}: {result!r}')

            if result.is_ok():
                job.status = JobStatus.COMPLETED
                self._invoke(job, 'on_success', job.on_success, result.ok_value)
                break

            error = result.err_value
            recovery = self._recoveries.get(error.code)

            if recovery is None:
                job.status = JobStatus.FAILED
                self._invoke(job, 'on_failure', job.on_failure, error)
                break

            if error.code is JobErrorCode.MAX_ATTEMPTS:
                logger.warning(
                    f'Job {job.name!r} is out of attempts and a recovery is registered '
                    f'for {error.code.value}; retrying anyway'
                )

            job.status = JobStatus.RECOVERING
            recovery_result = await recovery.run(mapper, default_code)

            if recovery_result.is_ok():
                self._invoke(recovery, 'on_success', recovery.on_success, recovery_result.ok_value)
                continue

            # Only the recovery hears about its own failure.
            logger.warning(
                f'Recovery {recovery.name!r} for job {job.name!r} failed: '
                f'{recovery_result.err_value.code.value}'
            )
            job.status = JobStatus.FAILED
            self._invoke(recovery, 'on_failure', recovery.on_failure, recovery_result.err_value)
            break

        self._invoke(job, 'on_settled', job.on_settled, result)

    @staticmethod
    def _invoke(
        job: Job[Any],
        hook: str,
        callback: Callable[[Any], None] | None,
        payload: Any,
    ) -> None:
        """Call a job callback; a raising callback is logged and does not stop the queue."""
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:
            logger.exception(f'{hook} callback of job {job.name!r} raised')

    @staticmethod
    def _coerce_code(code: JobErrorCode | str) -> JobErrorCode:
        if isinstance(code, JobErrorCode):
            return code
        try:
            return JobErrorCode(code)
        except ValueError as exc:
            raise DispatchError(
                message=f'unknown error code {code!r}',
                code=ErrorCode.RECOVERY_INVALID_CODE,
                notes=[f'valid codes: {", ".join(c.value for c in JobErrorCode)}'],
                help_text='pass a JobErrorCode member',
            ) from exc

