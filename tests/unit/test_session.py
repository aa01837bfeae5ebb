"""Unit tests for session-refresh recovery wiring."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from queueline.core.manager import QueueManager
from queueline.core.models.job_error import JobError, JobErrorCode
from queueline.core.models.jobs import JobResult
from queueline.core.session import SESSION_ERROR_CODES, end_session, install_session_recovery
from queueline.core.types.result import Err, Ok

pytestmark = [pytest.mark.unit, pytest.mark.dispatch]


def _expired(code: JobErrorCode = JobErrorCode.NOT_AUTHENTICATED) -> JobError:
    return JobError.new(code, 'session expired')


class TestInstall:
    def test_registers_one_recovery_per_code(self) -> None:
        manager = QueueManager()

        async def refresh() -> bool:
            return True

        installed = install_session_recovery(manager, refresh)

        assert set(installed) == set(SESSION_ERROR_CODES)
        for code, job in installed.items():
            assert manager.recovery_for(code) is job
            assert job.name == f'session-refresh[{code.value}]'

    def test_custom_codes(self) -> None:
        manager = QueueManager()

        async def refresh() -> bool:
            return True

        installed = install_session_recovery(manager, refresh, codes=[JobErrorCode.FORBIDDEN])

        assert list(installed) == [JobErrorCode.FORBIDDEN]
        assert manager.recovery_for(JobErrorCode.NOT_AUTHENTICATED) is None


class TestRefreshOutcome:
    @pytest.mark.asyncio
    async def test_truthy_refresh_replays_job(self) -> None:
        manager = QueueManager()
        refreshes = 0
        settled: list[JobResult[Any]] = []

        async def refresh() -> str:
            nonlocal refreshes
            refreshes += 1
            return 'new-token'

        calls = 0

        async def fetch_profile() -> JobResult[str]:
            nonlocal calls
            calls += 1
            return Err(_expired()) if calls == 1 else Ok('profile')

        install_session_recovery(manager, refresh)
        manager.enqueue(fetch_profile, on_settled=settled.append)
        await manager.join()

        assert refreshes == 1
        assert calls == 2
        assert settled == [Ok('profile')]

    @pytest.mark.asyncio
    async def test_falsy_refresh_fires_on_expired(self) -> None:
        manager = QueueManager()
        expired: list[JobError] = []
        failures: list[JobError] = []
        settled: list[JobResult[Any]] = []

        async def refresh() -> bool:
            return False

        async def fetch_profile() -> JobResult[str]:
            return Err(_expired(JobErrorCode.UNAUTHORIZED))

        install_session_recovery(manager, refresh, on_expired=expired.append)
        manager.enqueue(fetch_profile, on_failure=failures.append, on_settled=settled.append)
        await manager.join()

        assert expired == [JobError.new(JobErrorCode.UNAUTHORIZED, 'Failed to refresh session')]
        assert failures == []
        assert settled == [Err(_expired(JobErrorCode.UNAUTHORIZED))]

    @pytest.mark.asyncio
    async def test_result_from_refresh_passes_through(self) -> None:
        manager = QueueManager()
        expired: list[JobError] = []
        rejection = JobError.new(JobErrorCode.FORBIDDEN, 'account locked')

        async def refresh() -> JobResult[bool]:
            return Err(rejection)

        async def fetch_profile() -> JobResult[str]:
            return Err(_expired())

        install_session_recovery(manager, refresh, on_expired=expired.append)
        manager.enqueue(fetch_profile)
        await manager.join()

        assert expired == [rejection]


class TestEndSession:
    @pytest.mark.asyncio
    async def test_end_session_drops_pending_work(self) -> None:
        manager = QueueManager()
        release = asyncio.Event()
        ran: list[str] = []

        async def in_flight() -> JobResult[str]:
            await release.wait()
            ran.append('in-flight')
            return Ok('done')

        async def queued() -> JobResult[str]:
            ran.append('queued')
            return Ok('late')

        manager.enqueue(in_flight)
        manager.enqueue(queued)
        await asyncio.sleep(0)

        end_session(manager)
        assert manager.pending == 0

        release.set()
        await manager.join()
        assert ran == ['in-flight']
