# queueline/core/types/status.py
"""
Lifecycle enums for queued jobs and the dispatch loop.
This module should not import from other queueline modules.
"""

from enum import Enum


class JobStatus(Enum):
    """Queued job status"""

    PENDING = 'pending'  # Waiting in the queue. Default status on enqueue.

    RUNNING = 'running'  # Its operation is being awaited by the dispatch loop.

    RECOVERING = 'recovering'  # A recovery job is running on its behalf.

    COMPLETED = 'completed'  # Last attempt succeeded.
    FAILED = 'failed'  # Failed without (or after a failed) recovery.
    DROPPED = 'dropped'  # Removed by flush() before it started.

    @property
    def is_terminal(self) -> bool:
        """Whether this status represents a final state (no further transitions)."""
        return self in JOB_TERMINAL_STATES


JOB_TERMINAL_STATES: frozenset[JobStatus] = frozenset({
    JobStatus.COMPLETED,
    JobStatus.FAILED,
    JobStatus.DROPPED,
})


class DispatchState(Enum):
    """Dispatch loop state. IDLE until the first enqueue."""

    IDLE = 'idle'
    DISPATCHING = 'dispatching'
