"""queueline - single-flight async job queue with error-code keyed recovery"""

# Install Rust-style error handler on import
from .core.errors import install_error_handler as _install_error_handler

_install_error_handler()

from .core.manager import QueueManager
from .core.models.config import QueueConfig
from .core.models.jobs import (
    DEFAULT_MAX_ATTEMPTS,
    Job,
    JobResult,
    RetryableJob,
)
from .core.models.job_error import (
    JobError,
    JobErrorCode,
    JobErrorException,
    error_code,
    error_message,
    http_status_for,
    public_message,
)
from .core.types.result import Result, Ok, Err, UnwrapError, is_ok, is_err
from .core.types.status import JobStatus, JOB_TERMINAL_STATES, DispatchState
from .core.errors import (
    ErrorCode,
    QueuelineError,
    ConfigurationError,
    DispatchError,
    ValidationReport,
    MultipleValidationErrors,
)
from .core.exception_mapper import ExceptionMapper
from .core.session import install_session_recovery, end_session, SESSION_ERROR_CODES

__all__ = [
    # Core
    'QueueManager',
    'QueueConfig',
    'Job',
    'RetryableJob',
    'JobResult',
    'DEFAULT_MAX_ATTEMPTS',
    'JobStatus',
    'JOB_TERMINAL_STATES',
    'DispatchState',
    # Error taxonomy
    'JobError',
    'JobErrorCode',
    'JobErrorException',
    'error_code',
    'error_message',
    'http_status_for',
    'public_message',
    # Result type
    'Result',
    'Ok',
    'Err',
    'UnwrapError',
    'is_ok',
    'is_err',
    # Configuration / usage errors
    'ErrorCode',
    'QueuelineError',
    'ConfigurationError',
    'DispatchError',
    'ValidationReport',
    'MultipleValidationErrors',
    # Exception mapper
    'ExceptionMapper',
    # Session recovery
    'install_session_recovery',
    'end_session',
    'SESSION_ERROR_CODES',
]
