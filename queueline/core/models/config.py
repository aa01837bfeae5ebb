# queueline/core/models/config.py
from __future__ import annotations

import logging
from typing import Annotated, Any, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from queueline.core.errors import (
    ConfigurationError,
    ErrorCode,
    ValidationReport,
    raise_collected,
)
from queueline.core.exception_mapper import ExceptionMapper, validate_exception_mapper
from queueline.core.models.job_error import JobErrorCode

_LEVEL_NAMES = ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG', 'NOTSET')


class QueueConfig(BaseModel):
    """
    Configuration for a QueueManager.

    Fields:
    - default_max_attempts: attempt budget for jobs built by enqueue()
    - exception_mapper: exact exception class -> error code, for operations that raise
    - default_exception_code: code for raised exceptions the mapper does not cover
    - warn_on_recovery_overwrite: log a warning when register_recovery() replaces a job
    - log_level: level name applied to queueline loggers when the manager is built
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    default_max_attempts: Annotated[int, Field(ge=1, le=100)] = Field(
        default=3,
        description='Execution attempts per job, recovery runs not counted (1-100)',
    )
    exception_mapper: ExceptionMapper = Field(default_factory=lambda: ExceptionMapper())
    default_exception_code: JobErrorCode = JobErrorCode.INTERNAL
    warn_on_recovery_overwrite: bool = True
    log_level: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def validate_exception_mapper_entries(cls, data: Any) -> Any:
        """Reject malformed mapper entries before pydantic coerces them."""
        if not isinstance(data, dict) or 'exception_mapper' not in data:
            return data
        problems = validate_exception_mapper(data['exception_mapper'])
        if problems:
            raise ConfigurationError(
                message='invalid exception_mapper',
                code=ErrorCode.CONFIG_INVALID_EXCEPTION_MAPPER,
                notes=problems,
                help_text='use {SomeError: JobErrorCode.CONFLICT, ...}',
            )
        return data

    @model_validator(mode='after')
    def validate_codes_and_level(self) -> Self:
        report = ValidationReport('config')

        if self.log_level is not None and self.log_level.upper() not in _LEVEL_NAMES:
            report.add(
                ConfigurationError(
                    message='unknown log_level',
                    code=ErrorCode.CONFIG_INVALID_LOG_LEVEL,
                    notes=[f'got {self.log_level!r}'],
                    help_text=f'use one of {", ".join(_LEVEL_NAMES)}',
                )
            )

        if self.default_exception_code is JobErrorCode.MAX_ATTEMPTS:
            report.add(
                ConfigurationError(
                    message='default_exception_code cannot be MAX_ATTEMPTS',
                    code=ErrorCode.CONFIG_RESERVED_ERROR_CODE,
                    notes=['MAX_ATTEMPTS is produced only when a job spends its attempt budget'],
                    help_text='use JobErrorCode.INTERNAL or JobErrorCode.UNKNOWN',
                )
            )

        raise_collected(report)
        return self

    def resolved_log_level(self) -> int | None:
        if self.log_level is None:
            return None
        return logging.getLevelNamesMapping()[self.log_level.upper()]
