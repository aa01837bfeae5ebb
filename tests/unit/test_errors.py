"""Unit tests for Rust-style error formatting."""

from __future__ import annotations

import inspect
import os
import sys
import tempfile
from collections.abc import Iterator
from io import StringIO
from unittest import mock

import pytest

from queueline.core.errors import (
    ConfigurationError,
    DispatchError,
    ErrorCode,
    MultipleValidationErrors,
    QueuelineError,
    SourceLocation,
    ValidationReport,
    _find_user_frame,
    _queueline_excepthook,
    _should_show_verbose,
    _should_use_colors,
    _should_use_plain_errors,
    install_error_handler,
    raise_collected,
    uninstall_error_handler,
)

pytestmark = pytest.mark.unit


# =============================================================================
# SourceLocation Tests
# =============================================================================


class TestSourceLocation:
    """Tests for SourceLocation."""

    def test_format_short(self) -> None:
        loc = SourceLocation(file='/path/to/app.py', line=42)
        assert loc.format_short() == '/path/to/app.py:42'

    def test_get_source_line_existing_file(self) -> None:
        with tempfile.NamedTemporaryFile(mode='w', suffix='.py', delete=False) as f:
            f.write('line 1\n')
            f.write('line 2\n')
            temp_path = f.name

        try:
            loc = SourceLocation(file=temp_path, line=2)
            assert loc.get_source_line() == 'line 2'
        finally:
            os.unlink(temp_path)

    def test_get_source_line_nonexistent_file(self) -> None:
        loc = SourceLocation(file='/nonexistent/path.py', line=1)
        assert loc.get_source_line() is None

    def test_from_frame(self) -> None:
        frame = inspect.currentframe()
        assert frame is not None
        loc = SourceLocation.from_frame(frame)
        assert loc.file.endswith('test_errors.py')
        assert loc.line > 0


# =============================================================================
# QueuelineError Tests
# =============================================================================


class TestQueuelineError:
    """Tests for QueuelineError base class."""

    def test_basic_creation(self) -> None:
        err = QueuelineError(message='something went wrong')
        assert err.message == 'something went wrong'
        assert err.code is None
        assert err.notes == []
        assert err.help_text is None

    def test_location_points_at_caller(self) -> None:
        err = QueuelineError(message='here')
        assert err.location is not None
        assert err.location.file.endswith('test_errors.py')

    def test_explicit_location_kept(self) -> None:
        loc = SourceLocation(file='app.py', line=7)
        err = QueuelineError(message='x', location=loc)
        assert err.location is loc

    def test_notes_and_help(self) -> None:
        err = QueuelineError(
            message='bad mapper',
            code=ErrorCode.CONFIG_INVALID_EXCEPTION_MAPPER,
            notes=['key 1 is not an exception class'],
            help_text='use exception classes as keys',
        )
        assert err.notes == ['key 1 is not an exception class']
        assert err.help_text == 'use exception classes as keys'

    def test_format_includes_code_notes_and_help(self) -> None:
        err = QueuelineError(
            message='unknown log_level',
            code=ErrorCode.CONFIG_INVALID_LOG_LEVEL,
            location=SourceLocation(file='/nonexistent/app.py', line=3),
            notes=["got 'LOUD'"],
            help_text='use one of DEBUG, INFO',
        )
        output = err.format_rust_style(use_colors=False)
        assert 'error[Q101]: unknown log_level' in output
        assert '--> /nonexistent/app.py:3' in output
        assert "= note: got 'LOUD'" in output
        assert 'help:' in output
        assert 'use one of DEBUG, INFO' in output

    def test_format_multiline_note(self) -> None:
        err = QueuelineError(
            message='x',
            location=SourceLocation(file='/nonexistent/app.py', line=1),
            notes=['first\nsecond'],
        )
        lines = err.format_rust_style(use_colors=False).split('\n')
        assert any(line.endswith('note: first') for line in lines)
        assert any(line.strip() == 'second' for line in lines)

    def test_format_shows_source_line_with_underline(self) -> None:
        with tempfile.NamedTemporaryFile(mode='w', suffix='.py', delete=False) as f:
            f.write('    manager.enqueue(op)\n')
            temp_path = f.name

        try:
            err = QueuelineError(message='x', location=SourceLocation(file=temp_path, line=1))
            output = err.format_rust_style(use_colors=False)
            assert '1|     manager.enqueue(op)' in output
            assert '^' * len('manager.enqueue(op)') in output
        finally:
            os.unlink(temp_path)

    def test_format_with_colors(self) -> None:
        err = QueuelineError(message='x')
        assert '\033[' in err.format_rust_style(use_colors=True)

    def test_str_is_plain(self) -> None:
        err = QueuelineError(message='plain', code=ErrorCode.DISPATCH_NO_RUNNING_LOOP)
        text = str(err)
        assert 'error[Q200]: plain' in text
        assert '\033[' not in text

    def test_subclasses(self) -> None:
        assert isinstance(ConfigurationError(message='c'), QueuelineError)
        assert isinstance(DispatchError(message='d'), QueuelineError)


# =============================================================================
# Environment flag Tests
# =============================================================================


class TestEnvironmentFlags:
    """Tests for color, verbose and plain-errors switches."""

    def test_should_use_colors_no_color(self) -> None:
        with mock.patch.dict(os.environ, {'NO_COLOR': '1', 'QUEUELINE_FORCE_COLOR': ''}):
            assert _should_use_colors() is False

    def test_should_use_colors_force_color_beats_no_color(self) -> None:
        with mock.patch.dict(os.environ, {'NO_COLOR': '1', 'QUEUELINE_FORCE_COLOR': '1'}):
            assert _should_use_colors() is True

    def test_should_use_colors_tty_fallback(self) -> None:
        cleaned_env = {
            k: v for k, v in os.environ.items() if k not in ('NO_COLOR', 'QUEUELINE_FORCE_COLOR')
        }
        with mock.patch.dict(os.environ, cleaned_env, clear=True):
            with mock.patch.object(sys.stderr, 'isatty', return_value=True):
                assert _should_use_colors() is True
            with mock.patch.object(sys.stderr, 'isatty', return_value=False):
                assert _should_use_colors() is False

    @pytest.mark.parametrize('value', ['1', 'true', 'yes', 'TRUE'])
    def test_truthy_flags(self, value: str) -> None:
        with mock.patch.dict(
            os.environ, {'QUEUELINE_VERBOSE': value, 'QUEUELINE_PLAIN_ERRORS': value}
        ):
            assert _should_show_verbose() is True
            assert _should_use_plain_errors() is True

    def test_flags_disabled(self) -> None:
        with mock.patch.dict(os.environ, {'QUEUELINE_VERBOSE': '', 'QUEUELINE_PLAIN_ERRORS': '0'}):
            assert _should_show_verbose() is False
            assert _should_use_plain_errors() is False


# =============================================================================
# Exception hook Tests
# =============================================================================


class TestExceptionHook:
    """Tests for the installed excepthook."""

    @pytest.fixture(autouse=True)
    def _restore_excepthook(self) -> Iterator[None]:
        """Restore sys.excepthook after each test to prevent state leaks."""
        original = sys.excepthook
        yield
        sys.excepthook = original

    def test_install_and_uninstall(self) -> None:
        from queueline.core.errors import _original_excepthook

        install_error_handler()
        assert sys.excepthook == _queueline_excepthook

        uninstall_error_handler()
        assert sys.excepthook == _original_excepthook

    def test_queueline_error_prints_to_stderr(self) -> None:
        err = QueuelineError(message='hook test error')
        fake_stderr = StringIO()
        with mock.patch('sys.stderr', fake_stderr):
            with mock.patch.dict(os.environ, {
                'QUEUELINE_PLAIN_ERRORS': '',
                'QUEUELINE_VERBOSE': '',
                'QUEUELINE_FORCE_COLOR': '',
            }):
                _queueline_excepthook(type(err), err, err.__traceback__)
        assert 'error: hook test error' in fake_stderr.getvalue()

    def test_other_errors_delegate_to_original(self) -> None:
        err = ValueError('not ours')
        with mock.patch('queueline.core.errors._original_excepthook') as mock_hook:
            with mock.patch.dict(os.environ, {'QUEUELINE_PLAIN_ERRORS': ''}):
                _queueline_excepthook(type(err), err, err.__traceback__)
            mock_hook.assert_called_once_with(type(err), err, err.__traceback__)

    def test_plain_errors_bypasses_custom_formatting(self) -> None:
        err = QueuelineError(message='plain mode')
        with mock.patch('queueline.core.errors._original_excepthook') as mock_hook:
            with mock.patch.dict(os.environ, {'QUEUELINE_PLAIN_ERRORS': '1'}):
                _queueline_excepthook(type(err), err, err.__traceback__)
            mock_hook.assert_called_once_with(type(err), err, err.__traceback__)

    def test_verbose_mode_shows_traceback(self) -> None:
        try:
            raise DispatchError(message='verbose test')
        except DispatchError as caught:
            err = caught

        fake_stderr = StringIO()
        with mock.patch('sys.stderr', fake_stderr):
            with mock.patch.dict(os.environ, {
                'QUEUELINE_PLAIN_ERRORS': '',
                'QUEUELINE_VERBOSE': '1',
                'QUEUELINE_FORCE_COLOR': '',
            }):
                _queueline_excepthook(type(err), err, err.__traceback__)
        output = fake_stderr.getvalue()
        assert 'error: verbose test' in output
        assert 'Full traceback (QUEUELINE_VERBOSE=1)' in output
        assert 'Traceback (most recent call last)' in output


# =============================================================================
# ErrorCode Tests
# =============================================================================


class TestErrorCode:
    def test_config_codes_in_range(self) -> None:
        for code in (
            ErrorCode.CONFIG_INVALID_EXCEPTION_MAPPER,
            ErrorCode.CONFIG_INVALID_LOG_LEVEL,
            ErrorCode.CONFIG_RESERVED_ERROR_CODE,
        ):
            assert 100 <= int(code.value[1:]) < 200

    def test_dispatch_codes_in_range(self) -> None:
        for code in (ErrorCode.DISPATCH_NO_RUNNING_LOOP, ErrorCode.RECOVERY_INVALID_CODE):
            assert 200 <= int(code.value[1:]) < 300

    def test_codes_are_unique(self) -> None:
        values = [c.value for c in ErrorCode]
        assert len(values) == len(set(values))

    def test_error_code_is_string_enum(self) -> None:
        assert ErrorCode.CONFIG_INVALID_LOG_LEVEL == 'Q101'


# =============================================================================
# Multi-error collection Tests
# =============================================================================


class TestValidationReport:
    def test_empty_report(self) -> None:
        report = ValidationReport('config')
        assert report.has_errors() is False
        assert report.errors == []

    def test_add_errors(self) -> None:
        report = ValidationReport('config')
        report.add(ConfigurationError(message='a'))
        report.add(ConfigurationError(message='b'))
        assert report.has_errors() is True
        assert len(report.errors) == 2

    def test_format_summary(self) -> None:
        report = ValidationReport('config')
        report.add(ConfigurationError(message='first'))
        report.add(ConfigurationError(message='second'))
        output = str(report)
        assert 'error: first' in output
        assert 'error: second' in output
        assert 'aborting due to 2 previous errors in config' in output

    def test_summary_without_phase_name(self) -> None:
        report = ValidationReport('')
        report.add(ConfigurationError(message='only'))
        assert str(report).endswith('aborting due to 1 previous errors')


class TestMultipleValidationErrors:
    def test_is_queueline_error(self) -> None:
        report = ValidationReport('config')
        err = MultipleValidationErrors(message='', report=report)
        assert isinstance(err, QueuelineError)

    def test_auto_message_from_report(self) -> None:
        report = ValidationReport('config')
        report.add(ConfigurationError(message='a'))
        report.add(ConfigurationError(message='b'))
        err = MultipleValidationErrors(message='', report=report)
        assert err.message == 'aborting due to 2 previous errors'

    def test_str_delegates_to_report(self) -> None:
        report = ValidationReport('config')
        report.add(ConfigurationError(message='only'))
        err = MultipleValidationErrors(message='x', report=report)
        assert str(err) == str(report)


class TestRaiseCollected:
    def test_zero_errors_no_raise(self) -> None:
        raise_collected(ValidationReport('config'))

    def test_single_error_raises_original(self) -> None:
        report = ValidationReport('config')
        original = ConfigurationError(message='one', code=ErrorCode.CONFIG_INVALID_LOG_LEVEL)
        report.add(original)
        with pytest.raises(ConfigurationError) as exc_info:
            raise_collected(report)
        assert exc_info.value is original

    def test_two_errors_raise_wrapper(self) -> None:
        report = ValidationReport('config')
        report.add(ConfigurationError(message='a'))
        report.add(DispatchError(message='b'))
        with pytest.raises(MultipleValidationErrors) as exc_info:
            raise_collected(report)
        assert exc_info.value.report is report
        assert '2 previous errors' in exc_info.value.message


class TestFindUserFrame:
    def test_returns_frame_outside_queueline(self) -> None:
        frame = _find_user_frame()
        assert frame is not None
        assert 'queueline/core' not in frame.f_code.co_filename

    def test_returns_none_when_no_frame(self) -> None:
        with mock.patch('queueline.core.errors.inspect.currentframe', return_value=None):
            assert _find_user_frame() is None
