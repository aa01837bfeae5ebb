# queueline/core/logging.py
import logging
import os
import sys
from datetime import datetime


def _level_from_env() -> int:
    name = os.environ.get('QUEUELINE_LOG_LEVEL', '').strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


# Module-level default log level, can be changed by set_default_level()
_default_level: int = _level_from_env()


class ColoredFormatter(logging.Formatter):
    """Tabular formatter for queueline loggers, colored unless NO_COLOR is set."""

    COLORS = {
        'RESET': '\033[0m',
        'LIGHT_BLUE': '\033[94m',
        'WHITE': '\033[97m',
        'GRAY': '\033[90m',
        'GREEN': '\033[92m',
        'YELLOW': '\033[93m',
        'RED': '\033[91m',
        'BRIGHT_RED': '\033[1;91m',
    }

    LEVEL_COLORS = {
        'DEBUG': COLORS['GRAY'],
        'INFO': COLORS['GREEN'],
        'WARNING': COLORS['YELLOW'],
        'ERROR': COLORS['RED'],
        'CRITICAL': COLORS['BRIGHT_RED'],
    }

    def __init__(self, use_colors: bool | None = None) -> None:
        super().__init__()
        if use_colors is None:
            use_colors = os.environ.get('NO_COLOR') is None
        self.use_colors = use_colors

    def _paint(self, color: str, text: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{self.COLORS['RESET']}"

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')

        # 'queueline.manager' -> 'manager'
        component = record.name.split('.')[-1] if '.' in record.name else record.name

        # [manager] and [session] are the widest components
        component_padded = f'[{component}]'.ljust(12)
        level_padded = f'[{record.levelname}]'.ljust(10)

        level_color = self.LEVEL_COLORS.get(record.levelname, self.COLORS['WHITE'])

        formatted = (
            self._paint(self.COLORS['LIGHT_BLUE'], f'[{time_str}]')
            + ' '
            + self._paint(self.COLORS['WHITE'], component_padded)
            + self._paint(level_color, level_padded)
            + self._paint(self.COLORS['WHITE'], record.getMessage())
        )

        if record.exc_info:
            formatted += '\n' + self.formatException(record.exc_info)

        return formatted


def set_default_level(level: int) -> None:
    """Set the default log level for new loggers."""
    global _default_level
    _default_level = level


def apply_level(level: int) -> None:
    """Set the default level and re-level every queueline logger already created."""
    set_default_level(level)
    for name, existing in logging.Logger.manager.loggerDict.items():
        if not name.startswith('queueline.') or not isinstance(existing, logging.Logger):
            continue
        existing.setLevel(level)
        for handler in existing.handlers:
            handler.setLevel(level)


def get_logger(component_name: str) -> logging.Logger:
    """Get a logger for the specified component."""
    logger = logging.getLogger(f'queueline.{component_name}')

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ColoredFormatter())
        handler.setLevel(_default_level)
        logger.addHandler(handler)
        logger.setLevel(_default_level)

        # Prevent duplicate logs from parent loggers
        logger.propagate = False

    return logger
