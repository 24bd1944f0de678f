"""
Logging configuration with structured JSON output, request context and secret masking
"""
import json
import logging
import re
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from pairmatch.core.config import get_settings

# Request id, participant id, match id... of the work currently being logged
log_context: ContextVar[Dict[str, Any]] = ContextVar('log_context', default={})

# Attributes every LogRecord carries; anything else came in through `extra=`
_RECORD_ATTRS = frozenset(logging.LogRecord('', 0, '', 0, '', (), None).__dict__) | {'message', 'taskName'}

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class SensitiveDataFilter(logging.Filter):
    """Mask generation API keys, GitHub tokens and bearer credentials"""

    PATTERNS = [
        (re.compile(r'gsk_[A-Za-z0-9]+'), 'gsk_***'),
        (re.compile(r'(ghp|gho|ghs)_[A-Za-z0-9]+'), r'\1_***'),
        (re.compile(r'github_pat_[A-Za-z0-9_]+'), 'github_pat_***'),
        (re.compile(r'Bearer\s+[^\s"\']+', re.IGNORECASE), 'Bearer ***'),
        (re.compile(r'(api[_-]?key["\']?\s*[:=]\s*["\']?)[^"\'\s&,]+', re.IGNORECASE), r'\1***'),
    ]

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    @classmethod
    def mask(cls, value: str) -> str:
        for pattern, replacement in cls.PATTERNS:
            value = pattern.sub(replacement, value)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return True

        # Render once so that secrets passed as %-args are masked as well
        message = record.getMessage()
        masked = self.mask(message)
        if masked != message:
            record.msg = masked
            record.args = ()

        return True


class ContextFilter(logging.Filter):
    """Copy the current log context onto the record (text format shows request_id)"""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = log_context.get()
        for key, value in ctx.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        if not hasattr(record, 'request_id'):
            record.request_id = '-'
        return True


class ContextualFormatter(logging.Formatter):
    """One JSON object per line: base fields, then log context, then `extra=` fields"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in entry:
                continue
            if key == 'request_id' and value == '-':
                continue
            entry[key] = value

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class LoggingConfig:
    """Centralized logging configuration"""

    _configured = False

    @staticmethod
    def _module_levels(settings) -> Dict[str, str]:
        levels = {
            "sqlalchemy.engine": "INFO" if settings.log_sqlalchemy else "WARNING",
            "sqlalchemy.pool": "WARNING",
            "uvicorn.access": "INFO" if settings.log_uvicorn_access else "WARNING",
            "uvicorn.error": "INFO",
            "httpx": "WARNING",
            "httpcore": "WARNING",
            "pairmatch": settings.log_level,
        }
        if settings.log_module_levels:
            overrides = json.loads(settings.log_module_levels)
            if not isinstance(overrides, dict):
                raise ValueError("LOG_MODULE_LEVELS must be a JSON object")
            levels.update(overrides)
        return levels

    @classmethod
    def configure(cls, module_levels: Optional[Dict[str, str]] = None):
        """
        Install handlers on the root logger. Safe to call repeatedly.

        Raises:
            ValueError: LOG_MODULE_LEVELS is not a JSON object of module -> level
        """
        if cls._configured:
            return

        settings = get_settings()
        levels = cls._module_levels(settings)
        if module_levels:
            levels.update(module_levels)

        if settings.log_format == "json":
            formatter = ContextualFormatter(datefmt=DATE_FORMAT)
        else:
            formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

        filters = [ContextFilter(), SensitiveDataFilter(enabled=not settings.log_sensitive_data)]

        handlers = [logging.StreamHandler(sys.stdout)]
        if settings.log_file_enabled:
            log_path = Path(settings.log_file_path)
            if not log_path.is_absolute():
                log_path = Path(__file__).resolve().parents[3] / log_path
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(TimedRotatingFileHandler(
                filename=str(log_path),
                when='midnight',
                backupCount=settings.log_file_retention,
                encoding='utf-8',
            ))

        for handler in handlers:
            handler.setFormatter(formatter)
            for log_filter in filters:
                handler.addFilter(log_filter)

        logging.basicConfig(level=settings.log_level.upper(), handlers=handlers, force=True)

        for module, level in levels.items():
            logging.getLogger(module).setLevel(level.upper())

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger for a module"""
        if not cls._configured:
            cls.configure()
        return logging.getLogger(name)

    @classmethod
    def set_context(cls, **kwargs):
        """Add fields to the log context of the current request"""
        ctx = log_context.get().copy()
        ctx.update(kwargs)
        log_context.set(ctx)

    @classmethod
    def clear_context(cls):
        log_context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **kwargs) -> Iterator[None]:
        """Add fields to the log context for the duration of a block"""
        token = log_context.set({**log_context.get(), **kwargs})
        try:
            yield
        finally:
            log_context.reset(token)
