"""
Logging configuration for the cloud cost optimizer

Reports go to stdout, so every handler configured here writes to stderr or
to a file.
"""
import functools
import json
import logging
import logging.config
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import colorlog

# LogRecord attributes that are not user supplied `extra=` fields
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
}

SDK_LOGGERS = ('boto3', 'botocore', 'urllib3', 'azure', 'google')

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_PLAIN_FORMATS: Dict[str, Dict[str, str]] = {
    'console': {'format': '%(levelname)-8s %(message)s'},
    'detailed': {
        'format': '%(asctime)s %(levelname)-8s [%(name)s] %(funcName)s:%(lineno)d %(message)s',
        'datefmt': '%Y-%m-%d %H:%M:%S',
    },
    'file': {
        'format': '%(asctime)s %(levelname)-8s [%(name)s] %(message)s',
        'datefmt': '%Y-%m-%d %H:%M:%S',
    },
}

_LEVEL_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, including any `extra=` fields"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)

        payload.update({
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and key not in payload
        })
        return json.dumps(payload, default=str)


def _console_formatter(enable_color: bool) -> Dict[str, Any]:
    if enable_color and sys.stderr.isatty():
        return {
            '()': colorlog.ColoredFormatter,
            'fmt': '%(log_color)s%(levelname)-8s%(reset)s %(message)s',
            'log_colors': _LEVEL_COLORS,
        }
    return dict(_PLAIN_FORMATS['console'])


def _formatter_for(log_format: str, enable_color: bool) -> Dict[str, Any]:
    if log_format == 'json':
        return {'()': StructuredFormatter}
    if log_format == 'detailed':
        return dict(_PLAIN_FORMATS['detailed'])
    return _console_formatter(enable_color)


def setup_logging(log_level: str = 'INFO',
                  log_file: Optional[str] = None,
                  log_format: str = 'console',
                  enable_color: bool = True) -> None:
    """
    Configure the package, SDK and root loggers

    Args:
        log_level: Level of the cloud_cost_optimizer loggers
        log_file: Also write records to this rotating file
        log_format: 'console', 'json' or 'detailed' for the stderr handler
        enable_color: Color console output when stderr is a terminal
    """
    level = log_level.upper()

    formatters = {'stderr': _formatter_for(log_format, enable_color)}
    handlers: Dict[str, Dict[str, Any]] = {
        'stderr': {
            'class': 'logging.StreamHandler',
            'level': level,
            'formatter': 'stderr',
            'stream': 'ext://sys.stderr',
        },
    }

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        if log_format == 'json':
            formatters['file'] = {'()': StructuredFormatter}
        else:
            formatters['file'] = dict(_PLAIN_FORMATS['file'])
        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': level,
            'formatter': 'file',
            'filename': log_file,
            'maxBytes': LOG_FILE_MAX_BYTES,
            'backupCount': LOG_FILE_BACKUPS,
            'encoding': 'utf-8',
        }

    loggers: Dict[str, Dict[str, Any]] = {name: {'level': 'WARNING'} for name in SDK_LOGGERS}
    # No handlers here: package records propagate to the root handlers
    loggers['cloud_cost_optimizer'] = {'level': level}

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': formatters,
        'handlers': handlers,
        'loggers': loggers,
        'root': {'level': 'WARNING', 'handlers': list(handlers)},
    })


def log_execution_time(func):
    """Log how long the wrapped call took (debug) or how long it ran before failing (error)"""

    @functools.wraps(func)
    def timed(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{func.__qualname__} failed after {time.perf_counter() - started:.2f}s: {e}")
            raise
        logger.debug(f"{func.__qualname__} finished in {time.perf_counter() - started:.2f}s")
        return result

    return timed
