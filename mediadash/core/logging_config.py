from __future__ import annotations

import os
import logging
from pythonjsonlogger import jsonlogger
from colorama import Fore, Style, init as colorama_init
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
import sys
import re
from typing import Any, Dict

from mediadash.core.config import settings

colorama_init()

LOG_DIR = os.path.abspath(settings.LOG_DIR)
# Ensure the directory exists at import time
os.makedirs(LOG_DIR, exist_ok=True)
MAX_BYTES = settings.LOG_ROTATION_SIZE
BACKUP_COUNT = settings.LOG_BACKUP_COUNT

class LogSanitizer:
    """Utility class for redacting downstream credentials from logs."""

    SENSITIVE_PATTERNS = {
        'api_key': r'(?i)(x-api-key|api[_-]?key|apikey)["\']?\s*[=:]\s*["\']?[\w\-\.]+',
        'password': r'(?i)(password|passwd|pwd)[_-]?[=:]\s*[\w\-\.]+',
        'token': r'(?i)(token|secret)[_-]?[=:]\s*[\w\-\.]+',
        'jwt': r'eyJ[A-Za-z0-9-_=]+\.eyJ[A-Za-z0-9-_=]+\.?[A-Za-z0-9-_.+/=]*',
    }

    # Fields that should always be redacted
    SENSITIVE_FIELDS = {
        'password', 'token', 'secret', 'api_key', 'apikey', 'x-api-key',
        'authorization', 'access_token', 'refresh_token',
    }

    @classmethod
    def redaction_for(cls, key: str) -> str:
        key = key.lower()
        if 'api_key' in key or 'apikey' in key or 'api-key' in key:
            return "[REDACTED_API_KEY]"
        if 'password' in key:
            return "[REDACTED_PASSWORD]"
        return "[REDACTED]"

    @classmethod
    def is_sensitive_field(cls, key: str) -> bool:
        return any(sensitive in key.lower() for sensitive in cls.SENSITIVE_FIELDS)

    @classmethod
    def sanitize_text(cls, text: str) -> str:
        for pattern_name, pattern in cls.SENSITIVE_PATTERNS.items():
            text = re.sub(pattern, f"[REDACTED_{pattern_name.upper()}]", text)
        return text

    @classmethod
    def sanitize_value(cls, value: Any) -> Any:
        if isinstance(value, str):
            return cls.sanitize_text(value)
        elif isinstance(value, dict):
            return cls.sanitize_dict(value)
        elif isinstance(value, (list, tuple)):
            return type(value)(cls.sanitize_value(item) for item in value)
        return value

    @classmethod
    def sanitize_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        sanitized = {}
        for key, value in data.items():
            if isinstance(key, str) and cls.is_sensitive_field(key):
                sanitized[key] = cls.redaction_for(key)
            else:
                sanitized[key] = cls.sanitize_value(value)
        return sanitized

    @classmethod
    def sanitize_log_record(cls, record: logging.LogRecord) -> logging.LogRecord:
        if isinstance(record.msg, dict):
            record.msg = cls.sanitize_dict(record.msg)
        elif isinstance(record.msg, str):
            record.msg = cls.sanitize_text(record.msg)

        if record.args:
            if isinstance(record.args, tuple):
                record.args = tuple(cls.sanitize_value(arg) for arg in record.args)
            else:
                record.args = cls.sanitize_value(record.args)
        return record

# LogRecord attributes that never carry user-supplied extra fields
STANDARD_RECORD_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'message', 'asctime', 'taskName'
}

class SanitizingFilter(logging.Filter):
    """Filter to sanitize log records before they are processed."""

    def filter(self, record: logging.LogRecord) -> bool:
        LogSanitizer.sanitize_log_record(record)

        for attr_name, attr_value in list(vars(record).items()):
            if attr_name.startswith('_') or attr_name in STANDARD_RECORD_ATTRS:
                continue
            if LogSanitizer.is_sensitive_field(attr_name):
                setattr(record, attr_name, LogSanitizer.redaction_for(attr_name))
            else:
                setattr(record, attr_name, LogSanitizer.sanitize_value(attr_value))

        return True

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.now(timezone.utc).isoformat()

        if not log_record.get('level'):
            log_record['level'] = record.levelname.upper()

        if not log_record.get('source'):
            log_record['source'] = record.name

        if 'message' in message_dict:
            log_record['message'] = message_dict['message']
        elif hasattr(record, 'message'):
            log_record['message'] = record.message

class ConsoleColorFormatter(logging.Formatter):
    LEVEL_COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA
    }
    COMPONENT_COLOR = Fore.CYAN
    TIME_COLOR = Fore.LIGHTBLACK_EX

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelname, '')
        reset = Style.RESET_ALL
        time_str = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        level_str = f"{color}[{record.levelname}]{reset}"
        time_str_col = f"{self.TIME_COLOR}{time_str}{reset}"
        component = getattr(record, 'component', None)
        component_str = f"{self.COMPONENT_COLOR}[{component}]{reset} " if component else ""
        line = f"{level_str} {time_str_col} {component_str}{record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

def build_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "console":
        return ConsoleColorFormatter()
    return CustomJsonFormatter(
        fmt="%(timestamp)s %(level)s %(name)s %(message)s %(source)s %(component)s",
        json_ensure_ascii=False,
        reserved_attrs=[],
    )

def init_logging(level: int | None = None) -> logging.Logger:
    """Bootstrap application-wide logging. Safe to call multiple times."""

    if level is None:
        level_name = settings.LOG_LEVEL.upper()
        level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()

    # Idempotency – if we already added our sentinel handler, just return
    for h in root_logger.handlers:
        if getattr(h, "_is_central_handler", False):
            root_logger.setLevel(level)
            return logging.getLogger("mediadash")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(build_formatter(settings.LOG_FORMAT))
    console_handler.setLevel(level)
    console_handler._is_central_handler = True  # sentinel attr

    combined_log_path = os.path.join(LOG_DIR, "combined.log")
    file_handler = RotatingFileHandler(
        combined_log_path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
    )
    file_handler.setFormatter(build_formatter("json"))
    file_handler.setLevel(level)
    file_handler._is_central_handler = True

    sanitizer = SanitizingFilter()
    console_handler.addFilter(sanitizer)
    file_handler.addFilter(sanitizer)

    # Reset existing handlers (avoid duplicate logs when reloaded)
    root_logger.handlers = []
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Quiet noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    app_logger = logging.getLogger("mediadash")
    app_logger.info("Centralised logger initialised", extra={"component": "logger"})
    return app_logger

# Initialise at import time so any early imports get the logger
app_logger = init_logging()
