"""
Logging setup for the OTP service.

JSON lines in production, a readable single-line format in development.
Applied from ``otp_service_lifespan`` using LOG_LEVEL and JSON_LOGS.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

# APScheduler logs every job run at INFO; the sweeps log their own results
SCHEDULER_LOGGER = "apscheduler"


class OtpJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that stamps each record with the service name and the
    thread that produced it (request thread or janitor).
    """

    def __init__(self, *args, service_name: str = "agri-otp", **kwargs):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace('+00:00', 'Z')
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['service'] = self.service_name
        log_record['thread'] = record.threadName

        if record.levelno >= logging.WARNING:
            log_record['location'] = f"{record.module}.{record.funcName}:{record.lineno}"


class _BelowLevel(logging.Filter):
    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def setup_logging(log_level: str = "INFO", json_logs: bool = True, service_name: str = "agri-otp") -> None:
    """
    Configure root logging.

    Records below ERROR go to stdout and ERROR and above to stderr, so lockout
    warnings stay with request logs while janitor failures surface separately.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_logs: JSON lines (production) or plain text (development)
        service_name: Value of the ``service`` field in JSON logs
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_logs:
        formatter = OtpJsonFormatter('%(message)s', service_name=service_name)
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(_BelowLevel(logging.ERROR))
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)

    for handler in (stdout_handler, stderr_handler):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper()))

    logging.getLogger(SCHEDULER_LOGGER).setLevel(max(logging.WARNING, root_logger.level))
