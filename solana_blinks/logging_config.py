"""
Logging configuration for Solana Blinks.

Provides structured JSON logging and a named-event logger for the
resolution and execution pipeline. Logs are written to stderr so that the
CLI's stdout carries only the JSON result.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for per-invocation correlation
run_id_var: ContextVar[str] = ContextVar('run_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per record, suitable for log aggregation or for an
    agent parsing stderr.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        run_id = run_id_var.get()
        if run_id:
            log_data["run_id"] = run_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class EventLogger:
    """
    Logger for pipeline events.

    Each method emits one named event with structured fields. Blocks and
    degraded-mode fallbacks log at WARNING, everything else at INFO.
    """

    def __init__(self, name: str = "solana_blinks.events"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {
            "event_type": event_type,
            **{k: v for k, v in kwargs.items() if k != "message"}
        }
        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def url_resolved(self, raw_url: str, canonical_url: str, rule: str) -> None:
        self._log(
            logging.INFO,
            "URL_RESOLVED",
            raw_url=raw_url,
            canonical_url=canonical_url,
            rule=rule,
            message=f"{rule} -> {canonical_url}"
        )

    def trust_decision(self, host: str, status: str, snapshot_source: str) -> None:
        self._log(
            logging.INFO if status != "malicious" else logging.WARNING,
            "TRUST_DECISION",
            host=host,
            status=status,
            snapshot_source=snapshot_source,
            message=f"{host} is {status}"
        )

    def registry_refresh(self, trusted: int, malicious: int, ttl: int) -> None:
        self._log(
            logging.INFO,
            "REGISTRY_REFRESH",
            trusted=trusted,
            malicious=malicious,
            ttl=ttl,
            message=f"registry loaded ({trusted} trusted, {malicious} malicious)"
        )

    def registry_fallback(self, reason: str, source: str) -> None:
        self._log(
            logging.WARNING,
            "REGISTRY_FALLBACK",
            reason=reason,
            snapshot_source=source,
            message=f"registry fetch failed, serving {source} snapshot"
        )

    def metadata_fetched(self, url: str, title: str, action_count: int) -> None:
        self._log(
            logging.INFO,
            "METADATA_FETCHED",
            url=url,
            title=title,
            action_count=action_count,
            message=f"{title} ({action_count} actions)"
        )

    def transaction_received(self, url: str, account: str, has_message: bool) -> None:
        self._log(
            logging.INFO,
            "TRANSACTION_RECEIVED",
            url=url,
            account=account,
            has_message=has_message,
            message=f"transaction received from {url}"
        )

    def simulation_result(self, url: str, success: bool, units_consumed: Optional[int]) -> None:
        self._log(
            logging.INFO if success else logging.WARNING,
            "SIMULATION_RESULT",
            url=url,
            success=success,
            units_consumed=units_consumed,
            message=f"simulation {'succeeded' if success else 'failed'}"
        )

    def transaction_submitted(self, url: str, signature: str) -> None:
        self._log(
            logging.INFO,
            "TRANSACTION_SUBMITTED",
            url=url,
            signature=signature,
            message=f"submitted {signature}"
        )

    def execution_blocked(self, url: str, host: str, reason: str) -> None:
        self._log(
            logging.WARNING,
            "EXECUTION_BLOCKED",
            url=url,
            host=host,
            reason=reason,
            message=f"execution blocked: {reason}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def set_run_id(run_id: Optional[str] = None) -> str:
    """Set the run ID for the current context, generating one if needed."""
    if run_id is None:
        run_id = str(uuid.uuid4())
    run_id_var.set(run_id)
    return run_id


def get_run_id() -> str:
    """Get the current run ID."""
    return run_id_var.get()


# Global event logger instance
events = EventLogger()
