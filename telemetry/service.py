"""
Telemetry service for structured logging.

All logs are written to stdout as JSON lines carrying the request ID of
the request that produced them. Metrics are emitted as debug-level log
records so they can be scraped from the same stream.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional, Dict

from middleware.request_id import request_id_var


class JSONFormatter(logging.Formatter):
    """
    Log formatter that outputs one JSON object per record.

    Each log entry contains:
    - timestamp: ISO 8601 formatted UTC timestamp
    - level: Log level
    - message: The log message
    - logger: Name of the logger that produced the entry
    - request_id: Correlation ID for request tracing

    Fields passed as ``extra={"extra_data": {...}}`` are merged in.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "request_id": request_id_var.get(""),
        }

        if record.module:
            log_data["module"] = record.module
        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        if hasattr(record, "extra_data") and record.extra_data:
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_trace"] = record.stack_info

        return json.dumps(log_data, default=str)


class TelemetryService:
    """
    Centralized logging and metrics for the service.

    Installs the JSON formatter on the root logger at the configured level
    and records per-operation metrics for the driver endpoints.
    """

    def __init__(self, settings: Optional[Any] = None):
        """
        Initialize the telemetry service.

        Args:
            settings: Application settings carrying ``log_level``
        """
        self.settings = settings
        self._logger = None
        self._setup_logging()

    def _setup_logging(self) -> None:
        log_level_str = "INFO"
        if self.settings and hasattr(self.settings, "log_level"):
            log_level_str = self.settings.log_level

        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # Replace any handlers installed earlier (basicConfig, uvicorn defaults)
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(log_level)
        stdout_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(stdout_handler)

        self._logger = logging.getLogger("telemetry")
        self._logger.info("Telemetry service initialized", extra={
            "extra_data": {"log_level": log_level_str}
        })

    def record_metric(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Record a custom metric.

        Args:
            name: Name of the metric
            value: Metric value
            tags: Optional tags for metric dimensions
        """
        metric_data = {
            "metric_name": name,
            "metric_value": value,
        }

        if tags:
            metric_data["tags"] = tags

        self._logger.debug(
            f"Metric: {name}={value}",
            extra={"extra_data": metric_data}
        )

    def log_driver_operation(
        self,
        operation: str,
        user_id: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
        level: Optional[int] = None
    ) -> None:
        """
        Log the outcome of a driver endpoint operation and record its latency.

        Args:
            operation: Operation name (update_location, update_status, get_location)
            user_id: Driver identifier the operation targeted
            duration_ms: Execution duration in milliseconds
            success: Whether the operation succeeded
            error: Error message if the operation failed
            level: Log level override; defaults to INFO on success and
                ERROR on failure
        """
        log_data = {
            "operation": operation,
            "user_id": user_id,
            "duration_ms": round(duration_ms, 2),
            "success": success,
        }
        if error:
            log_data["error"] = error

        if level is None:
            level = logging.INFO if success else logging.ERROR
        self._logger.log(
            level,
            f"Driver operation: {operation}",
            extra={"extra_data": log_data}
        )
        self.record_metric(
            f"{operation}_duration_ms",
            duration_ms,
            tags={"success": str(success).lower()}
        )


_telemetry_service: Optional[TelemetryService] = None


def get_telemetry_service() -> Optional[TelemetryService]:
    """
    Get the global telemetry service instance.

    Returns:
        The telemetry service instance, or None if not initialized
    """
    return _telemetry_service


def initialize_telemetry(settings: Optional[Any] = None) -> TelemetryService:
    """
    Initialize the global telemetry service.

    Args:
        settings: Application settings for configuration

    Returns:
        The initialized telemetry service
    """
    global _telemetry_service
    _telemetry_service = TelemetryService(settings)
    return _telemetry_service
