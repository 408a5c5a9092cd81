"""
Structured JSON Logging for Harness Events

Records what the harness waited for, how long, and what state was left
behind, in a parseable form for post-processing of flaky runs.

Console output is always human readable. A JSON Lines file is written only
when an output directory is given or EXCHANGE_HARNESS_ARTIFACTS is set.
"""

import json
import os
import threading
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any


@dataclass
class LogEvent:
    """Structured log event."""
    wall_time: str
    monotonic_ns: int
    run_id: str
    event_type: str
    message: str = ""
    description: Optional[str] = None
    side: Optional[str] = None
    wait_ms: Optional[int] = None
    elapsed_ms: Optional[float] = None
    error_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class HarnessLogger:
    """
    Structured logger for harness observability.

    Thread-safe; the engine's background threads never write here, but
    several test threads may.
    """

    def __init__(
        self,
        run_id: str,
        output_dir: Optional[Path] = None,
        console_output: bool = True
    ):
        self.run_id = run_id
        self.console_output = console_output
        self._lock = threading.Lock()
        self._file_handle = None
        self.log_file: Optional[Path] = None

        if output_dir is None:
            artifacts_env = os.environ.get("EXCHANGE_HARNESS_ARTIFACTS")
            if artifacts_env:
                output_dir = Path(artifacts_env)

        if output_dir is not None:
            self.output_dir = Path(output_dir)
            self.output_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.log_file = self.output_dir / f"{run_id}_{timestamp}.jsonl"
            self._file_handle = open(self.log_file, "w")

    def _create_event(self, event_type: str, message: str = "", **kwargs) -> LogEvent:
        return LogEvent(
            wall_time=datetime.now(timezone.utc).isoformat(),
            monotonic_ns=time.monotonic_ns(),
            run_id=self.run_id,
            event_type=event_type,
            message=message,
            **kwargs
        )

    def _write(self, event: LogEvent):
        """Write event to log file and optionally console."""
        event_dict = asdict(event)
        # Remove None values for cleaner output
        event_dict = {k: v for k, v in event_dict.items() if v is not None}

        json_line = json.dumps(event_dict, separators=(',', ':'), default=str)

        with self._lock:
            if self._file_handle is not None:
                self._file_handle.write(json_line + "\n")
                self._file_handle.flush()

            if self.console_output:
                level = "ERROR" if event.error_type else "INFO"
                print(f"[{event.wall_time[11:19]}] [{level}] {event.event_type}: {event.message}")

    def info(self, event_type: str, message: str = "", **kwargs):
        self._write(self._create_event(event_type, message, **kwargs))

    def error(self, event_type: str, message: str = "", error_type: str = "error", **kwargs):
        self._write(self._create_event(event_type, message, error_type=error_type, **kwargs))

    def wait_started(self, description: str, wait_ms: int, poll_interval_ms: int):
        """Log the intended wait before polling starts."""
        self.info(
            "wait_started",
            f"Wait until {description} ({wait_ms / 1000:g} seconds)",
            description=description,
            wait_ms=wait_ms,
            extra={"poll_interval_ms": poll_interval_ms}
        )

    def wait_finished(self, description: str, satisfied: bool, elapsed_ms: float, polls: int):
        event = self._create_event(
            "wait_finished",
            f"{description}: {'satisfied' if satisfied else 'not satisfied'} after {elapsed_ms:.0f}ms",
            description=description,
            elapsed_ms=elapsed_ms,
            extra={"satisfied": satisfied, "polls": polls}
        )
        self._write(event)

    def wait_cancelled(self, description: str, elapsed_ms: float):
        self.error(
            "wait_cancelled",
            f"{description}: cancelled after {elapsed_ms:.0f}ms",
            error_type="cancelled",
            description=description,
            elapsed_ms=elapsed_ms
        )

    def residual_state(self, side: str, detail: str, **kwargs):
        """Log state still held when a completion assertion fails."""
        self.error(
            "residual_state",
            f"{side} still holds state: {detail}",
            error_type="residual_state",
            side=side,
            **kwargs
        )

    def close(self):
        with self._lock:
            if self._file_handle is not None:
                self._file_handle.close()
                self._file_handle = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.error("harness_error", str(exc_val), error_type=exc_type.__name__)
        self.close()
        return False


# Global logger registry
_loggers: Dict[str, HarnessLogger] = {}
_logger_lock = threading.Lock()


def get_logger(run_id: str = "exchange_harness", **kwargs) -> HarnessLogger:
    """
    Get or create a logger for the given run.

    Thread-safe singleton per run_id.
    """
    with _logger_lock:
        if run_id not in _loggers:
            _loggers[run_id] = HarnessLogger(run_id, **kwargs)
        return _loggers[run_id]


def close_all_loggers():
    """Close all active loggers."""
    with _logger_lock:
        for logger in _loggers.values():
            logger.close()
        _loggers.clear()
