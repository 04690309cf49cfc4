from __future__ import annotations

import json
import logging
import sys
from collections import Counter
from threading import Lock
from typing import Any, Protocol

import sentry_sdk


logger = logging.getLogger("release_notifier")

_metrics_lock = Lock()
_metrics_counter: Counter[str] = Counter()


def _normalize(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_normalize(v) for v in value]
    return str(value)


def metric_key(name: str, **labels: Any) -> str:
    if not labels:
        return name
    ordered = ",".join(f"{k}={labels[k]}" for k in sorted(labels))
    return f"{name}|{ordered}"


def incr_metric(name: str, value: int = 1, **labels: Any) -> None:
    key = metric_key(name, **{k: _normalize(v) for k, v in labels.items()})
    with _metrics_lock:
        _metrics_counter[key] += value


def metrics_snapshot() -> dict[str, int]:
    with _metrics_lock:
        return dict(_metrics_counter)


def reset_metrics() -> None:
    with _metrics_lock:
        _metrics_counter.clear()


def log_event(
    event: str,
    *,
    level: int = logging.INFO,
    request_id: str | None = None,
    **fields: Any,
) -> None:
    payload = {"event": event}
    if request_id:
        payload["request_id"] = request_id
    for key, value in fields.items():
        payload[key] = _normalize(value)
    logger.log(level, json.dumps(payload, sort_keys=True))


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False


class ErrorReporter(Protocol):
    def capture_exception(self, exc: BaseException, **context: Any) -> None: ...


class LoggingErrorReporter:
    """Fallback sink when no error-tracking DSN is configured."""

    def capture_exception(self, exc: BaseException, **context: Any) -> None:
        log_event(
            "error_reported",
            level=logging.WARNING,
            error_type=type(exc).__name__,
            error=str(exc),
            **context,
        )


class SentryErrorReporter:
    def __init__(self, dsn: str, *, environment: str = "development", traces_sample_rate: float = 1.0):
        sentry_sdk.init(dsn=dsn, environment=environment, traces_sample_rate=traces_sample_rate)

    def capture_exception(self, exc: BaseException, **context: Any) -> None:
        try:
            with sentry_sdk.new_scope() as scope:
                for key, value in context.items():
                    scope.set_extra(key, _normalize(value))
                sentry_sdk.capture_exception(exc)
        except Exception as report_exc:
            log_event(
                "error_report_failed",
                level=logging.WARNING,
                error=str(report_exc),
            )


def build_error_reporter(dsn: str | None, *, environment: str = "development") -> ErrorReporter:
    if dsn:
        return SentryErrorReporter(dsn, environment=environment)
    return LoggingErrorReporter()
