"""
Domain rejections and error aggregation.

Policy rejections (booking limit, future-day reports, early no-show marks)
are modelled as ``DomainError`` subclasses so the HTTP layer can render each
with its own status and message. Store failures are not wrapped here; they
propagate as SQLAlchemy errors and are only *recorded* by the aggregator.
"""
import hashlib
import time
from enum import Enum
from typing import Any, Dict, Optional

import structlog
from fastapi import HTTPException

from app.core.config import settings

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base for user-actionable rejections."""

    status_code: int = 400
    code: str = "domain_error"
    default_message: str = "The request could not be completed."

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class BookingLimitReached(DomainError):
    status_code = 409
    code = "booking_limit_reached"
    default_message = "You already have an upcoming appointment."


class FutureDateReportError(DomainError):
    status_code = 400
    code = "future_date"
    default_message = "Reporting is available after the day is completed."


class RetroStatusNotAllowed(DomainError):
    status_code = 400
    code = "appointment_not_past"
    default_message = "This appointment hasn't taken place yet."


class StatusNotReportable(DomainError):
    status_code = 400
    code = "status_not_reportable"
    default_message = "Only completed or skipped workouts can be reported."


class InvalidDate(DomainError):
    status_code = 400
    code = "invalid_date"
    default_message = "Invalid date (expected YYYY-MM-DD)."


class InvalidDateRange(DomainError):
    status_code = 400
    code = "invalid_range"
    default_message = "Invalid range (start must be <= end)."


class PlanNotAssigned(DomainError):
    status_code = 403
    code = "plan_not_assigned"
    default_message = "That plan is not assigned to this client."


class NotFound(DomainError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class CustomerNotFound(NotFound):
    default_message = "Customer not found."


class AppointmentNotFound(NotFound):
    default_message = "Appointment not found."


class LogNotFound(NotFound):
    default_message = "No log exists for that day."


class ErrorSeverity(Enum):
    LOW = "low"           # policy rejections, validation errors
    MEDIUM = "medium"     # timeouts, recoverable errors
    HIGH = "high"         # store unavailable, auth failures
    CRITICAL = "critical"


class ErrorPattern:
    """One deduplicated error signature."""

    def __init__(self, error_type: str, message: str, context: Dict[str, Any]):
        self.error_type = error_type
        self.message = message[:100]
        self.endpoint = context.get('endpoint', '')
        self.fingerprint = self._generate_fingerprint()
        self.first_seen = time.time()
        self.last_seen = self.first_seen
        self.count = 1

    def _generate_fingerprint(self) -> str:
        content = f"{self.error_type}:{self.message}:{self.endpoint}"
        return hashlib.md5(content.encode(), usedforsecurity=False).hexdigest()[:8]

    def update(self):
        self.last_seen = time.time()
        self.count += 1


class ErrorAggregator:
    """Deduplicate repeated errors so noisy failures log every Nth time."""

    def __init__(self, log_threshold: int = 10, time_window: int = 300, max_patterns: int = 500):
        self.log_threshold = log_threshold
        self.time_window = time_window
        self.max_patterns = max_patterns
        self.patterns: Dict[str, ErrorPattern] = {}

    def _determine_severity(self, error: Exception) -> ErrorSeverity:
        if isinstance(error, DomainError):
            return ErrorSeverity.LOW
        if isinstance(error, HTTPException):
            return ErrorSeverity.LOW if error.status_code < 500 else ErrorSeverity.MEDIUM
        if "timeout" in str(error).lower():
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.HIGH

    def should_log(self, pattern: ErrorPattern, severity: ErrorSeverity) -> bool:
        if severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            return True
        if pattern.count == 1:
            return True
        if severity == ErrorSeverity.MEDIUM:
            return pattern.count % self.log_threshold == 0
        return pattern.count % (self.log_threshold * 5) == 0

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  severity: Optional[ErrorSeverity] = None) -> str:
        context = context or {}
        if severity is None:
            severity = self._determine_severity(error)

        pattern = ErrorPattern(type(error).__name__, str(error), context)
        existing = self.patterns.get(pattern.fingerprint)
        if existing:
            existing.update()
            pattern = existing
        else:
            self.cleanup_old_patterns()
            self.patterns[pattern.fingerprint] = pattern

        if self.should_log(pattern, severity):
            emit = logger.warning if severity is ErrorSeverity.LOW else logger.error
            emit(
                "aggregated_error",
                error_hash=pattern.fingerprint,
                error_type=pattern.error_type,
                message=str(error)[:200],
                count=pattern.count,
                severity=severity.value,
                **context
            )

        return pattern.fingerprint

    def cleanup_old_patterns(self):
        """Drop stale patterns, then the least recently seen ones past the cap."""
        cutoff = time.time() - (self.time_window * 10)
        old_patterns = [fp for fp, p in self.patterns.items() if p.last_seen < cutoff]

        overflow = len(self.patterns) - len(old_patterns) - self.max_patterns + 1
        if overflow > 0:
            live = sorted(
                (p for p in self.patterns.values() if p.last_seen >= cutoff),
                key=lambda p: p.last_seen,
            )
            old_patterns.extend(p.fingerprint for p in live[:overflow])

        for fp in old_patterns:
            del self.patterns[fp]

        if old_patterns:
            logger.info("error_cleanup", removed_patterns=len(old_patterns))

    def get_error_summary(self) -> Dict[str, Any]:
        now = time.time()
        recent = [p for p in self.patterns.values() if now - p.last_seen < self.time_window]
        top = sorted(recent, key=lambda p: p.count, reverse=True)[:5]
        return {
            "total_unique_errors": len(recent),
            "total_error_count": sum(p.count for p in recent),
            "top_errors": [
                {"fingerprint": p.fingerprint, "type": p.error_type, "message": p.message, "count": p.count}
                for p in top
            ],
        }


error_aggregator = ErrorAggregator(log_threshold=settings.ERROR_AGGREGATION_THRESHOLD)

def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: Optional[ErrorSeverity] = None) -> str:
    """Log through the global aggregator."""
    return error_aggregator.log_error(error, context, severity)
