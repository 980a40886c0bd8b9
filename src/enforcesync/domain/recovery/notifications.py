"""Severity, notification routing and fingerprint-deduplicated alerting."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from enforcesync.domain.model.base import utcnow

from .taxonomy import ErrorKind, Severity

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from enforcesync.domain.model.base import Clock

    from .classifier import ClassifiedError

log = logging.getLogger(__name__)


class Channel(StrEnum):
    EMAIL = "email"
    SLACK = "slack"
    PAGER = "pager"
    LOG_ONLY = "log_only"


class EscalationLevel(StrEnum):
    ENGINEERING_LEAD = "engineering_lead"
    SENIOR_ENGINEER = "senior_engineer"
    TEAM_LEAD = "team_lead"
    TEAM_NOTIFICATION = "team_notification"
    MONITORING_ONLY = "monitoring_only"
    ENGINEERING_TEAM = "engineering_team"


_KIND_SEVERITY: dict[ErrorKind, Severity] = {
    ErrorKind.DATABASE: Severity.CRITICAL,
    ErrorKind.API: Severity.MEDIUM,
    ErrorKind.VALIDATION: Severity.LOW,
    ErrorKind.BUSINESS: Severity.MEDIUM,
    ErrorKind.APPLICATION: Severity.MEDIUM,
}

_CHANNELS: dict[Severity, tuple[Channel, ...]] = {
    Severity.CRITICAL: (Channel.EMAIL, Channel.SLACK, Channel.PAGER),
    Severity.HIGH: (Channel.EMAIL, Channel.SLACK),
    Severity.MEDIUM: (Channel.SLACK,),
    Severity.LOW: (Channel.LOG_ONLY,),
}

_LOG_LEVELS: dict[Severity, int] = {
    Severity.CRITICAL: logging.ERROR,
    Severity.HIGH: logging.ERROR,
    Severity.MEDIUM: logging.WARNING,
    Severity.LOW: logging.INFO,
    Severity.UNKNOWN: logging.ERROR,
}


def severity_for(kind: ErrorKind) -> Severity:
    return _KIND_SEVERITY[kind]


def channels_for(severity: Severity) -> tuple[Channel, ...]:
    return _CHANNELS.get(severity, (Channel.SLACK,))


def mitigation_steps(kind: ErrorKind) -> tuple[str, ...]:
    if kind is ErrorKind.API:
        return (
            "Check network connectivity",
            "Verify API endpoints are accessible",
            "Review API rate limits",
        )
    if kind is ErrorKind.DATABASE:
        return (
            "Check database connectivity",
            "Review connection pool settings",
            "Verify database schema",
        )
    return (
        "Review application logs",
        "Check system resources",
        "Contact technical support",
    )


def alert_title(error: ClassifiedError) -> str:
    agency = error.agency.upper() if error.agency else "System"
    operation = error.operation.replace("_", " ").title()
    return f"{agency} {operation} Failed: {error.message}"


@dataclass(frozen=True, slots=True, kw_only=True)
class Alert:
    fingerprint: str
    title: str
    severity: Severity
    channels: tuple[Channel, ...]
    error_id: str
    raised_at: datetime
    occurrences: int = 1


type AlertSink = Callable[[Alert], None]


class AlertDispatcher:
    """Emit one alert per fingerprint; repeats only bump the occurrence counter.

    Alerts are written to the module logger and handed to ``sink`` when one is given.
    """

    def __init__(self, *, sink: AlertSink | None = None, clock: Clock = utcnow) -> None:
        self._sink = sink
        self._clock = clock
        self._lock = threading.Lock()
        self._seen: dict[str, Alert] = {}

    def dispatch(
        self,
        error: ClassifiedError,
        *,
        severity: Severity | None = None,
    ) -> Alert | None:
        """Send an alert for ``error``; returns ``None`` when the fingerprint was already sent."""

        level = severity or error.severity
        with self._lock:
            previous = self._seen.get(error.fingerprint)
            if previous is not None:
                self._seen[error.fingerprint] = Alert(
                    fingerprint=previous.fingerprint,
                    title=previous.title,
                    severity=previous.severity,
                    channels=previous.channels,
                    error_id=previous.error_id,
                    raised_at=previous.raised_at,
                    occurrences=previous.occurrences + 1,
                )
                log.debug("Suppressed duplicate alert %s", error.fingerprint)
                return None
            alert = Alert(
                fingerprint=error.fingerprint,
                title=alert_title(error),
                severity=level,
                channels=channels_for(level),
                error_id=error.error_id,
                raised_at=self._clock(),
            )
            self._seen[error.fingerprint] = alert
        log.log(
            _LOG_LEVELS.get(level, logging.WARNING),
            "[%s] %s (%s, channels=%s, fingerprint=%s)",
            level,
            alert.title,
            error.classification,
            ",".join(alert.channels),
            alert.fingerprint,
        )
        if self._sink is not None:
            self._sink(alert)
        return alert

    def sent(self) -> list[Alert]:
        with self._lock:
            return list(self._seen.values())

    def reset(self) -> None:
        with self._lock:
            self._seen.clear()
