from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from enforcesync.domain.errors import NormalizationError, PersistenceError
from enforcesync.domain.recovery import (
    Alert,
    AlertDispatcher,
    Channel,
    ErrorClassifier,
    ErrorContext,
    ErrorKind,
    Severity,
    channels_for,
    mitigation_steps,
    severity_for,
)

if TYPE_CHECKING:
    from tests.helpers.clock import FakeClock


@pytest.mark.parametrize(
    ("kind", "severity"),
    [
        (ErrorKind.DATABASE, Severity.CRITICAL),
        (ErrorKind.API, Severity.MEDIUM),
        (ErrorKind.VALIDATION, Severity.LOW),
        (ErrorKind.BUSINESS, Severity.MEDIUM),
        (ErrorKind.APPLICATION, Severity.MEDIUM),
    ],
)
def test_severity_for(kind: ErrorKind, severity: Severity) -> None:
    assert severity_for(kind) is severity


@pytest.mark.parametrize(
    ("severity", "channels"),
    [
        (Severity.CRITICAL, (Channel.EMAIL, Channel.SLACK, Channel.PAGER)),
        (Severity.HIGH, (Channel.EMAIL, Channel.SLACK)),
        (Severity.MEDIUM, (Channel.SLACK,)),
        (Severity.LOW, (Channel.LOG_ONLY,)),
        (Severity.UNKNOWN, (Channel.SLACK,)),
    ],
)
def test_channels_for(severity: Severity, channels: tuple[Channel, ...]) -> None:
    assert channels_for(severity) == channels


def test_mitigation_steps_depend_on_kind() -> None:
    assert mitigation_steps(ErrorKind.API)[0] == "Check network connectivity"
    assert mitigation_steps(ErrorKind.DATABASE)[0] == "Check database connectivity"
    assert mitigation_steps(ErrorKind.BUSINESS)[0] == "Review application logs"


def test_dispatch_sends_one_alert_per_fingerprint(clock: FakeClock) -> None:
    received: list[Alert] = []
    dispatcher = AlertDispatcher(sink=received.append, clock=clock)
    classifier = ErrorClassifier(clock=clock)
    context = ErrorContext(operation="create_case", agency="hse")
    error = classifier.classify(PersistenceError("disk full"), context)

    alert = dispatcher.dispatch(error)
    repeat = dispatcher.dispatch(classifier.classify(PersistenceError("disk full"), context))

    assert alert is not None
    assert alert.title == "HSE Create Case Failed: disk full"
    assert alert.severity is Severity.CRITICAL
    assert alert.channels == (Channel.EMAIL, Channel.SLACK, Channel.PAGER)
    assert alert.raised_at == clock.now
    assert repeat is None
    assert received == [alert]
    assert [sent.occurrences for sent in dispatcher.sent()] == [2]


def test_dispatch_severity_override_and_system_title(clock: FakeClock) -> None:
    dispatcher = AlertDispatcher(clock=clock)
    error = ErrorClassifier(clock=clock).classify(
        NormalizationError("missing name"), ErrorContext(operation="ingest_record")
    )

    alert = dispatcher.dispatch(error, severity=Severity.HIGH)

    assert alert is not None
    assert alert.title == "System Ingest Record Failed: missing name"
    assert alert.channels == (Channel.EMAIL, Channel.SLACK)


def test_dispatch_logs_alerts(clock: FakeClock, caplog: pytest.LogCaptureFixture) -> None:
    dispatcher = AlertDispatcher(clock=clock)
    error = ErrorClassifier(clock=clock).classify(PersistenceError("disk full"))

    with caplog.at_level(logging.ERROR, logger="enforcesync.domain.recovery.notifications"):
        dispatcher.dispatch(error)

    assert "Unknown Failed: disk full" in caplog.text


def test_reset_allows_alerting_again(clock: FakeClock) -> None:
    dispatcher = AlertDispatcher(clock=clock)
    error = ErrorClassifier(clock=clock).classify(PersistenceError("disk full"))
    dispatcher.dispatch(error)

    dispatcher.reset()

    assert dispatcher.sent() == []
    assert dispatcher.dispatch(error) is not None
