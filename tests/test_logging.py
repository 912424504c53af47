"""Tests for engine and deferred log output."""

from __future__ import annotations

import logging

from stepchain import Deferred, create


def messages(records) -> list[str]:
    return [record["message"] for record in records]


def test_call_logs_start_and_finish(log_records, a, b) -> None:
    create([a, b]).call(1)

    logged = messages(log_records)
    assert logged[0].startswith("call starting at")
    assert logged[-1] == "call finished after 2 bounces"
    assert all(record["extra"]["component"] == "engine" for record in log_records)


def test_redirect_logged(log_records, a) -> None:
    create(lambda _: create(a)).call(1)

    assert any("redirected" in message for message in messages(log_records))


def test_suspension_logged(log_records, a) -> None:
    create([a, lambda _: create(a).pause()]).call(1)

    assert any(message.startswith("call suspended after 1 bounces") for message in messages(log_records))


def test_resumption_logged(log_records) -> None:
    deferred = Deferred()
    create(lambda _: deferred).call(1)

    deferred.resolve(2)

    assert any("resuming after" in message for message in messages(log_records))


def test_silent_when_disabled(a) -> None:
    from loguru import logger

    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        create(a).call(1)
    finally:
        logger.remove(handler_id)

    assert records == []


def test_deferred_logs_ignored_settlement(caplog) -> None:
    deferred = Deferred().resolve(1)

    with caplog.at_level(logging.DEBUG, logger="stepchain.deferred"):
        deferred.reject("late")

    assert "Ignoring rejected of already resolved deferred" in caplog.text
