from __future__ import annotations

import pytest

from bookmark_service.app import config


def test_load_config_uses_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        config.SERVICE_NAME_ENV,
        config.REMINDER_DISPATCH_INTERVAL_SECONDS,
        config.REMINDER_DISPATCH_BATCH_SIZE,
        config.REMINDER_DISPATCH_MAX_ATTEMPTS,
        config.REMINDER_DISPATCH_DELIVERY_TIMEOUT_SECONDS,
    ):
        monkeypatch.delenv(name, raising=False)

    cfg = config.load_config()

    assert cfg.service_name == "bookmark-service"
    assert cfg.reminder_dispatch == config.ReminderDispatchConfig(
        interval_seconds=30.0,
        batch_size=100,
        max_attempts=5,
        delivery_timeout_seconds=10.0,
    )


def test_load_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(config.SERVICE_NAME_ENV, "bookmark-service-staging")
    monkeypatch.setenv(config.REMINDER_DISPATCH_INTERVAL_SECONDS, "2.5")
    monkeypatch.setenv(config.REMINDER_DISPATCH_BATCH_SIZE, "10")
    monkeypatch.setenv(config.REMINDER_DISPATCH_MAX_ATTEMPTS, "3")
    monkeypatch.setenv(config.REMINDER_DISPATCH_DELIVERY_TIMEOUT_SECONDS, "4")

    cfg = config.load_config()

    assert cfg.service_name == "bookmark-service-staging"
    assert cfg.reminder_dispatch.interval_seconds == 2.5
    assert cfg.reminder_dispatch.batch_size == 10
    assert cfg.reminder_dispatch.max_attempts == 3
    assert cfg.reminder_dispatch.delivery_timeout_seconds == 4.0


@pytest.mark.parametrize("raw", ["abc", "0", "-1", "1.5"])
def test_invalid_batch_size_fails_fast(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv(config.REMINDER_DISPATCH_BATCH_SIZE, raw)

    with pytest.raises(RuntimeError):
        config.load_reminder_dispatch_config()
