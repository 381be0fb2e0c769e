from __future__ import annotations

import os
from dataclasses import dataclass


SERVICE_NAME_ENV = "SERVICE_NAME"
REMINDER_DISPATCH_INTERVAL_SECONDS = "REMINDER_DISPATCH_INTERVAL_SECONDS"
REMINDER_DISPATCH_BATCH_SIZE = "REMINDER_DISPATCH_BATCH_SIZE"
REMINDER_DISPATCH_MAX_ATTEMPTS = "REMINDER_DISPATCH_MAX_ATTEMPTS"
REMINDER_DISPATCH_DELIVERY_TIMEOUT_SECONDS = "REMINDER_DISPATCH_DELIVERY_TIMEOUT_SECONDS"

DEFAULT_SERVICE_NAME = "bookmark-service"


@dataclass(slots=True)
class ReminderDispatchConfig:
    interval_seconds: float = 30.0
    batch_size: int = 100
    max_attempts: int = 5
    # 한 배치의 Kafka 전송 확인(flush)을 기다리는 최대 시간
    delivery_timeout_seconds: float = 10.0


@dataclass(slots=True)
class AppConfig:
    """bookmark-service 전체 설정 루트.

    - Mongo/Kafka 접속 정보는 common.mongo.config / common.eventbus.config 에서 따로 읽는다.
    """

    service_name: str
    reminder_dispatch: ReminderDispatchConfig


def _read_positive_number(name: str, default: float, cast: type) -> float:
    raw_value = os.getenv(name, "").strip()
    if not raw_value:
        return default

    try:
        value = cast(raw_value)
    except ValueError as exc:  # noqa: TRY003
        raise RuntimeError(
            f"{name} must be a {cast.__name__} value, got: {raw_value!r}"
        ) from exc

    if value <= 0:
        raise RuntimeError(f"{name} must be greater than 0, got: {raw_value!r}")
    return value


def load_reminder_dispatch_config() -> ReminderDispatchConfig:
    defaults = ReminderDispatchConfig()
    return ReminderDispatchConfig(
        interval_seconds=float(
            _read_positive_number(
                REMINDER_DISPATCH_INTERVAL_SECONDS, defaults.interval_seconds, float
            )
        ),
        batch_size=int(
            _read_positive_number(REMINDER_DISPATCH_BATCH_SIZE, defaults.batch_size, int)
        ),
        max_attempts=int(
            _read_positive_number(
                REMINDER_DISPATCH_MAX_ATTEMPTS, defaults.max_attempts, int
            )
        ),
        delivery_timeout_seconds=float(
            _read_positive_number(
                REMINDER_DISPATCH_DELIVERY_TIMEOUT_SECONDS,
                defaults.delivery_timeout_seconds,
                float,
            )
        ),
    )


def load_config() -> AppConfig:
    """bookmark-service 설정을 환경 변수에서 로드하여 AppConfig 로 반환한다."""

    service_name = os.getenv(SERVICE_NAME_ENV, "").strip() or DEFAULT_SERVICE_NAME
    return AppConfig(
        service_name=service_name,
        reminder_dispatch=load_reminder_dispatch_config(),
    )
