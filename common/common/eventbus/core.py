from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# n 번째 실패 이후의 재시도 대기 시간(초). 마지막 값이 상한이다.
RetryDelays: list[float] = [
    60.0,  # 1분
    300.0,  # 5분
    600.0,  # 10분
    1800.0,  # 30분
    3600.0,  # 1시간
]


@dataclass(slots=True)
class Event:
    """Kafka 메시지의 메타데이터와 페이로드를 표현하는 이벤트.

    payload는 직렬화 직전 형태(dict)를 저장하고,
    실제 Kafka I/O 레이어에서 JSON 인코딩을 담당한다.
    """

    id: str
    payload: Any
    retry: int = 0
    max_retry: int = 0
    last_error: str | None = None

    def __post_init__(self) -> None:
        if self.max_retry <= 0 or self.max_retry > len(RetryDelays):
            self.max_retry = len(RetryDelays)


@dataclass(frozen=True, slots=True)
class Topic:
    base: str
