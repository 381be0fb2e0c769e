"""북마크 리마인더 관련 이벤트 정의."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Self


class BookmarkEventType:
    """북마크 이벤트 타입 상수."""

    BOOKMARK_REMINDER_DUE = "bookmark.reminder_due"


@dataclass(slots=True)
class BookmarkReminderDueEvent:
    """북마크 리마인더 시각 도래 이벤트.

    리마인더 디스패처가 예약된 잡을 꺼낼 때 발행한다.
    실제 알림 방식(푸시, 이메일 등)은 이 이벤트를 구독하는 쪽의 책임이다.
    잡은 at-least-once 로 발행되므로 구독 측은 job_id 로 중복을 걸러야 한다.
    """

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    job_id: str
    bookmark_id: str
    run_at: str
    attempt: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            job_id=str(data["job_id"]),
            bookmark_id=str(data["bookmark_id"]),
            run_at=str(data["run_at"]),
            attempt=int(data.get("attempt", 1)),
        )
