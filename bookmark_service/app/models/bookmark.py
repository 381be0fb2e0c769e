from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, field_validator


class ReminderType(IntEnum):
    """북마크 리마인더 타입.

    AT_DESKTOP 을 제외한 모든 타입은 reminder_at 시각이 필요하고, 해당 시각에 잡이 예약된다.
    AT_DESKTOP 은 다음 데스크톱 접속 시 클라이언트가 처리하므로 잡을 예약하지 않는다.
    새 타입을 추가할 때는 _LABELS 에도 추가해야 한다.
    """

    AT_DESKTOP = 0
    LATER_TODAY = 1
    NEXT_BUSINESS_DAY = 2
    TOMORROW = 3
    NEXT_WEEK = 4
    NEXT_MONTH = 5
    CUSTOM = 6

    @property
    def requires_time(self) -> bool:
        return self is not ReminderType.AT_DESKTOP

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def parse(cls, value: Any) -> "ReminderType":
        """enum 멤버, 정수 값, snake_case 이름("tomorrow") 중 하나를 ReminderType 으로 변환한다."""

        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid reminder type: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"invalid reminder type: {value!r}") from None
        if isinstance(value, str):
            key = value.strip()
            if key.isdigit():
                return cls.parse(int(key))
            try:
                return cls[key.upper()]
            except KeyError:
                raise ValueError(f"invalid reminder type: {value!r}") from None
        raise ValueError(f"invalid reminder type: {value!r}")


_LABELS: dict[ReminderType, str] = {
    ReminderType.AT_DESKTOP: "Next time I'm at my desktop",
    ReminderType.LATER_TODAY: "Later today",
    ReminderType.NEXT_BUSINESS_DAY: "Next business day",
    ReminderType.TOMORROW: "Tomorrow",
    ReminderType.NEXT_WEEK: "Next week",
    ReminderType.NEXT_MONTH: "Next month",
    ReminderType.CUSTOM: "Custom",
}


@dataclass(frozen=True, slots=True)
class Actor:
    """요청을 수행하는 유저. 소유권 비교에만 사용한다."""

    user_code: str


class Bookmark(BaseModel):
    """유저가 북마크한 포스트 도메인 모델.

    - user_code + post_id 조합은 유니크하다.
    - topic_id 는 생성 시점의 포스트 소속 토픽이다.
    - 생성 후에는 수정하지 않는다 (리마인더 변경은 삭제 후 재생성).
    """

    id: str | None = None
    user_code: str
    post_id: str
    topic_id: str
    name: str | None = None
    reminder_type: ReminderType | None = None
    reminder_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("reminder_type", mode="before")
    @classmethod
    def _parse_reminder_type(cls, value: Any) -> Any:
        if value is None:
            return None
        return ReminderType.parse(value)

    @property
    def has_scheduled_reminder(self) -> bool:
        return (
            self.reminder_type is not None
            and self.reminder_type.requires_time
            and self.reminder_at is not None
        )
