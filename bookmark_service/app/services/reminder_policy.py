"""북마크 리마인더 검증 규칙.

I/O 가 없는 순수 함수만 둔다. 같은 now 에 대해서는 항상 같은 결과를 돌려준다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from common.mongo.types import ensure_utc_datetime

from ..models.bookmark import ReminderType


# 리마인더는 현재 시각으로부터 최대 10년 뒤까지만 허용한다.
MAX_REMINDER_YEARS = 10


class BookmarkErrorCode(StrEnum):
    ALREADY_BOOKMARKED_POST = "already_bookmarked_post"
    TIME_MUST_BE_PROVIDED = "time_must_be_provided"
    CANNOT_SET_PAST_REMINDER = "cannot_set_past_reminder"
    CANNOT_SET_REMINDER_IN_DISTANT_FUTURE = "cannot_set_reminder_in_distant_future"


_MESSAGES: dict[BookmarkErrorCode, str] = {
    BookmarkErrorCode.ALREADY_BOOKMARKED_POST: "You cannot bookmark the same post twice.",
    BookmarkErrorCode.TIME_MUST_BE_PROVIDED: (
        "time must be provided for all reminders except '{reminder_type}'"
    ),
    BookmarkErrorCode.CANNOT_SET_PAST_REMINDER: (
        "You cannot set a bookmark reminder in the past."
    ),
    BookmarkErrorCode.CANNOT_SET_REMINDER_IN_DISTANT_FUTURE: (
        "You cannot set a bookmark reminder more than "
        f"{MAX_REMINDER_YEARS} years in the future."
    ),
}


@dataclass(frozen=True, slots=True)
class BookmarkValidationError:
    """유저가 고칠 수 있는 입력 오류 하나.

    attribute 가 있으면 해당 필드에 대한 오류이고, full_message 앞에 필드 이름이 붙는다.
    """

    code: BookmarkErrorCode
    message: str
    attribute: str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def full_message(self) -> str:
        if self.attribute is None:
            return self.message
        humanized = self.attribute.replace("_", " ").capitalize()
        return f"{humanized} {self.message}"


def build_error(
    code: BookmarkErrorCode, *, attribute: str | None = None, **params: Any
) -> BookmarkValidationError:
    message = _MESSAGES[code].format(**params)
    return BookmarkValidationError(
        code=code, message=message, attribute=attribute, params=dict(params)
    )


def add_years(value: datetime, years: int) -> datetime:
    """달력 기준으로 years 년을 더한다. 2월 29일은 평년이면 2월 28일로 내린다."""

    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def validate(
    reminder_type: ReminderType | None,
    reminder_at: datetime | None,
    now: datetime,
) -> list[BookmarkValidationError]:
    """리마인더 타입/시각 조합을 검증하고 오류 목록을 반환한다 (정상이면 빈 목록).

    1. 시각이 필요한 타입인데 reminder_at 이 없으면 TIME_MUST_BE_PROVIDED
    2. reminder_at <= now 이면 CANNOT_SET_PAST_REMINDER
    3. reminder_at > now + 10년 이면 CANNOT_SET_REMINDER_IN_DISTANT_FUTURE

    1 은 reminder_at 이 없을 때만, 2/3 은 있을 때만 검사하므로 각 범주는 서로 독립적이다.
    """

    errors: list[BookmarkValidationError] = []

    if reminder_type is not None and reminder_type.requires_time and reminder_at is None:
        errors.append(
            build_error(
                BookmarkErrorCode.TIME_MUST_BE_PROVIDED,
                attribute="reminder_at",
                reminder_type=ReminderType.AT_DESKTOP.label,
            )
        )

    if reminder_at is None:
        return errors

    at = ensure_utc_datetime(reminder_at)
    current = ensure_utc_datetime(now)

    if at <= current:
        errors.append(build_error(BookmarkErrorCode.CANNOT_SET_PAST_REMINDER))
    elif at > add_years(current, MAX_REMINDER_YEARS):
        errors.append(
            build_error(BookmarkErrorCode.CANNOT_SET_REMINDER_IN_DISTANT_FUTURE)
        )

    return errors
