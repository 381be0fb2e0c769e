from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from bookmark_service.app.models.bookmark import ReminderType
from bookmark_service.app.services import reminder_policy
from bookmark_service.app.services.reminder_policy import BookmarkErrorCode


NOW = datetime(2024, 2, 29, 8, 30, tzinfo=timezone.utc)


def _codes(errors: list[reminder_policy.BookmarkValidationError]) -> list[BookmarkErrorCode]:
    return [error.code for error in errors]


def test_no_reminder_is_valid() -> None:
    assert reminder_policy.validate(None, None, NOW) == []


def test_at_desktop_without_time_is_valid() -> None:
    assert reminder_policy.validate(ReminderType.AT_DESKTOP, None, NOW) == []


def test_only_time_missing_rule_fires_when_time_is_absent() -> None:
    errors = reminder_policy.validate(ReminderType.TOMORROW, None, NOW)

    assert _codes(errors) == [BookmarkErrorCode.TIME_MUST_BE_PROVIDED]
    error = errors[0]
    assert error.attribute == "reminder_at"
    assert error.params == {"reminder_type": "Next time I'm at my desktop"}
    assert error.full_message == (
        "Reminder at time must be provided for all reminders except "
        "'Next time I'm at my desktop'"
    )


@pytest.mark.parametrize(
    "reminder_at",
    [NOW, NOW - timedelta(seconds=1), NOW - timedelta(days=10)],
)
def test_past_or_current_time_is_rejected(reminder_at: datetime) -> None:
    errors = reminder_policy.validate(ReminderType.CUSTOM, reminder_at, NOW)

    assert _codes(errors) == [BookmarkErrorCode.CANNOT_SET_PAST_REMINDER]
    assert errors[0].attribute is None
    assert errors[0].full_message == "You cannot set a bookmark reminder in the past."


def test_time_is_checked_even_without_reminder_type() -> None:
    errors = reminder_policy.validate(None, NOW - timedelta(hours=1), NOW)

    assert _codes(errors) == [BookmarkErrorCode.CANNOT_SET_PAST_REMINDER]


def test_distant_future_is_rejected() -> None:
    errors = reminder_policy.validate(
        ReminderType.NEXT_MONTH, NOW + timedelta(days=366 * 11), NOW
    )

    assert _codes(errors) == [BookmarkErrorCode.CANNOT_SET_REMINDER_IN_DISTANT_FUTURE]


def test_ten_year_horizon_uses_calendar_years() -> None:
    # 2024-02-29 + 10년 -> 2034-02-28
    horizon = datetime(2034, 2, 28, 8, 30, tzinfo=timezone.utc)

    assert reminder_policy.validate(ReminderType.CUSTOM, horizon, NOW) == []
    assert _codes(
        reminder_policy.validate(
            ReminderType.CUSTOM, horizon + timedelta(seconds=1), NOW
        )
    ) == [BookmarkErrorCode.CANNOT_SET_REMINDER_IN_DISTANT_FUTURE]


def test_naive_datetimes_are_treated_as_utc() -> None:
    naive_future = datetime(2024, 2, 29, 9, 0)

    assert reminder_policy.validate(ReminderType.LATER_TODAY, naive_future, NOW) == []


def test_add_years_moves_leap_day_to_feb_28() -> None:
    assert reminder_policy.add_years(NOW, 1) == datetime(
        2025, 2, 28, 8, 30, tzinfo=timezone.utc
    )
    assert reminder_policy.add_years(NOW, 4) == datetime(
        2028, 2, 29, 8, 30, tzinfo=timezone.utc
    )


def test_reminder_type_requires_time() -> None:
    assert not ReminderType.AT_DESKTOP.requires_time
    assert all(t.requires_time for t in ReminderType if t is not ReminderType.AT_DESKTOP)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("tomorrow", ReminderType.TOMORROW),
        ("AT_DESKTOP", ReminderType.AT_DESKTOP),
        (" next_week ", ReminderType.NEXT_WEEK),
        (6, ReminderType.CUSTOM),
        ("0", ReminderType.AT_DESKTOP),
        (ReminderType.LATER_TODAY, ReminderType.LATER_TODAY),
    ],
)
def test_reminder_type_parse(raw: object, expected: ReminderType) -> None:
    assert ReminderType.parse(raw) is expected


@pytest.mark.parametrize("raw", ["someday", 42, True, None, 1.5])
def test_reminder_type_parse_rejects_unknown_values(raw: object) -> None:
    with pytest.raises(ValueError):
        ReminderType.parse(raw)
