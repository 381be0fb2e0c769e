from __future__ import annotations

from datetime import datetime

from pydantic import field_validator

from common.mongo.types import BaseDocument, ensure_utc_datetime, from_object_id
from ...models.bookmark import Bookmark


class BookmarkDocument(BaseDocument):
    """MongoDB bookmarks 컬렉션 도큐먼트 모델.

    reminder_type 은 ReminderType 의 정수 값으로 저장한다.
    """

    user_code: str
    post_id: str
    topic_id: str
    name: str | None = None
    reminder_type: int | None = None
    reminder_at: datetime | None = None

    @field_validator("reminder_at")
    @classmethod
    def _reminder_at_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return ensure_utc_datetime(value)

    @classmethod
    def from_domain(cls, bookmark: Bookmark) -> "BookmarkDocument":
        data = {
            "user_code": bookmark.user_code,
            "post_id": bookmark.post_id,
            "topic_id": bookmark.topic_id,
            "name": bookmark.name,
            "reminder_type": (
                int(bookmark.reminder_type)
                if bookmark.reminder_type is not None
                else None
            ),
            "reminder_at": bookmark.reminder_at,
            "created_at": bookmark.created_at,
            "updated_at": bookmark.updated_at,
        }
        return cls.model_validate(data)

    def to_domain(self) -> Bookmark:
        return Bookmark(
            id=from_object_id(self.id),
            user_code=self.user_code,
            post_id=self.post_id,
            topic_id=self.topic_id,
            name=self.name,
            reminder_type=self.reminder_type,
            reminder_at=self.reminder_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
