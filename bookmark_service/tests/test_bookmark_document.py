from __future__ import annotations

from datetime import datetime, timedelta, timezone

from bson import ObjectId

from bookmark_service.app.models.bookmark import Bookmark, ReminderType
from bookmark_service.app.repositories.documents.bookmark_document import (
    BookmarkDocument,
)


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_record_stores_reminder_type_as_int_and_omits_empty_fields() -> None:
    bookmark = Bookmark(
        user_code="user-001",
        post_id="post-1",
        topic_id="topic-1",
        reminder_type=ReminderType.AT_DESKTOP,
        created_at=NOW,
        updated_at=NOW,
    )

    record = BookmarkDocument.from_domain(bookmark).to_mongo_record()

    assert record["reminder_type"] == 0
    assert "reminder_at" not in record
    assert "name" not in record
    assert "_id" not in record


def test_raw_mongo_document_is_converted_to_domain() -> None:
    oid = ObjectId()
    naive_reminder_at = (NOW + timedelta(days=1)).replace(tzinfo=None)
    raw = {
        "_id": oid,
        "user_code": "user-001",
        "post_id": "post-1",
        "topic_id": "topic-1",
        "reminder_type": 3,
        "reminder_at": naive_reminder_at,
        "created_at": NOW.replace(tzinfo=None),
        "updated_at": NOW.replace(tzinfo=None),
    }

    bookmark = BookmarkDocument.model_validate(raw).to_domain()

    assert bookmark.id == str(oid)
    assert bookmark.reminder_type is ReminderType.TOMORROW
    assert bookmark.reminder_at == NOW + timedelta(days=1)
    assert bookmark.created_at.tzinfo is not None
    assert bookmark.has_scheduled_reminder
