from __future__ import annotations

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.mongo.types import from_object_id, try_object_id

from .documents.bookmark_document import BookmarkDocument
from .interfaces import BookmarkRepositoryInterface
from ..exceptions import DuplicateBookmarkError
from ..models.bookmark import Bookmark


class BookmarkRepository(BookmarkRepositoryInterface):
    """bookmarks 컬렉션에 대한 MongoDB 접근 레이어.

    (user_code, post_id) 유니크 인덱스는 common.mongo.client.ensure_indexes 에서 생성한다.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["bookmarks"]

    def create(self, bookmark: Bookmark) -> Bookmark:
        payload = BookmarkDocument.from_domain(bookmark).to_mongo_record()
        try:
            result = self._col.insert_one(payload)
        except DuplicateKeyError as exc:
            # 동시 생성 경쟁에서 진 경우. 유니크 인덱스가 원자적으로 막아 준다.
            raise DuplicateBookmarkError(
                user_code=bookmark.user_code, post_id=bookmark.post_id
            ) from exc
        return bookmark.model_copy(update={"id": from_object_id(result.inserted_id)})

    def find_by_id(self, bookmark_id: str) -> Bookmark | None:
        oid = try_object_id(bookmark_id)
        if oid is None:
            return None

        raw = self._col.find_one({"_id": oid})
        if not raw:
            return None
        return BookmarkDocument.model_validate(raw).to_domain()

    def find_by_user_and_post(self, user_code: str, post_id: str) -> Bookmark | None:
        raw = self._col.find_one({"user_code": user_code, "post_id": post_id})
        if not raw:
            return None
        return BookmarkDocument.model_validate(raw).to_domain()

    def find_by_user_and_topic(self, user_code: str, topic_id: str) -> list[Bookmark]:
        cursor = self._col.find(
            {"user_code": user_code, "topic_id": topic_id},
            sort=[("created_at", 1), ("_id", 1)],
        )

        items: list[Bookmark] = []
        for raw in cursor:
            items.append(BookmarkDocument.model_validate(raw).to_domain())
        return items

    def delete(self, bookmark_id: str) -> bool:
        oid = try_object_id(bookmark_id)
        if oid is None:
            return False

        result = self._col.delete_one({"_id": oid})
        return result.deleted_count > 0
