from __future__ import annotations

from pymongo.database import Database

from common.mongo.types import try_object_id

from .interfaces import PostLookupInterface


class PostRepository(PostLookupInterface):
    """posts 컬렉션 읽기 전용 접근 레이어. 북마크 생성 시 topic_id 해석에만 사용한다."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["posts"]

    def resolve_topic_id(self, post_id: str) -> str:
        oid = try_object_id(post_id)
        query = {"_id": oid} if oid is not None else {"_id": post_id}

        raw = self._col.find_one(query, {"topic_id": 1})
        # 포스트 존재 여부는 상위 레이어에서 검증하므로 여기서 없으면 호출 측 버그다.
        if not raw or raw.get("topic_id") is None:
            raise LookupError(f"post not found or has no topic: {post_id}")
        return str(raw["topic_id"])
