from __future__ import annotations

import logging
import threading
from typing import Optional, cast

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from .config import (
    get_mongo_db_name,
    get_mongo_uri,
    get_server_selection_timeout_ms,
)


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI 에서 URI 를 읽어온다.
    - ping 으로 연결을 검증한다.
    - URI 에 기본 데이터베이스가 포함되어 있지 않으면 에러를 발생시킨다.
    - bookmarks / scheduled_jobs 컬렉션에 필요한 인덱스를 한 번만 생성한다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        uri = get_mongo_uri()
        client = MongoClient(
            uri,
            tz_aware=True,
            serverSelectionTimeoutMS=get_server_selection_timeout_ms(),
        )

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        # 사용할 DB 이름 결정: MONGO_DB_NAME 우선, 없으면 URI의 기본 DB 사용
        db_name = get_mongo_db_name()
        try:
            if db_name:
                db = client[db_name]
            else:
                db = client.get_default_database()
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        _client = client
        _db = db

        try:
            ensure_indexes(_db)
        except Exception as exc:  # noqa: BLE001
            # 유니크 인덱스가 없으면 중복 북마크를 막을 수 없으므로 치명적 오류로 간주한다.
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            raise

        safe_db = cast(Database, _db)
        logger.info("MongoDB connected and indexes ensured (db=%s)", safe_db.name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다."""

    global _db

    if _db is None:
        get_client()
    assert (
        _db is not None
    )  # get_client 에서 _db 를 초기화하지 못했다면 예외가 이미 발생했어야 한다.
    return _db


def close_client() -> None:
    """전역 MongoClient 를 닫는다. 프로세스 종료 시 호출된다."""

    global _client, _db

    with _lock:
        if _client is not None:
            _client.close()
        _client = None
        _db = None


def ensure_indexes(db: Database) -> None:
    """필수 인덱스를 생성한다.

    중복 생성해도 MongoDB 가 처리하므로 idempotent 하다.
    """

    bookmarks = db["bookmarks"]

    # 유저당 포스트 하나에 북마크 하나. 동시 생성 경쟁은 이 인덱스가 막는다.
    bookmarks.create_index(
        [("user_code", ASCENDING), ("post_id", ASCENDING)],
        name="uniq_user_code_post_id",
        unique=True,
    )

    bookmarks.create_index(
        [("user_code", ASCENDING), ("topic_id", ASCENDING)],
        name="idx_user_code_topic_id",
    )

    jobs = db["scheduled_jobs"]

    jobs.create_index(
        [
            ("job_type", ASCENDING),
            ("payload.bookmark_id", ASCENDING),
            ("status", ASCENDING),
        ],
        name="idx_job_type_bookmark_id_status",
    )

    # 디스패처 폴링: status=scheduled 이면서 run_at 이 지난 잡
    jobs.create_index(
        [("status", ASCENDING), ("run_at", ASCENDING)],
        name="idx_status_run_at",
    )
