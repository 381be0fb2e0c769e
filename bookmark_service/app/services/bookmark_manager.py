from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from pymongo.database import Database

from common.mongo.client import get_database
from common.mongo.types import parse_utc_datetime

from ..exceptions import (
    BookmarkNotFoundError,
    DuplicateBookmarkError,
    InvalidAccessError,
)
from ..models.bookmark import Actor, Bookmark, ReminderType
from ..models.scheduled_job import BOOKMARK_REMINDER_JOB
from ..repositories.bookmark_repository import BookmarkRepository
from ..repositories.interfaces import (
    BookmarkRepositoryInterface,
    JobSchedulerInterface,
    PostLookupInterface,
)
from ..repositories.post_repository import PostRepository
from ..repositories.scheduled_job_repository import ScheduledJobRepository
from . import reminder_policy
from .reminder_policy import BookmarkErrorCode, BookmarkValidationError


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class CreateBookmarkResult:
    """create 결과. bookmark 와 errors 중 정확히 하나만 채워진다."""

    bookmark: Bookmark | None = None
    errors: list[BookmarkValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.bookmark is not None and not self.errors

    @property
    def full_messages(self) -> list[str]:
        return [error.full_message for error in self.errors]


class BookmarkManager:
    """한 유저(actor)의 북마크 생성/삭제와 리마인더 잡 예약을 조율한다.

    - create: 입력 오류는 예외가 아니라 CreateBookmarkResult.errors 로 돌려준다.
      오류가 있으면 레코드 저장도 잡 예약도 하지 않는다.
    - destroy / destroy_for_topic: 존재하지 않거나 남의 북마크면 예외를 던지고 아무것도 바꾸지 않는다.
    - 저장소/스케줄러 장애는 감싸지 않고 그대로 전파한다. 재시도도 하지 않는다.
    """

    def __init__(
        self,
        actor: Actor,
        *,
        bookmark_repo: BookmarkRepositoryInterface,
        job_scheduler: JobSchedulerInterface,
        post_lookup: PostLookupInterface,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._actor = actor
        self._bookmark_repo = bookmark_repo
        self._job_scheduler = job_scheduler
        self._post_lookup = post_lookup
        self._clock = clock
        self.errors: list[BookmarkValidationError] = []

    def create(
        self,
        post_id: str,
        name: str | None = None,
        reminder_type: ReminderType | int | str | None = None,
        reminder_at: datetime | str | None = None,
    ) -> CreateBookmarkResult:
        """포스트를 북마크하고, 시각이 필요한 리마인더면 잡을 하나 예약한다."""

        self.errors = []
        user_code = self._actor.user_code

        # reminder_type/reminder_at 형식 오류는 호출 측 버그이므로 ValueError 를 그대로 던진다.
        parsed_type = (
            ReminderType.parse(reminder_type) if reminder_type is not None else None
        )
        parsed_at = parse_utc_datetime(reminder_at) if reminder_at is not None else None

        topic_id = self._post_lookup.resolve_topic_id(post_id)

        if self._bookmark_repo.find_by_user_and_post(user_code, post_id) is not None:
            return self._reject(
                [reminder_policy.build_error(BookmarkErrorCode.ALREADY_BOOKMARKED_POST)],
                post_id=post_id,
            )

        now = self._clock()
        errors = reminder_policy.validate(parsed_type, parsed_at, now)
        if errors:
            return self._reject(errors, post_id=post_id)

        timed = parsed_type is not None and parsed_type.requires_time
        bookmark = Bookmark(
            user_code=user_code,
            post_id=post_id,
            topic_id=topic_id,
            name=name,
            reminder_type=parsed_type,
            # 시각이 필요 없는 타입(at_desktop, 타입 없음)에는 reminder_at 을 저장하지 않는다.
            reminder_at=parsed_at if timed else None,
            created_at=now,
            updated_at=now,
        )

        try:
            created = self._bookmark_repo.create(bookmark)
        except DuplicateBookmarkError:
            return self._reject(
                [reminder_policy.build_error(BookmarkErrorCode.ALREADY_BOOKMARKED_POST)],
                post_id=post_id,
            )

        if timed and created.reminder_at is not None:
            handle = self._job_scheduler.enqueue_at(
                created.reminder_at,
                BOOKMARK_REMINDER_JOB,
                {"bookmark_id": created.id},
            )
            logger.info(
                "bookmark reminder scheduled job_id=%s run_at=%s",
                handle.id,
                created.reminder_at.isoformat(),
                extra={"user_code": user_code, "bookmark_id": created.id},
            )

        logger.info(
            "bookmark created post_id=%s topic_id=%s reminder_type=%s",
            post_id,
            topic_id,
            parsed_type.name.lower() if parsed_type is not None else None,
            extra={"user_code": user_code, "bookmark_id": created.id},
        )
        return CreateBookmarkResult(bookmark=created)

    def destroy(self, bookmark_id: str) -> None:
        """actor 소유의 북마크를 삭제한다. 예약된 리마인더 잡이 있으면 먼저 취소한다."""

        bookmark = self._bookmark_repo.find_by_id(bookmark_id)
        if bookmark is None:
            raise BookmarkNotFoundError(bookmark_id)

        if bookmark.user_code != self._actor.user_code:
            logger.warning(
                "bookmark destroy denied: owner mismatch",
                extra={"user_code": self._actor.user_code, "bookmark_id": bookmark_id},
            )
            raise InvalidAccessError(bookmark_id, self._actor.user_code)

        self._destroy(bookmark)

    def destroy_for_topic(self, topic_id: str) -> int:
        """토픽에 있는 actor 의 북마크를 모두 삭제하고 삭제된 개수를 반환한다.

        다른 유저의 북마크는 조회 단계에서 걸러지므로 건드리지 않는다.
        """

        bookmarks = self._bookmark_repo.find_by_user_and_topic(
            self._actor.user_code, topic_id
        )

        deleted = 0
        for bookmark in bookmarks:
            if self._destroy(bookmark):
                deleted += 1

        logger.info(
            "bookmarks destroyed for topic topic_id=%s deleted=%d",
            topic_id,
            deleted,
            extra={"user_code": self._actor.user_code, "topic_id": topic_id},
        )
        return deleted

    # 내부 util -------------------------------------------------------------
    def _destroy(self, bookmark: Bookmark) -> bool:
        # 저장소에서 읽어 온 북마크이므로 id 는 항상 채워져 있다.
        bookmark_id = bookmark.id or ""
        self._cancel_reminder(bookmark_id)

        removed = self._bookmark_repo.delete(bookmark_id)
        logger.info(
            "bookmark destroyed post_id=%s removed=%s had_reminder=%s",
            bookmark.post_id,
            removed,
            bookmark.has_scheduled_reminder,
            extra={"user_code": self._actor.user_code, "bookmark_id": bookmark_id},
        )
        return removed

    def _cancel_reminder(self, bookmark_id: str) -> None:
        # 북마크 레코드의 reminder_at 이 아니라 스케줄러 상태를 기준으로 판단한다.
        payload: dict[str, Any] = {"bookmark_id": bookmark_id}
        if not self._job_scheduler.scheduled_for(BOOKMARK_REMINDER_JOB, payload):
            return

        self._job_scheduler.cancel_scheduled_job(BOOKMARK_REMINDER_JOB, payload)
        logger.info(
            "bookmark reminder cancelled",
            extra={"user_code": self._actor.user_code, "bookmark_id": bookmark_id},
        )

    def _reject(
        self, errors: list[BookmarkValidationError], *, post_id: str
    ) -> CreateBookmarkResult:
        self.errors = list(errors)
        logger.info(
            "bookmark create rejected post_id=%s errors=%s",
            post_id,
            [error.code.value for error in errors],
            extra={"user_code": self._actor.user_code},
        )
        return CreateBookmarkResult(errors=list(errors))


def build_bookmark_manager(
    actor: Actor, database: Database | None = None
) -> BookmarkManager:
    """Mongo 구현체로 BookmarkManager 를 조립한다. database 가 없으면 전역 DB 를 사용한다."""

    db = database if database is not None else get_database()
    return BookmarkManager(
        actor,
        bookmark_repo=BookmarkRepository(db),
        job_scheduler=ScheduledJobRepository(db),
        post_lookup=PostRepository(db),
    )
