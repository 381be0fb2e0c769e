from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Protocol

from ..models.bookmark import Bookmark
from ..models.scheduled_job import JobHandle, ScheduledJob


class BookmarkRepositoryInterface(Protocol):
    """BookmarkRepository가 따라야 할 최소한의 계약.

    - user_code + post_id 조합으로 유니크하게 북마크를 관리한다.
    - 중복 insert 는 DuplicateBookmarkError 로 거부해야 한다 (원자적으로).
    """

    def create(self, bookmark: Bookmark) -> Bookmark:  # pragma: no cover - Protocol
        ...

    def find_by_id(
        self, bookmark_id: str
    ) -> Bookmark | None:  # pragma: no cover - Protocol
        ...

    def find_by_user_and_post(
        self, user_code: str, post_id: str
    ) -> Bookmark | None:  # pragma: no cover - Protocol
        ...

    def find_by_user_and_topic(
        self, user_code: str, topic_id: str
    ) -> list[Bookmark]:  # pragma: no cover - Protocol
        ...

    def delete(self, bookmark_id: str) -> bool:  # pragma: no cover - Protocol
        ...


class JobSchedulerInterface(Protocol):
    """외부 잡 스케줄러 계약.

    잡은 job_type + payload 로 식별된다. at-least-once 로 실행되며,
    scheduled_for 는 아직 실행되지 않은(전송 확인 전) 잡을 모두 돌려준다.
    cancel_scheduled_job 은 예약된 잡이 없어도 에러 없이 0 을 반환해야 한다.
    """

    def enqueue_at(
        self, run_at: datetime, job_type: str, payload: Mapping[str, Any]
    ) -> JobHandle:  # pragma: no cover - Protocol
        ...

    def scheduled_for(
        self, job_type: str, payload: Mapping[str, Any]
    ) -> list[JobHandle]:  # pragma: no cover - Protocol
        ...

    def cancel_scheduled_job(
        self, job_type: str, payload: Mapping[str, Any]
    ) -> int:  # pragma: no cover - Protocol
        ...


class ScheduledJobQueueInterface(Protocol):
    """디스패처가 사용하는 잡 큐 계약 (예약 잡을 꺼내고 되돌리는 쪽)."""

    def claim_due(
        self, job_type: str, now: datetime
    ) -> ScheduledJob | None:  # pragma: no cover - Protocol
        ...

    def complete(self, job_id: str) -> bool:  # pragma: no cover - Protocol
        ...

    def release(
        self,
        job_id: str,
        error: str,
        *,
        max_attempts: int,
        retry_at: datetime,
    ) -> ScheduledJob | None:  # pragma: no cover - Protocol
        ...


class PostLookupInterface(Protocol):
    """포스트가 속한 토픽을 조회한다. 포스트 존재 여부는 상위에서 보장한다."""

    def resolve_topic_id(self, post_id: str) -> str:  # pragma: no cover - Protocol
        ...
