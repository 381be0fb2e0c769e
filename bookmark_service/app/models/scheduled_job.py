"""예약 잡 도메인 모델.

잡은 (job_type, payload) 로 식별되며, run_at 시각 이후 디스패처가 at-least-once 로 꺼내 간다.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel


BOOKMARK_REMINDER_JOB = "bookmark_reminder"


class JobStatus(StrEnum):
    """scheduled -> dispatched -> delivered 가 정상 흐름이다.

    dispatched 는 디스패처가 잡고 있는(전송 확인 전) 상태이고,
    전송 실패 시 scheduled 로 돌아가거나 재시도를 소진하면 failed 가 된다.
    전송 확인 전에 취소되면 cancelled 로 남고 다시 scheduled 로 돌아가지 않는다.
    """

    SCHEDULED = "scheduled"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


# 아직 실행되지 않은 잡. 취소 대상이 된다.
PENDING_JOB_STATUSES: tuple[JobStatus, ...] = (JobStatus.SCHEDULED, JobStatus.DISPATCHED)


class ScheduledJob(BaseModel):
    """scheduled_jobs 컬렉션의 잡 레코드."""

    id: str | None = None
    job_type: str
    payload: dict[str, Any]
    run_at: datetime
    status: JobStatus = JobStatus.SCHEDULED
    attempts: int = 0
    last_error: str | None = None
    created_at: datetime
    updated_at: datetime

    def to_handle(self) -> "JobHandle":
        return JobHandle(
            id=self.id or "",
            job_type=self.job_type,
            payload=dict(self.payload),
            run_at=self.run_at,
        )


class JobHandle(BaseModel):
    """예약된 잡을 외부(BookmarkManager 등)에 노출할 때 사용하는 식별 정보."""

    id: str
    job_type: str
    payload: dict[str, Any]
    run_at: datetime
