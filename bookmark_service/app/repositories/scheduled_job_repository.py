"""scheduled_jobs 컬렉션 기반 잡 스케줄러.

- BookmarkManager 쪽에는 JobSchedulerInterface (enqueue_at / scheduled_for / cancel_scheduled_job)
- ReminderDispatcher 쪽에는 ScheduledJobQueueInterface (claim_due / complete / release)
를 제공한다. 상태 전이는 JobStatus 참고.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from pymongo import ReturnDocument
from pymongo.database import Database

from common.mongo.types import ensure_utc_datetime, from_object_id, try_object_id

from .documents.scheduled_job_document import ScheduledJobDocument
from .interfaces import JobSchedulerInterface, ScheduledJobQueueInterface
from ..models.scheduled_job import (
    PENDING_JOB_STATUSES,
    JobHandle,
    JobStatus,
    ScheduledJob,
)


logger = logging.getLogger(__name__)


def _payload_filter(payload: Mapping[str, Any]) -> dict[str, Any]:
    # payload 전체를 서브도큐먼트로 비교하면 키 순서에 민감하므로 필드 단위로 매칭한다.
    return {f"payload.{key}": value for key, value in payload.items()}


class ScheduledJobRepository(JobSchedulerInterface, ScheduledJobQueueInterface):
    """scheduled_jobs 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["scheduled_jobs"]

    # JobSchedulerInterface ------------------------------------------------
    def enqueue_at(
        self, run_at: datetime, job_type: str, payload: Mapping[str, Any]
    ) -> JobHandle:
        now = datetime.now(timezone.utc)
        job = ScheduledJob(
            job_type=job_type,
            payload=dict(payload),
            run_at=ensure_utc_datetime(run_at),
            created_at=now,
            updated_at=now,
        )
        record = ScheduledJobDocument.from_domain(job).to_mongo_record()
        result = self._col.insert_one(record)
        job.id = from_object_id(result.inserted_id)

        logger.debug(
            "scheduled job enqueued id=%s job_type=%s run_at=%s",
            job.id,
            job_type,
            job.run_at.isoformat(),
        )
        return job.to_handle()

    def scheduled_for(
        self, job_type: str, payload: Mapping[str, Any]
    ) -> list[JobHandle]:
        """아직 실행되지 않은 잡(scheduled, 또는 디스패처가 전송 중인 dispatched)을 반환한다."""

        query = {
            "job_type": job_type,
            "status": {"$in": [status.value for status in PENDING_JOB_STATUSES]},
            **_payload_filter(payload),
        }
        cursor = self._col.find(query, sort=[("run_at", 1)])
        return [
            ScheduledJobDocument.model_validate(raw).to_domain().to_handle()
            for raw in cursor
        ]

    def cancel_scheduled_job(self, job_type: str, payload: Mapping[str, Any]) -> int:
        """예약된 잡은 지우고, 디스패처가 잡고 있는 잡은 cancelled 로 표시한다.

        cancelled 잡은 release 되어도 scheduled 로 돌아가지 않는다.
        """

        base = {"job_type": job_type, **_payload_filter(payload)}
        deleted = self._col.delete_many(
            {**base, "status": JobStatus.SCHEDULED.value}
        ).deleted_count
        marked = self._col.update_many(
            {**base, "status": JobStatus.DISPATCHED.value},
            {
                "$set": {
                    "status": JobStatus.CANCELLED.value,
                    "updated_at": datetime.now(timezone.utc),
                }
            },
        ).modified_count

        cancelled = deleted + marked
        if cancelled:
            logger.debug(
                "cancelled %d job(s) (in flight: %d) job_type=%s payload=%r",
                cancelled,
                marked,
                job_type,
                dict(payload),
            )
        return cancelled

    # ScheduledJobQueueInterface -------------------------------------------
    def claim_due(self, job_type: str, now: datetime) -> ScheduledJob | None:
        """run_at 이 지난 잡 하나를 원자적으로 dispatched 상태로 바꾸고 반환한다.

        여러 디스패처가 같은 컬렉션을 폴링해도 같은 잡을 동시에 가져가지 않는다.
        """

        raw = self._col.find_one_and_update(
            {
                "job_type": job_type,
                "status": JobStatus.SCHEDULED.value,
                "run_at": {"$lte": ensure_utc_datetime(now)},
            },
            {
                "$set": {"status": JobStatus.DISPATCHED.value, "updated_at": now},
                "$inc": {"attempts": 1},
            },
            sort=[("run_at", 1), ("_id", 1)],
            return_document=ReturnDocument.AFTER,
        )
        if not raw:
            return None
        return ScheduledJobDocument.model_validate(raw).to_domain()

    def complete(self, job_id: str) -> bool:
        """전송이 확인된 잡을 delivered 로 표시한다. 그 사이 취소된 잡은 그대로 둔다."""

        oid = try_object_id(job_id)
        if oid is None:
            return False

        result = self._col.update_one(
            {"_id": oid, "status": JobStatus.DISPATCHED.value},
            {
                "$set": {
                    "status": JobStatus.DELIVERED.value,
                    "last_error": None,
                    "updated_at": datetime.now(timezone.utc),
                }
            },
        )
        return result.modified_count == 1

    def release(
        self,
        job_id: str,
        error: str,
        *,
        max_attempts: int,
        retry_at: datetime,
    ) -> ScheduledJob | None:
        """전송에 실패한 잡을 retry_at 에 다시 실행되도록 scheduled 로 되돌린다.

        - attempts 가 max_attempts 에 도달했으면 failed 로 표시하고 더 이상 꺼내지 않는다.
        - 아직 dispatched 인 잡만 되돌린다. 취소(cancelled)된 잡은 None 을 반환한다.
        """

        oid = try_object_id(job_id)
        if oid is None:
            return None

        raw = self._col.find_one({"_id": oid})
        if not raw:
            return None

        current = ScheduledJobDocument.model_validate(raw).to_domain()
        update: dict[str, Any] = {
            "last_error": error,
            "updated_at": datetime.now(timezone.utc),
        }
        if current.attempts >= max_attempts:
            update["status"] = JobStatus.FAILED.value
        else:
            update["status"] = JobStatus.SCHEDULED.value
            update["run_at"] = ensure_utc_datetime(retry_at)

        updated = self._col.find_one_and_update(
            {"_id": oid, "status": JobStatus.DISPATCHED.value},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            return None
        return ScheduledJobDocument.model_validate(updated).to_domain()
