from __future__ import annotations

from typing import Any

from common.mongo.types import BaseDocument, MongoDateTime, from_object_id
from ...models.scheduled_job import JobStatus, ScheduledJob


class ScheduledJobDocument(BaseDocument):
    """MongoDB scheduled_jobs 컬렉션 도큐먼트 모델."""

    job_type: str
    payload: dict[str, Any]
    run_at: MongoDateTime
    status: str = JobStatus.SCHEDULED.value
    attempts: int = 0
    last_error: str | None = None

    @classmethod
    def from_domain(cls, job: ScheduledJob) -> "ScheduledJobDocument":
        data = {
            "job_type": job.job_type,
            "payload": dict(job.payload),
            "run_at": job.run_at,
            "status": job.status.value,
            "attempts": job.attempts,
            "last_error": job.last_error,
            "created_at": job.created_at,
            "updated_at": job.updated_at,
        }
        return cls.model_validate(data)

    def to_domain(self) -> ScheduledJob:
        return ScheduledJob(
            id=from_object_id(self.id),
            job_type=self.job_type,
            payload=dict(self.payload),
            run_at=self.run_at,
            status=JobStatus(self.status),
            attempts=self.attempts,
            last_error=self.last_error,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
