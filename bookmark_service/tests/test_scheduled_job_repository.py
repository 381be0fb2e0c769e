from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

from bson import ObjectId

from bookmark_service.app.models.scheduled_job import BOOKMARK_REMINDER_JOB, JobStatus
from bookmark_service.app.repositories.scheduled_job_repository import (
    ScheduledJobRepository,
)


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
PAYLOAD = {"bookmark_id": "bm-1"}


def _lookup(doc: dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for path, cond in query.items():
        value = _lookup(doc, path)
        if isinstance(cond, dict):
            if "$in" in cond and value not in cond["$in"]:
                return False
            if "$lte" in cond and (value is None or value > cond["$lte"]):
                return False
        elif value != cond:
            return False
    return True


class FakeCollection:
    """ScheduledJobRepository 가 쓰는 만큼만 흉내 낸 인메모리 컬렉션."""

    def __init__(self) -> None:
        self.docs: list[dict[str, Any]] = []

    def _apply(self, doc: dict[str, Any], update: dict[str, Any]) -> None:
        doc.update(update.get("$set", {}))
        for key, delta in update.get("$inc", {}).items():
            doc[key] = doc.get(key, 0) + delta

    def _select(
        self, query: dict[str, Any], sort: list[tuple[str, int]] | None = None
    ) -> list[dict[str, Any]]:
        found = [doc for doc in self.docs if _matches(doc, query)]
        for key, _direction in reversed(sort or []):
            found.sort(key=lambda d: d[key])
        return found

    def insert_one(self, record: dict[str, Any]) -> SimpleNamespace:
        doc = copy.deepcopy(record)
        doc["_id"] = ObjectId()
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def find(self, query: dict[str, Any], sort: list[tuple[str, int]] | None = None):
        return [copy.deepcopy(doc) for doc in self._select(query, sort)]

    def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        found = self._select(query)
        return copy.deepcopy(found[0]) if found else None

    def find_one_and_update(
        self,
        query: dict[str, Any],
        update: dict[str, Any],
        sort: list[tuple[str, int]] | None = None,
        return_document: Any = None,
    ) -> dict[str, Any] | None:
        found = self._select(query, sort)
        if not found:
            return None
        self._apply(found[0], update)
        return copy.deepcopy(found[0])

    def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        found = self._select(query)[:1]
        for doc in found:
            self._apply(doc, update)
        return SimpleNamespace(modified_count=len(found))

    def update_many(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        found = self._select(query)
        for doc in found:
            self._apply(doc, update)
        return SimpleNamespace(modified_count=len(found))

    def delete_many(self, query: dict[str, Any]) -> SimpleNamespace:
        found = self._select(query)
        self.docs = [doc for doc in self.docs if doc not in found]
        return SimpleNamespace(deleted_count=len(found))


def _build_repository() -> tuple[ScheduledJobRepository, FakeCollection]:
    collection = FakeCollection()
    return ScheduledJobRepository({"scheduled_jobs": collection}), collection  # type: ignore[arg-type]


def test_cancel_removes_job_that_is_still_scheduled() -> None:
    repo, collection = _build_repository()
    repo.enqueue_at(NOW + timedelta(hours=1), BOOKMARK_REMINDER_JOB, PAYLOAD)

    assert len(repo.scheduled_for(BOOKMARK_REMINDER_JOB, PAYLOAD)) == 1
    assert repo.cancel_scheduled_job(BOOKMARK_REMINDER_JOB, PAYLOAD) == 1
    assert collection.docs == []
    assert repo.cancel_scheduled_job(BOOKMARK_REMINDER_JOB, PAYLOAD) == 0


def test_job_cancelled_while_dispatching_is_not_rescheduled_on_release() -> None:
    repo, collection = _build_repository()
    repo.enqueue_at(NOW - timedelta(minutes=1), BOOKMARK_REMINDER_JOB, PAYLOAD)

    claimed = repo.claim_due(BOOKMARK_REMINDER_JOB, NOW)
    assert claimed is not None

    # 전송 중인 잡도 아직 실행되지 않은 잡으로 보고 취소한다.
    assert len(repo.scheduled_for(BOOKMARK_REMINDER_JOB, PAYLOAD)) == 1
    assert repo.cancel_scheduled_job(BOOKMARK_REMINDER_JOB, PAYLOAD) == 1

    released = repo.release(
        claimed.id or "",
        "broker down",
        max_attempts=5,
        retry_at=NOW + timedelta(minutes=1),
    )

    assert released is None
    assert repo.scheduled_for(BOOKMARK_REMINDER_JOB, PAYLOAD) == []
    assert collection.docs[0]["status"] == JobStatus.CANCELLED.value
    assert repo.claim_due(BOOKMARK_REMINDER_JOB, NOW + timedelta(hours=1)) is None


def test_release_pushes_run_at_forward_so_job_is_not_reclaimed_in_same_poll() -> None:
    repo, _ = _build_repository()
    repo.enqueue_at(NOW - timedelta(minutes=1), BOOKMARK_REMINDER_JOB, PAYLOAD)
    claimed = repo.claim_due(BOOKMARK_REMINDER_JOB, NOW)
    assert claimed is not None

    released = repo.release(
        claimed.id or "",
        "broker down",
        max_attempts=5,
        retry_at=NOW + timedelta(minutes=1),
    )

    assert released is not None
    assert released.status is JobStatus.SCHEDULED
    assert released.attempts == 1
    assert released.run_at == NOW + timedelta(minutes=1)
    assert repo.claim_due(BOOKMARK_REMINDER_JOB, NOW) is None
    assert repo.claim_due(BOOKMARK_REMINDER_JOB, NOW + timedelta(minutes=1)) is not None


def test_release_marks_job_failed_after_max_attempts() -> None:
    repo, _ = _build_repository()
    repo.enqueue_at(NOW - timedelta(minutes=1), BOOKMARK_REMINDER_JOB, PAYLOAD)
    claimed = repo.claim_due(BOOKMARK_REMINDER_JOB, NOW)
    assert claimed is not None

    released = repo.release(
        claimed.id or "", "broker down", max_attempts=1, retry_at=NOW
    )

    assert released is not None
    assert released.status is JobStatus.FAILED
    assert released.last_error == "broker down"


def test_completed_job_is_no_longer_pending() -> None:
    repo, collection = _build_repository()
    repo.enqueue_at(NOW - timedelta(minutes=1), BOOKMARK_REMINDER_JOB, PAYLOAD)
    claimed = repo.claim_due(BOOKMARK_REMINDER_JOB, NOW)
    assert claimed is not None

    assert repo.complete(claimed.id or "") is True

    assert collection.docs[0]["status"] == JobStatus.DELIVERED.value
    assert repo.scheduled_for(BOOKMARK_REMINDER_JOB, PAYLOAD) == []
    assert repo.cancel_scheduled_job(BOOKMARK_REMINDER_JOB, PAYLOAD) == 0
