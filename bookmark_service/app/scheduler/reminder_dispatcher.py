from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Callable, Protocol

from common.eventbus.config import get_brokers
from common.eventbus.core import Event, RetryDelays
from common.eventbus.helpers import new_json_event
from common.eventbus.kafka import DeliveryCallback, KafkaEventBus
from common.eventbus.topics import TOPIC_BOOKMARK_REMINDER
from common.events.bookmark import BookmarkEventType, BookmarkReminderDueEvent
from common.mongo.client import get_database

from ..config import ReminderDispatchConfig, load_config
from ..models.scheduled_job import BOOKMARK_REMINDER_JOB, ScheduledJob
from ..repositories.interfaces import ScheduledJobQueueInterface
from ..repositories.scheduled_job_repository import ScheduledJobRepository


logger = logging.getLogger(__name__)


_DISPATCHER_THREAD: threading.Thread | None = None
_DISPATCHER_STOP_EVENT: threading.Event | None = None


class EventPublisher(Protocol):
    def publish(
        self,
        topic: str,
        event: Event,
        on_delivery: DeliveryCallback | None = None,
    ) -> None:  # pragma: no cover - Protocol
        ...

    def flush(self, timeout: float = 10.0) -> int:  # pragma: no cover - Protocol
        ...


def retry_delay(attempts: int) -> timedelta:
    """attempts 번째 실패 이후 다시 꺼낼 때까지 기다릴 시간."""

    index = min(max(attempts, 1), len(RetryDelays)) - 1
    return timedelta(seconds=RetryDelays[index])


class ReminderDispatcher:
    """run_at 이 지난 bookmark_reminder 잡을 꺼내 BookmarkReminderDue 이벤트로 발행한다.

    - 잡을 꺼내는 것은 claim_due 로 원자적으로 처리된다.
    - 배치마다 flush 해서 Kafka 전송이 확인된 잡만 complete 로 닫는다.
      발행/전송에 실패했거나 제한 시간 안에 확인되지 않은 잡은 RetryDelays 만큼 미뤄서 release 한다.
    - 따라서 같은 잡이 두 번 이상 발행될 수 있다 (at-least-once).
    """

    def __init__(
        self,
        job_queue: ScheduledJobQueueInterface,
        event_bus: EventPublisher,
        *,
        config: ReminderDispatchConfig,
        source: str = "bookmark-service",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._job_queue = job_queue
        self._event_bus = event_bus
        self._config = config
        self._source = source
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def dispatch_due(self) -> int:
        """한 번의 폴링에서 최대 batch_size 개의 잡을 발행하고, 전송이 확인된 개수를 반환한다."""

        now = self._clock()
        in_flight: dict[str, ScheduledJob] = {}
        outcomes: dict[str, str | None] = {}

        for _ in range(self._config.batch_size):
            job = self._job_queue.claim_due(BOOKMARK_REMINDER_JOB, now)
            if job is None:
                break

            job_id = job.id or ""
            try:
                self._publish_reminder_due(
                    job, on_delivery=partial(outcomes.__setitem__, job_id)
                )
            except Exception as exc:  # noqa: BLE001
                self._release(job, str(exc))
                continue

            in_flight[job_id] = job

        if not in_flight:
            return 0

        self._event_bus.flush(self._config.delivery_timeout_seconds)

        delivered = 0
        for job_id, job in in_flight.items():
            if job_id not in outcomes:
                self._release(job, "delivery not confirmed before flush timeout")
                continue

            error = outcomes[job_id]
            if error is not None:
                self._release(job, error)
                continue

            if not self._job_queue.complete(job_id):
                logger.info(
                    "delivered bookmark reminder was cancelled while in flight",
                    extra={"job_id": job_id, "job_type": job.job_type},
                )
            delivered += 1

        if delivered:
            logger.info("dispatched %d bookmark reminder(s)", delivered)
        return delivered

    def _release(self, job: ScheduledJob, error: str) -> None:
        retry_at = self._clock() + retry_delay(job.attempts)
        released = self._job_queue.release(
            job.id or "",
            error,
            max_attempts=self._config.max_attempts,
            retry_at=retry_at,
        )
        logger.error(
            "failed to publish bookmark reminder (attempt %d/%d, now %s): %s",
            job.attempts,
            self._config.max_attempts,
            released.status.value if released is not None else "not released",
            error,
            extra={"job_id": job.id, "job_type": job.job_type},
        )

    def _publish_reminder_due(
        self, job: ScheduledJob, *, on_delivery: DeliveryCallback
    ) -> None:
        bookmark_id = job.payload.get("bookmark_id")
        if not bookmark_id:
            raise ValueError(f"scheduled job {job.id} has no bookmark_id in payload")

        event_id = str(uuid.uuid4())
        evt = BookmarkReminderDueEvent(
            id=event_id,
            type=BookmarkEventType.BOOKMARK_REMINDER_DUE,
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=self._source,
            version="1.0",
            job_id=job.id or "",
            bookmark_id=str(bookmark_id),
            run_at=job.run_at.isoformat(),
            attempt=job.attempts,
        )

        wrapped = new_json_event(payload=asdict(evt), event_id=event_id)
        self._event_bus.publish(
            TOPIC_BOOKMARK_REMINDER.base, wrapped, on_delivery=on_delivery
        )

        logger.info(
            "published BookmarkReminderDue event id=%s run_at=%s",
            event_id,
            evt.run_at,
            extra={"job_id": job.id, "bookmark_id": evt.bookmark_id},
        )


def _run_dispatcher_loop(stop_event: threading.Event) -> None:
    app_cfg = load_config()
    cfg = app_cfg.reminder_dispatch
    logger.info(
        "reminder dispatcher thread started (interval=%.0f seconds, batch=%d)",
        cfg.interval_seconds,
        cfg.batch_size,
    )

    job_queue = ScheduledJobRepository(get_database())
    bus = KafkaEventBus(get_brokers())
    dispatcher = ReminderDispatcher(
        job_queue, bus, config=cfg, source=app_cfg.service_name
    )

    try:
        while True:
            try:
                dispatcher.dispatch_due()
            except Exception:  # noqa: BLE001
                logger.exception("reminder dispatch failed")

            if stop_event.wait(cfg.interval_seconds):
                break
    finally:
        bus.close()
        logger.info("reminder dispatcher thread stopped")


def start_reminder_dispatcher() -> None:
    """리마인더 디스패처 스레드를 시작한다. 이미 실행 중이면 아무것도 하지 않는다."""

    global _DISPATCHER_THREAD, _DISPATCHER_STOP_EVENT

    if _DISPATCHER_THREAD and _DISPATCHER_THREAD.is_alive():
        return

    stop_event = threading.Event()
    thread = threading.Thread(
        target=_run_dispatcher_loop,
        args=(stop_event,),
        name="bookmark-reminder-dispatcher",
        daemon=True,
    )

    _DISPATCHER_STOP_EVENT = stop_event
    _DISPATCHER_THREAD = thread

    thread.start()
    logger.info("reminder dispatcher thread launched")


def stop_reminder_dispatcher() -> None:
    """리마인더 디스패처 스레드를 정지한다."""

    global _DISPATCHER_THREAD, _DISPATCHER_STOP_EVENT

    if _DISPATCHER_THREAD is None or _DISPATCHER_STOP_EVENT is None:
        return

    _DISPATCHER_STOP_EVENT.set()
    _DISPATCHER_THREAD.join(timeout=10.0)

    _DISPATCHER_THREAD = None
    _DISPATCHER_STOP_EVENT = None

    logger.info("reminder dispatcher thread stopped by shutdown")
