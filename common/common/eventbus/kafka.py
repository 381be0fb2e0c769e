from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Callable

from confluent_kafka import KafkaException, Producer

from .config import get_message_max_bytes
from .core import Event

logger = logging.getLogger(__name__)


# 전송 결과 콜백. 성공이면 None, 실패면 에러 문자열을 받는다.
DeliveryCallback = Callable[[str | None], None]


class KafkaEventBus:
    """Kafka 기반 EventBus 발행 구현.

    - 메시지 key 는 이벤트 id 이므로 같은 이벤트의 재발행은 같은 파티션으로 간다.
    - produce 는 비동기이다. 전송 결과가 필요하면 on_delivery 를 넘기고 flush 한다.
      콜백은 poll/flush 를 호출한 스레드에서 실행된다.
    """

    def __init__(self, brokers: str) -> None:
        conf: dict[str, object] = {"bootstrap.servers": brokers}
        max_bytes = get_message_max_bytes()
        if max_bytes is not None:
            conf["message.max.bytes"] = max_bytes
        self._producer = Producer(conf)
        self._brokers = brokers

    def close(self) -> None:
        self.flush()

    def flush(self, timeout: float = 10.0) -> int:
        """버퍼에 남은 메시지를 전송하고, 전송되지 못한 메시지 수를 반환한다."""
        remaining = self._producer.flush(timeout)
        if remaining:
            logger.warning("%d kafka messages were not delivered before flush timeout", remaining)
        return remaining

    # 발행 -----------------------------------------------------------------
    def publish(
        self,
        topic: str,
        event: Event,
        on_delivery: DeliveryCallback | None = None,
    ) -> None:
        payload = json.dumps(asdict(event), ensure_ascii=False, default=str).encode(
            "utf-8"
        )

        def _delivery_callback(err, msg) -> None:  # type: ignore[no-untyped-def]
            if err is not None:
                logger.error("failed to deliver message to %s: %s", msg.topic(), err)
            if on_delivery is not None:
                on_delivery(None if err is None else str(err))

        try:
            self._producer.produce(
                topic=topic,
                value=payload,
                key=event.id.encode("utf-8"),
                callback=_delivery_callback,
            )
        except BufferError:
            # 로컬 큐가 가득 찬 경우: 한 번 비우고 재시도한다.
            logger.warning("kafka producer queue is full, polling before retry")
            self._producer.poll(1.0)
            self._producer.produce(
                topic=topic,
                value=payload,
                key=event.id.encode("utf-8"),
                callback=_delivery_callback,
            )
        except KafkaException:
            logger.exception("failed to produce event %s to %s", event.id, topic)
            raise
        self._producer.poll(0)
