from __future__ import annotations

import time
from typing import Any, Mapping

from .core import Event, RetryDelays


def new_json_event(
    payload: Mapping[str, Any],
    *,
    max_retry: int | None = None,
    event_id: str | None = None,
) -> Event:
    """dict 페이로드를 Event 로 감싼다.

    - id가 비어 있으면 고해상도 타임스탬프 기반 문자열을 생성한다.
    - max_retry가 1~len(RetryDelays) 범위를 벗어나면 기본값(len(RetryDelays))을 사용한다.
    """
    if max_retry is None or max_retry <= 0 or max_retry > len(RetryDelays):
        max_retry = len(RetryDelays)

    if not event_id:
        event_id = str(time.time_ns())

    return Event(id=event_id, payload=dict(payload), retry=0, max_retry=max_retry)
