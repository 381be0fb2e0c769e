from __future__ import annotations

import logging
import signal
import threading

from common.logger import setup_logger
from common.mongo.client import close_client, get_database

from .scheduler.reminder_dispatcher import (
    start_reminder_dispatcher,
    stop_reminder_dispatcher,
)


logger = logging.getLogger(__name__)


def main() -> None:
    setup_logger(name="bookmark-service")
    logger.info("bookmark-service reminder dispatcher starting up")

    # 연결/인덱스 문제는 스레드를 띄우기 전에 드러나도록 먼저 초기화한다.
    get_database()

    shutdown = threading.Event()

    def _signal_handler(signum, frame) -> None:  # type: ignore[unused-argument]
        logger.info("received signal %s, shutting down bookmark-service...", signum)
        shutdown.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    start_reminder_dispatcher()
    try:
        while not shutdown.wait(1.0):
            pass
    finally:
        stop_reminder_dispatcher()
        close_client()


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
