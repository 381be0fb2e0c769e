from __future__ import annotations

from .core import Topic


TOPIC_BOOKMARK_REMINDER = Topic("bookmark-service.bookmark.reminder")
