from __future__ import annotations


class BookmarkServiceError(Exception):
    """Base exception for all bookmark-service errors."""


class BookmarkNotFoundError(BookmarkServiceError):
    """The requested bookmark does not exist."""

    def __init__(self, bookmark_id: str) -> None:
        super().__init__(f"bookmark not found: {bookmark_id}")
        self.bookmark_id = bookmark_id


class InvalidAccessError(BookmarkServiceError):
    """The actor does not own the bookmark it tried to modify."""

    def __init__(self, bookmark_id: str, user_code: str) -> None:
        super().__init__(
            f"user {user_code} is not allowed to modify bookmark {bookmark_id}"
        )
        self.bookmark_id = bookmark_id
        self.user_code = user_code


class DuplicateBookmarkError(BookmarkServiceError):
    """The store rejected an insert because (user_code, post_id) already exists."""

    def __init__(self, user_code: str, post_id: str) -> None:
        super().__init__(f"bookmark already exists: user={user_code} post={post_id}")
        self.user_code = user_code
        self.post_id = post_id
