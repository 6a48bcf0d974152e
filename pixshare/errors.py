from __future__ import annotations

# Detail returned for a missing post on single-post reads.
POST_NOT_FOUND = "Post Not Found!"


class PixshareError(RuntimeError):
    """Base class for errors raised by the service layer."""


class NotFoundError(PixshareError):
    """Raised when a post, user or comment does not exist."""


class PostNotFoundError(NotFoundError):
    def __init__(self, post_id: str) -> None:
        super().__init__(f"Post with ID '{post_id}' not found")
        self.post_id = post_id


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User with ID '{user_id}' not found")
        self.user_id = user_id


class CommentNotFoundError(NotFoundError):
    def __init__(self, comment_id: str) -> None:
        super().__init__(f"Comment with ID '{comment_id}' not found")
        self.comment_id = comment_id


class UnauthorizedError(PixshareError):
    """Raised when the requester does not own the post being changed."""


class StoreError(PixshareError):
    """Raised when reading or writing documents fails."""


class BlobStoreError(StoreError):
    """Raised when uploading or deleting media fails."""
