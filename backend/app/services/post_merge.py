"""Combine a stored post with an incoming partial update."""

from backend.app.models.post import NewPost, Post


def merge_posts(existing: Post, incoming: NewPost) -> Post:
    """Return *existing* with its content replaced by *incoming*'s.

    ``id`` and ``created_at`` always come from *existing*; any ``id`` on
    *incoming* is ignored.  ``updated_at`` is carried over unchanged and is
    refreshed by the repository when the result is persisted.
    """
    return existing.model_copy(update={"content": incoming.content})
