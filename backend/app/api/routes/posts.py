"""The post resource: list, read, create, update and delete.

Reads are anonymous; every mutating route runs :func:`require_operator`
first.  Errors are raised as :class:`ApiError` and rendered by the app-level
handler, never formatted here.
"""

import html
import logging
import uuid

from fastapi import APIRouter, Depends, Header, Response
from fastapi.responses import HTMLResponse, JSONResponse

from backend.app.api.deps import get_post_repository, read_post_body, require_operator
from backend.app.core.errors import ApiError
from backend.app.core.logging import EVENT_POST_NOT_MODIFIED, log_event
from backend.app.core.settings import settings
from backend.app.models.post import NewPost, Post
from backend.app.services.conditional import is_not_modified, validators_for
from backend.app.services.post_merge import merge_posts
from backend.app.services.post_repository import PostRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_post_id(raw: str) -> uuid.UUID:
    """A path segment that is not a UUID cannot name a post."""
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise ApiError.not_found() from None


def _location(post: Post) -> dict[str, str]:
    return {"Location": f"/{post.id}"}


def _render_index(posts: list[Post]) -> str:
    articles = "\n".join(
        "<article>"
        f"<p>{html.escape(p.content)}</p>"
        f'<span class="created_at">{p.created_at.isoformat()}</span>'
        "</article>"
        for p in posts
    )
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en"><head><meta charset="utf-8">'
        "<title>Hive</title></head>"
        f'<body><main id="main">\n{articles}\n</main></body></html>'
    )


@router.get("/", response_class=HTMLResponse)
def list_recent(repo: PostRepository = Depends(get_post_repository)) -> HTMLResponse:
    """Render the most recently updated posts, newest first."""
    return HTMLResponse(_render_index(repo.recent(settings.recent_limit)))


@router.post(
    "/new",
    status_code=201,
    dependencies=[Depends(require_operator)],
)
def create_post(
    incoming: NewPost = Depends(read_post_body),
    repo: PostRepository = Depends(get_post_repository),
) -> Response:
    """Persist a new post and point at it with ``Location``."""
    stored = repo.persist(incoming)
    return Response(status_code=201, headers=_location(stored))


@router.get("/{post_id}")
def read_post(
    post_id: str,
    if_none_match: str | None = Header(default=None),
    if_modified_since: str | None = Header(default=None),
    repo: PostRepository = Depends(get_post_repository),
) -> Response:
    """Return one post with ETag/Last-Modified, or 304 if the client copy is current."""
    post = repo.hydrate(_parse_post_id(post_id))
    if post is None:
        raise ApiError.not_found()

    validators = validators_for(post)
    if is_not_modified(
        validators,
        if_none_match=if_none_match,
        if_modified_since=if_modified_since,
    ):
        log_event(logger, "info", EVENT_POST_NOT_MODIFIED, post_id=post.id)
        return Response(status_code=304, headers=validators.headers())

    return JSONResponse(
        content=post.model_dump(mode="json"),
        headers=validators.headers(),
    )


@router.put(
    "/{post_id}",
    dependencies=[Depends(require_operator)],
    responses={201: {"description": "Created"}, 204: {"description": "Updated"}},
)
def update_post(
    post_id: str,
    incoming: NewPost = Depends(read_post_body),
    repo: PostRepository = Depends(get_post_repository),
) -> Response:
    """Overwrite the content of an existing post, or create it under this id.

    The path id is authoritative; an ``id`` in the body is ignored.
    Concurrent writers to the same id are serialized by the store and the
    last commit wins.
    """
    target_id = _parse_post_id(post_id)
    existing = repo.hydrate(target_id)
    if existing is not None:
        repo.persist(merge_posts(existing, incoming))
        return Response(status_code=204)

    stored = repo.persist(incoming.model_copy(update={"id": target_id}))
    return Response(status_code=201, headers=_location(stored))


@router.delete(
    "/{post_id}",
    status_code=204,
    dependencies=[Depends(require_operator)],
)
def delete_post(
    post_id: str,
    repo: PostRepository = Depends(get_post_repository),
) -> Response:
    """Remove an existing post; unknown ids are 404."""
    post = repo.hydrate(_parse_post_id(post_id))
    if post is None:
        raise ApiError.not_found()
    repo.delete(post)
    return Response(status_code=204)
