# forum/api/handlers/post_handlers.py
"""
Write paths for posts, comments, replies and upvotes.

Each operation establishes the caller's identity first; owner-only operations
hand the ownership check to the repository so that it runs inside the same
transaction as the write and before anything is modified.
"""
from functools import wraps
from typing import Any, Dict, Optional

from forum.api.auth.context import RequestContext
from forum.api.errors import ForumError, Unauthorized, ValidationError
from forum.api.permissions import log_mutation, require_authenticated, require_owner


def audited(mutation_name: str):
    def decorator(func):
        @wraps(func)
        def wrapper(repository, ctx: RequestContext, *args, **kwargs):
            try:
                result = func(repository, ctx, *args, **kwargs)
            except Unauthorized as e:
                log_mutation(ctx, mutation_name, "denied", e.reason)
                raise
            except ForumError as e:
                log_mutation(ctx, mutation_name, "failed", e.code)
                raise
            log_mutation(ctx, mutation_name, "success")
            return result
        return wrapper
    return decorator


def _required_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def _owner_check(ctx: RequestContext):
    def authorize(post: Dict[str, Any]):
        require_owner(post["author_id"], ctx.subject_id)
    return authorize


@audited("addPost")
def add_post(repository, ctx: RequestContext, title: str, description: Optional[str] = None,
             category: Optional[str] = None, status: Optional[str] = None) -> Dict[str, Any]:
    require_authenticated(ctx)
    return repository.create_post(
        author_id=ctx.subject_id,
        title=_required_text(title, "title"),
        description=description,
        category=category,
        status=status,
    )


@audited("updatePost")
def update_post(repository, ctx: RequestContext, post_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    require_authenticated(ctx)
    changes = {key: value for key, value in changes.items() if value is not None}
    if "title" in changes:
        changes["title"] = _required_text(changes["title"], "title")
    return repository.update_post(post_id, changes, authorize=_owner_check(ctx))


@audited("deletePost")
def delete_post(repository, ctx: RequestContext, post_id: str) -> Dict[str, Any]:
    require_authenticated(ctx)
    return repository.delete_post_cascade(post_id, authorize=_owner_check(ctx))


@audited("toggleUpVote")
def toggle_upvote(repository, ctx: RequestContext, post_id: str) -> Dict[str, Any]:
    require_authenticated(ctx)
    return repository.toggle_upvote(post_id, ctx.subject_id)


@audited("addComment")
def add_comment(repository, ctx: RequestContext, post_id: str, content: str) -> Dict[str, Any]:
    require_authenticated(ctx)
    return repository.create_comment(post_id, ctx.subject_id, _required_text(content, "content"))


@audited("addReply")
def add_reply(repository, ctx: RequestContext, comment_id: str, content: str) -> Dict[str, Any]:
    require_authenticated(ctx)
    return repository.create_reply(comment_id, ctx.subject_id, _required_text(content, "content"))
