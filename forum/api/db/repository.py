# forum/api/db/repository.py
"""
Persistence collaborator consumed by the resolvers and REST handlers.

Every public method runs inside its own ``session_scope`` and returns plain
dict snapshots, so nothing handed to the GraphQL layer is bound to a session.
Multi-step writes (cascade delete, upvote toggle, owner-checked update) accept
an ``authorize`` callable that is invoked with the freshly read snapshot before
anything is written; if it raises, the transaction is rolled back.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from forum.api.db.models import Comment, Post, Reply, Role, User, post_upvotes
from forum.api.db.session import session_scope
from forum.api.errors import Conflict, NotFound, ValidationError
from forum.api.utils.logger import write_log

Snapshot = Dict[str, Any]
Authorizer = Callable[[Snapshot], None]

DEFAULT_SORT = "dateDesc"

# sort key -> (ordering column name, direction)
SORT_ORDERINGS = {
    "dateDesc": ("created_at", "desc"),
    "dateAsc": ("created_at", "asc"),
    "upVotesDesc": ("up_votes", "desc"),
    "upVotesAsc": ("up_votes", "asc"),
    "commentCountDesc": ("comment_count", "desc"),
    "commentCountAsc": ("comment_count", "asc"),
}

UPDATABLE_POST_FIELDS = ("title", "description", "category", "status")


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands back naive values; every stored timestamp is UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def user_snapshot(user: User) -> Snapshot:
    return {
        "id": user.id,
        "email": user.email,
        "password": user.password,
        "firstname": user.firstname,
        "lastname": user.lastname,
        "profile_img": user.profile_img,
        "role": Role(user.role).value,
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }


def post_snapshot(post: Post) -> Snapshot:
    return {
        "id": post.id,
        "title": post.title,
        "description": post.description,
        "category": post.category,
        "status": post.status,
        "up_votes": post.up_votes,
        "created_at": _iso(post.created_at),
        "updated_at": _iso(post.updated_at),
        "author_id": post.author_id,
    }


def comment_snapshot(comment: Comment) -> Snapshot:
    return {
        "id": comment.id,
        "content": comment.content,
        "created_at": _iso(comment.created_at),
        "updated_at": _iso(comment.updated_at),
        "author_id": comment.author_id,
        "post_id": comment.post_id,
    }


def reply_snapshot(reply: Reply) -> Snapshot:
    return {
        "id": reply.id,
        "content": reply.content,
        "created_at": _iso(reply.created_at),
        "updated_at": _iso(reply.updated_at),
        "author_id": reply.author_id,
        "comment_id": reply.comment_id,
    }


def _comment_counts():
    return (
        select(Comment.post_id.label("post_id"), func.count(Comment.id).label("comment_count"))
        .group_by(Comment.post_id)
        .subquery()
    )


class Repository:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def transaction(self):
        return session_scope(self._session_factory)

    # ---------- users ----------
    def find_user_by_id(self, user_id: str) -> Optional[Snapshot]:
        if not user_id:
            return None
        with self.transaction() as session:
            user = session.get(User, user_id)
            return user_snapshot(user) if user else None

    def find_user_by_email(self, email: str) -> Optional[Snapshot]:
        if not email:
            return None
        with self.transaction() as session:
            user = session.scalar(select(User).where(User.email == email))
            return user_snapshot(user) if user else None

    def create_user(self, email: str, password_hash: str, firstname: str, lastname: str,
                    role: Role = Role.USER) -> Snapshot:
        with self.transaction() as session:
            if session.scalar(select(User.id).where(User.email == email)) is not None:
                raise Conflict("Email already in use")
            user = User(email=email, password=password_hash, firstname=firstname,
                        lastname=lastname, role=role)
            session.add(user)
            try:
                session.flush()
            except IntegrityError as e:
                # lost a signup race on the unique e-mail index
                raise Conflict("Email already in use") from e
            return user_snapshot(user)

    def set_user_role(self, user_id: str, role: Role) -> Snapshot:
        with self.transaction() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("User could not be found")
            user.role = role
            session.flush()
            return user_snapshot(user)

    def list_posts_by_author(self, user_id: str) -> List[Snapshot]:
        with self.transaction() as session:
            posts = session.scalars(
                select(Post).where(Post.author_id == user_id).order_by(Post.created_at.desc(), Post.id)
            )
            return [post_snapshot(p) for p in posts]

    def list_upvoted_posts(self, user_id: str) -> List[Snapshot]:
        with self.transaction() as session:
            posts = session.scalars(
                select(Post)
                .join(post_upvotes, post_upvotes.c.post_id == Post.id)
                .where(post_upvotes.c.user_id == user_id)
                .order_by(Post.created_at.desc(), Post.id)
            )
            return [post_snapshot(p) for p in posts]

    def list_upvoters(self, post_id: str) -> List[Snapshot]:
        with self.transaction() as session:
            users = session.scalars(
                select(User)
                .join(post_upvotes, post_upvotes.c.user_id == User.id)
                .where(post_upvotes.c.post_id == post_id)
                .order_by(User.created_at, User.id)
            )
            return [user_snapshot(u) for u in users]

    # ---------- posts ----------
    def find_post_by_id(self, post_id: str) -> Optional[Snapshot]:
        if not post_id:
            return None
        with self.transaction() as session:
            post = session.get(Post, post_id)
            return post_snapshot(post) if post else None

    def list_posts(self, filter: Optional[str] = None, sort: Optional[str] = None,
                   status: Optional[str] = None) -> List[Snapshot]:
        """
        Posts matching the optional category ``filter`` and ``status`` tag,
        ordered by ``sort`` (unknown or missing keys fall back to dateDesc).
        Ties are broken by newest creation time, then id.
        """
        counts = _comment_counts()
        columns = {
            "created_at": Post.created_at,
            "up_votes": Post.up_votes,
            "comment_count": func.coalesce(counts.c.comment_count, 0),
        }
        field, direction = SORT_ORDERINGS.get(sort or DEFAULT_SORT, SORT_ORDERINGS[DEFAULT_SORT])
        column = columns[field]

        stmt = select(Post).outerjoin(counts, counts.c.post_id == Post.id)
        if filter:
            stmt = stmt.where(Post.category == filter)
        if status:
            stmt = stmt.where(Post.status == status)
        stmt = stmt.order_by(
            column.desc() if direction == "desc" else column.asc(),
            Post.created_at.desc(),
            Post.id.asc(),
        )
        with self.transaction() as session:
            return [post_snapshot(p) for p in session.scalars(stmt)]

    def count_posts(self, filter: Optional[str] = None) -> int:
        stmt = select(func.count(Post.id))
        if filter:
            stmt = stmt.where(Post.category == filter)
        with self.transaction() as session:
            return session.scalar(stmt) or 0

    def create_post(self, author_id: str, title: str, description: Optional[str] = None,
                    category: Optional[str] = None, status: Optional[str] = None) -> Snapshot:
        with self.transaction() as session:
            post = Post(author_id=author_id, title=title, description=description,
                        category=category, status=status or "draft")
            session.add(post)
            session.flush()
            return post_snapshot(post)

    def update_post(self, post_id: str, changes: Dict[str, Any],
                    authorize: Optional[Authorizer] = None) -> Snapshot:
        unknown = set(changes) - set(UPDATABLE_POST_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        with self.transaction() as session:
            post = session.get(Post, post_id, with_for_update=True)
            if post is None:
                raise NotFound("Post could not be found")
            if authorize is not None:
                authorize(post_snapshot(post))
            for key, value in changes.items():
                setattr(post, key, value)
            session.flush()
            return post_snapshot(post)

    def delete_post_cascade(self, post_id: str, authorize: Optional[Authorizer] = None) -> Snapshot:
        """
        Delete a post together with its comments and their replies in one
        transaction. Returns the post as it was before deletion.
        """
        with self.transaction() as session:
            post = session.get(Post, post_id, with_for_update=True)
            if post is None:
                raise NotFound("Post could not be found")
            snapshot = post_snapshot(post)
            comment_ids = list(session.scalars(select(Comment.id).where(Comment.post_id == post_id)))
            if authorize is not None:
                authorize(snapshot)

            replies_deleted = self._delete_replies(session, comment_ids)
            comments_deleted = self._delete_comments(session, post_id)
            session.execute(delete(post_upvotes).where(post_upvotes.c.post_id == post_id))
            session.execute(delete(Post).where(Post.id == post_id))

            write_log({
                "event": "post_cascade_delete",
                "post_id": post_id,
                "comments_deleted": comments_deleted,
                "replies_deleted": replies_deleted,
            }, stream="db")
            return snapshot

    @staticmethod
    def _delete_replies(session, comment_ids: List[str]) -> int:
        if not comment_ids:
            return 0
        result = session.execute(
            delete(Reply).where(Reply.comment_id.in_(comment_ids)).execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def _delete_comments(session, post_id: str) -> int:
        result = session.execute(
            delete(Comment).where(Comment.post_id == post_id).execution_options(synchronize_session=False)
        )
        return result.rowcount

    def toggle_upvote(self, post_id: str, user_id: str) -> Snapshot:
        """
        Flip ``user_id``'s membership in the post's upvoter set and move the
        counter by exactly one in the same transaction.
        """
        with self.transaction() as session:
            if session.scalar(select(Post.id).where(Post.id == post_id)) is None:
                raise NotFound("Post could not be found")

            membership = (post_upvotes.c.post_id == post_id) & (post_upvotes.c.user_id == user_id)
            removed = session.execute(delete(post_upvotes).where(membership)).rowcount
            if removed:
                delta = -1
            else:
                try:
                    self._insert_membership(session, post_id, user_id)
                except IntegrityError as e:
                    # same caller toggled concurrently; the composite key kept one row
                    raise Conflict("Upvote is already being toggled") from e
                delta = 1

            session.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(up_votes=Post.up_votes + delta)
                .execution_options(synchronize_session=False)
            )
            post = session.get(Post, post_id)
            write_log({"event": "toggle_upvote", "post_id": post_id, "user_id": user_id, "delta": delta}, stream="db")
            return post_snapshot(post)

    @staticmethod
    def _insert_membership(session, post_id: str, user_id: str) -> None:
        session.execute(insert(post_upvotes).values(post_id=post_id, user_id=user_id))

    # ---------- comments ----------
    def find_comment_by_id(self, comment_id: str) -> Optional[Snapshot]:
        if not comment_id:
            return None
        with self.transaction() as session:
            comment = session.get(Comment, comment_id)
            return comment_snapshot(comment) if comment else None

    def create_comment(self, post_id: str, author_id: str, content: str) -> Snapshot:
        with self.transaction() as session:
            if session.scalar(select(Post.id).where(Post.id == post_id)) is None:
                raise NotFound("Post could not be found")
            comment = Comment(post_id=post_id, author_id=author_id, content=content)
            session.add(comment)
            session.flush()
            return comment_snapshot(comment)

    def list_comments_by_post(self, post_id: str) -> List[Snapshot]:
        with self.transaction() as session:
            comments = session.scalars(
                select(Comment).where(Comment.post_id == post_id).order_by(Comment.created_at, Comment.id)
            )
            return [comment_snapshot(c) for c in comments]

    def count_comments_by_post(self, post_id: str) -> int:
        with self.transaction() as session:
            return session.scalar(select(func.count(Comment.id)).where(Comment.post_id == post_id)) or 0

    # ---------- replies ----------
    def find_reply_by_id(self, reply_id: str) -> Optional[Snapshot]:
        if not reply_id:
            return None
        with self.transaction() as session:
            reply = session.get(Reply, reply_id)
            return reply_snapshot(reply) if reply else None

    def create_reply(self, comment_id: str, author_id: str, content: str) -> Snapshot:
        with self.transaction() as session:
            if session.scalar(select(Comment.id).where(Comment.id == comment_id)) is None:
                raise NotFound("Comment could not be found")
            reply = Reply(comment_id=comment_id, author_id=author_id, content=content)
            session.add(reply)
            session.flush()
            return reply_snapshot(reply)

    def list_replies_by_comment(self, comment_id: str) -> List[Snapshot]:
        with self.transaction() as session:
            replies = session.scalars(
                select(Reply).where(Reply.comment_id == comment_id).order_by(Reply.created_at, Reply.id)
            )
            return [reply_snapshot(r) for r in replies]
