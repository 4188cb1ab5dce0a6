# forum/api/db/models.py
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


# composite primary key: one membership row per (post, user)
post_upvotes = Table(
    "post_upvotes",
    Base.metadata,
    Column("post_id", String(36), ForeignKey("posts.id"), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(320), unique=True, nullable=False, index=True)
    password = Column(String(128), nullable=False)  # bcrypt hash, never serialized
    firstname = Column(String(100), nullable=False)
    lastname = Column(String(100), nullable=False)
    profile_img = Column(String(500), nullable=True)
    role = Column(Enum(Role, name="role"), nullable=False, default=Role.USER)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    posts = relationship("Post", back_populates="author")
    upvoted_posts = relationship("Post", secondary=post_upvotes, back_populates="upvoters")


class Post(Base):
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    status = Column(String(50), nullable=False, default="draft", index=True)  # opaque lifecycle tag
    up_votes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    author = relationship("User", back_populates="posts")
    comments = relationship("Comment", back_populates="post")
    upvoters = relationship("User", secondary=post_upvotes, back_populates="upvoted_posts")


class Comment(Base):
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=_new_id)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    post_id = Column(String(36), ForeignKey("posts.id"), nullable=False, index=True)

    post = relationship("Post", back_populates="comments")
    replies = relationship("Reply", back_populates="comment")


class Reply(Base):
    __tablename__ = "replies"

    id = Column(String(36), primary_key=True, default=_new_id)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    comment_id = Column(String(36), ForeignKey("comments.id"), nullable=False, index=True)

    comment = relationship("Comment", back_populates="replies")
