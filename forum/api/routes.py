from ariadne import MutationType, ObjectType, QueryType

from forum.api.errors import NotFound
from forum.api.handlers import post_handlers
from forum.api.permissions import (
    ADMIN,
    project_user,
    require_authenticated,
    require_role,
    require_self_or_role,
)

query = QueryType()
mutation = MutationType()
user_type = ObjectType("User")
post_type = ObjectType("Post")
comment_type = ObjectType("Comment")
reply_type = ObjectType("Reply")

bindables = [query, mutation, user_type, post_type, comment_type, reply_type]


def _session(info):
    return info.context["session"]


def _repository(info):
    return info.context["repository"]


def _author(info, author_id):
    user = _repository(info).find_user_by_id(author_id)
    if user is None:
        raise NotFound("User could not be found")
    return project_user(user, _session(info))


# ---------- Query ----------
@query.field("currentUser")
def resolve_current_user(_, info):
    session = _session(info)
    require_authenticated(session)
    user = _repository(info).find_user_by_id(session.subject_id)
    if user is None:
        raise NotFound("User could not be found")
    return project_user(user, session)


@query.field("user")
def resolve_user(_, info, user_id):
    session = _session(info)
    require_role(session, ADMIN)
    user = _repository(info).find_user_by_id(user_id)
    if user is None:
        raise NotFound("User could not be found")
    return project_user(user, session)


@query.field("post")
def resolve_post(_, info, post_id):
    post = _repository(info).find_post_by_id(post_id)
    if post is None:
        raise NotFound("Post could not be found")
    return post


@query.field("posts")
def resolve_posts(_, info):
    return _repository(info).list_posts()


@query.field("filteredPosts")
def resolve_filtered_posts(_, info, filter=None, sort=None):
    return _repository(info).list_posts(filter=filter, sort=sort)


@query.field("postsByStatus")
def resolve_posts_by_status(_, info, status):
    return _repository(info).list_posts(status=status)


@query.field("postsCount")
def resolve_posts_count(_, info, filter=None):
    return _repository(info).count_posts(filter=filter)


@query.field("comment")
def resolve_comment(_, info, comment_id):
    comment = _repository(info).find_comment_by_id(comment_id)
    if comment is None:
        raise NotFound("Comment could not be found")
    return comment


# ---------- User ----------
@user_type.field("userPosts")
def resolve_user_posts(user, info):
    require_self_or_role(_session(info), user["id"], ADMIN)
    return _repository(info).list_posts_by_author(user["id"])


@user_type.field("upVotedPosts")
def resolve_upvoted_posts(user, info):
    require_self_or_role(_session(info), user["id"], ADMIN)
    return _repository(info).list_upvoted_posts(user["id"])


# ---------- Post ----------
@post_type.field("author")
def resolve_post_author(post, info):
    return _author(info, post["author_id"])


@post_type.field("comments")
def resolve_post_comments(post, info):
    return _repository(info).list_comments_by_post(post["id"])


@post_type.field("commentCount")
def resolve_post_comment_count(post, info):
    return _repository(info).count_comments_by_post(post["id"])


@post_type.field("userUpVoteList")
def resolve_post_upvoters(post, info):
    session = _session(info)
    require_role(session, ADMIN)
    return [project_user(user, session) for user in _repository(info).list_upvoters(post["id"])]


# ---------- Comment ----------
@comment_type.field("author")
def resolve_comment_author(comment, info):
    return _author(info, comment["author_id"])


@comment_type.field("post")
def resolve_comment_post(comment, info):
    return _repository(info).find_post_by_id(comment["post_id"])


@comment_type.field("replies")
def resolve_comment_replies(comment, info):
    return _repository(info).list_replies_by_comment(comment["id"])


# ---------- Reply ----------
@reply_type.field("author")
def resolve_reply_author(reply, info):
    return _author(info, reply["author_id"])


@reply_type.field("comment")
def resolve_reply_comment(reply, info):
    return _repository(info).find_comment_by_id(reply["comment_id"])


# ---------- Mutation ----------
@mutation.field("addPost")
def resolve_add_post(_, info, title, description=None, category=None, status=None):
    return post_handlers.add_post(_repository(info), _session(info), title,
                                  description=description, category=category, status=status)


@mutation.field("updatePost")
def resolve_update_post(_, info, post_id, **changes):
    return post_handlers.update_post(_repository(info), _session(info), post_id, changes)


@mutation.field("deletePost")
def resolve_delete_post(_, info, post_id):
    return post_handlers.delete_post(_repository(info), _session(info), post_id)


@mutation.field("toggleUpVote")
def resolve_toggle_upvote(_, info, post_id):
    return post_handlers.toggle_upvote(_repository(info), _session(info), post_id)


@mutation.field("addComment")
def resolve_add_comment(_, info, post_id, content):
    return post_handlers.add_comment(_repository(info), _session(info), post_id, content)


@mutation.field("addReply")
def resolve_add_reply(_, info, comment_id, content):
    return post_handlers.add_reply(_repository(info), _session(info), comment_id, content)
