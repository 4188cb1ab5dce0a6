# forum/api/auth/context.py
from dataclasses import dataclass

from forum.api.auth.identity import IdentityResult
from forum.api.errors import ForumError
from forum.api.utils.logger import write_log

USER_NOT_FOUND = "User not found"


@dataclass(frozen=True)
class RequestContext:
    """Per-request caller state; built once, never mutated, never persisted."""

    authenticated: bool = False
    subject_id: str = ""
    role: str = ""
    failure_reason: str = ""

    @classmethod
    def anonymous(cls, reason: str = "") -> "RequestContext":
        return cls(authenticated=False, failure_reason=reason)


def build_request_context(identity: IdentityResult, repository) -> RequestContext:
    """
    Attach the subject's current role to a verified identity. A token whose
    subject no longer exists resolves to an anonymous context.
    """
    if not identity.authenticated:
        return RequestContext.anonymous(identity.failure_reason)
    try:
        user = repository.find_user_by_id(identity.subject_id)
    except ForumError as e:
        write_log({"event": "session_role_lookup_failed", "sub": identity.subject_id, "error": e.code}, stream="security")
        raise
    if user is None:
        write_log({"event": "session_subject_missing", "sub": identity.subject_id}, stream="security")
        return RequestContext.anonymous(USER_NOT_FOUND)
    return RequestContext(
        authenticated=True,
        subject_id=user["id"],
        role=user["role"],
    )
