from datetime import datetime, timezone
from typing import Any, Dict, Optional

from forum.api.auth.context import RequestContext
from forum.api.db.models import Role
from forum.api.errors import Unauthorized
from forum.api.utils.logger import write_log

ADMIN = Role.ADMIN.value

# fields every viewer may see on a user
PUBLIC_USER_FIELDS = ("id", "firstname", "lastname", "profile_img", "created_at", "updated_at")


def _deny(ctx: Optional[RequestContext], check: str, reason: str):
    write_log({
        "event": "access_denied",
        "check": check,
        "reason": reason,
        "user_id": ctx.subject_id if ctx else None,
        "role": ctx.role if ctx else None,
    }, stream="security")
    raise Unauthorized(reason)


def require_authenticated(ctx: RequestContext) -> None:
    if not ctx.authenticated:
        _deny(ctx, "authenticated", ctx.failure_reason or "unauthenticated")


def require_role(ctx: RequestContext, role: str) -> None:
    if not ctx.authenticated:
        _deny(ctx, "role", ctx.failure_reason or "unauthenticated")
    if ctx.role != role:
        _deny(ctx, "role", f"role '{ctx.role}' is not '{role}'")


def require_self_or_role(ctx: RequestContext, owner_id: str, role: str) -> None:
    if not ctx.authenticated:
        _deny(ctx, "self_or_role", ctx.failure_reason or "unauthenticated")
    if ctx.subject_id != owner_id and ctx.role != role:
        _deny(ctx, "self_or_role", f"not '{owner_id}' and role '{ctx.role}' is not '{role}'")


def require_owner(resource_owner_id: str, subject_id: str) -> None:
    # identity must already be established by the caller
    if not subject_id or resource_owner_id != subject_id:
        _deny(None, "owner", f"'{subject_id}' does not own resource of '{resource_owner_id}'")


def project_user(user: Optional[Dict[str, Any]], viewer: RequestContext) -> Optional[Dict[str, Any]]:
    """
    Shape a user record for the API boundary. The password hash never leaves.

    - public profile: names, image and timestamps only
    - self profile (viewer is the user): adds email
    - admin profile (viewer is ADMIN): adds email and role
    """
    if user is None:
        return None
    projected = {key: user.get(key) for key in PUBLIC_USER_FIELDS}
    projected["email"] = None
    projected["role"] = None

    is_admin = viewer.authenticated and viewer.role == ADMIN
    is_self = viewer.authenticated and viewer.subject_id == user.get("id")
    if is_self or is_admin:
        projected["email"] = user.get("email")
    if is_admin:
        projected["role"] = user.get("role")
    return projected


def log_mutation(ctx: Optional[RequestContext], mutation_name: str, status: str, reason: str = None):
    role = (ctx.role if ctx else None) or "anonymous"
    entry = {
        "event": "mutation_audit",
        "mutation": mutation_name,
        "user_id": ctx.subject_id if ctx else None,
        "role": role,
        "status": status,
        "reason": reason,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    write_log(entry, stream=role)
