# forum/api/errors.py
"""
Typed failures shared by the REST and GraphQL surfaces.

Each error carries a stable ``code`` (exposed as ``extensions.code`` in GraphQL
responses and as ``code`` in REST bodies) and the HTTP status used by the REST
surface.
"""
from typing import Any, Dict, Optional

from ariadne import format_error
from graphql import GraphQLError


class ForumError(Exception):
    code = "INTERNAL"
    http_status = 500
    default_message = "internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ForumError):
    code = "VALIDATION_ERROR"
    http_status = 400
    default_message = "invalid input"


class Unauthorized(ForumError):
    code = "UNAUTHORIZED"
    http_status = 401
    default_message = "unauthorized"

    def __init__(self, message: Optional[str] = None):
        # the reason stays in the audit log, the caller only learns "unauthorized"
        self.reason = message
        super().__init__(self.default_message)


class NotFound(ForumError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "not found"


class Conflict(ForumError):
    code = "CONFLICT"
    # the auth REST surface reports duplicate registrations as 400
    http_status = 400
    default_message = "conflict"


class Unavailable(ForumError):
    code = "UNAVAILABLE"
    http_status = 503
    default_message = "service unavailable"


class Internal(ForumError):
    code = "INTERNAL"
    http_status = 500
    default_message = "internal error"


# errors whose message may reach the client as-is
_PUBLIC_ERRORS = (ValidationError, Unauthorized, NotFound, Conflict, Unavailable)


def to_response_body(error: ForumError) -> Dict[str, Any]:
    return {"error": error.message, "code": error.code}


def format_graphql_error(error: GraphQLError, debug: bool = False) -> Dict[str, Any]:
    """ariadne error_formatter: attach the error code and mask internal failures."""
    formatted = format_error(error, debug)
    original = error.original_error
    extensions = formatted.setdefault("extensions", {}) or {}
    if original is None:
        # parse/validation errors raised by graphql-core itself
        extensions["code"] = "GRAPHQL_VALIDATION_FAILED"
    elif isinstance(original, _PUBLIC_ERRORS):
        extensions["code"] = original.code
        formatted["message"] = original.message
    else:
        extensions["code"] = Internal.code
        if not debug:
            formatted["message"] = Internal.default_message
    formatted["extensions"] = extensions
    return formatted
