# forum/api/auth/identity.py
from dataclasses import dataclass
from typing import Optional

from forum.api.auth.token import InvalidToken, verify_token

MISSING_HEADER = "Missing authentication header"
MALFORMED_HEADER = "Malformed authentication header"


@dataclass(frozen=True)
class IdentityResult:
    authenticated: bool
    subject_id: str = ""
    failure_reason: str = ""


def bearer_token(auth_header: Optional[str]) -> Optional[str]:
    if not auth_header:
        return None
    scheme, _, token = auth_header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_identity(auth_header: Optional[str]) -> IdentityResult:
    """
    Turn a raw Authorization header into an identity. Never raises: every
    failure is reported through ``failure_reason`` so each operation can decide
    whether authentication is mandatory.
    """
    if not auth_header:
        return IdentityResult(authenticated=False, failure_reason=MISSING_HEADER)
    token = bearer_token(auth_header)
    if token is None:
        return IdentityResult(authenticated=False, failure_reason=MALFORMED_HEADER)
    try:
        subject_id = verify_token(token)
    except InvalidToken as e:
        return IdentityResult(authenticated=False, failure_reason=str(e) or "Unable to decode JWT")
    return IdentityResult(authenticated=True, subject_id=subject_id)
