# forum/api/auth/token.py
"""
Token utilities:
- Issue signed access tokens carrying the subject id and a jti
- Decode/verify tokens, enforcing typ, audience (when configured) and revocation
- Revoke a presented token until its natural expiry
Exports:
- issue_token, decode_token, verify_token, revoke_token, InvalidToken
"""
from __future__ import annotations
import time
import uuid
from typing import Any, Dict, Optional, Tuple

from flask import current_app
from jose import ExpiredSignatureError, JWTError, jwt

from forum.api.utils.logger import token_snippet, write_log

TOKEN_TYP = "access"


class InvalidToken(Exception):
    """Raised when a bearer token cannot be trusted; the message is the reason."""


def _new_jti() -> str:
    return str(uuid.uuid4())


def _now() -> int:
    return int(time.time())


def _revocation_store():
    return current_app.extensions["forum"]["revocation"]


def issue_token(subject_id: str) -> Tuple[str, Dict[str, Any]]:
    config = current_app.config
    now = _now()
    claims = {
        "sub": subject_id,
        "jti": _new_jti(),
        "typ": TOKEN_TYP,
        "iat": now,
        "exp": now + int(config["ACCESS_TOKEN_EXPIRE_MINUTES"]) * 60,
    }
    if config.get("JWT_AUD"):
        claims["aud"] = config["JWT_AUD"]

    token = jwt.encode(claims, config["SECRET_KEY"], algorithm=config["ALGORITHM"])
    write_log({"event": "token_issued", "sub": subject_id, "jti": claims["jti"], "exp": claims["exp"]}, stream="security")
    return token, claims


def decode_token(token: str, verify_exp: bool = True) -> Dict[str, Any]:
    if not token:
        raise InvalidToken("Unable to decode JWT")
    config = current_app.config
    audience = config.get("JWT_AUD") or None
    options = {"verify_exp": verify_exp, "verify_aud": audience is not None}
    try:
        payload = jwt.decode(token, config["SECRET_KEY"], algorithms=[config["ALGORITHM"]],
                             audience=audience, options=options)
    except ExpiredSignatureError as e:
        write_log({"event": "token_expired", "token_snippet": token_snippet(token)}, stream="security")
        raise InvalidToken(str(e)) from e
    except JWTError as e:
        write_log({"event": "token_decode_failed", "error": str(e), "token_snippet": token_snippet(token)}, stream="security")
        raise InvalidToken(str(e)) from e

    if payload.get("typ") != TOKEN_TYP:
        raise InvalidToken("Unexpected token type")
    if audience and not payload.get("aud"):
        raise InvalidToken("Token audience missing")
    if not payload.get("sub"):
        raise InvalidToken("Token has no subject")
    return payload


def verify_token(token: str) -> str:
    """Return the token's subject id, or raise InvalidToken with the reason."""
    payload = decode_token(token)
    if _revocation_store().is_revoked(payload.get("jti")):
        write_log({"event": "token_revoked_used", "jti": payload.get("jti"), "sub": payload.get("sub")}, stream="security")
        raise InvalidToken("Token has been revoked")
    return str(payload["sub"])


def revoke_token(token: Optional[str]) -> bool:
    """Revoke a token by jti; tokens that no longer verify need no revocation."""
    try:
        payload = decode_token(token)
    except InvalidToken:
        return False
    return _revocation_store().revoke(payload.get("jti"), payload.get("exp", _now()))
