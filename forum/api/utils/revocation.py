# forum/api/utils/revocation.py
"""
Revoked-token store with Redis primary storage and a file fallback for
single-node/dev deployments.

A revoked jti is remembered until the token it belongs to would have expired
anyway; after that the entry is ignored (file) or evicted (Redis TTL).

Public API:
- RevocationStore.revoke(jti, expires_at)
- RevocationStore.is_revoked(jti)
"""
from __future__ import annotations
import threading
import time
from pathlib import Path
from typing import Optional

import redis

from forum.api.utils.logger import write_log

REVOKED_KEY_PREFIX = "jti:revoked:"

_file_lock = threading.Lock()


class RevocationStore:
    def __init__(self, redis_url: str = "", fallback_file: str = ".revoked_jtis.txt"):
        self._redis_url = redis_url
        self._redis_client: Optional[redis.Redis] = None
        self._fallback = Path(fallback_file)

    def _use_redis(self) -> Optional[redis.Redis]:
        if not self._redis_url:
            return None
        if self._redis_client is not None:
            return self._redis_client
        try:
            client = redis.from_url(self._redis_url, decode_responses=True)
            client.ping()
        except redis.RedisError as e:
            write_log({"event": "revocation_redis_unavailable", "error": str(e)}, stream="security")
            return None
        self._redis_client = client
        return client

    # ---------- file helpers ----------
    def _append_file(self, jti: str, expires_at: int):
        with _file_lock:
            self._fallback.parent.mkdir(parents=True, exist_ok=True)
            with self._fallback.open("a", encoding="utf-8") as fh:
                fh.write(f"{jti} {int(expires_at)}\n")

    def _in_file(self, jti: str, now: int) -> bool:
        with _file_lock:
            if not self._fallback.exists():
                return False
            try:
                with self._fallback.open("r", encoding="utf-8") as fh:
                    for line in fh:
                        parts = line.split()
                        if len(parts) != 2 or parts[0] != jti or not parts[1].isdigit():
                            continue
                        if int(parts[1]) > now:
                            return True
            except (OSError, UnicodeDecodeError) as e:
                # unreadable store fails closed
                write_log({"event": "revocation_file_unreadable", "error": str(e), "jti": jti}, stream="security")
                return True
        return False

    # ---------- public API ----------
    def revoke(self, jti: str, expires_at: int) -> bool:
        if not jti:
            return False
        now = int(time.time())
        ttl = int(expires_at) - now
        if ttl <= 0:
            # already expired, nothing to remember
            return True
        r = self._use_redis()
        if r is not None:
            try:
                r.set(REVOKED_KEY_PREFIX + jti, "1", ex=ttl)
                write_log({"event": "token_revoked", "jti": jti, "backend": "redis"}, stream="security")
                return True
            except redis.RedisError as e:
                write_log({"event": "revocation_redis_error", "error": str(e), "jti": jti}, stream="security")
        self._append_file(jti, expires_at)
        write_log({"event": "token_revoked", "jti": jti, "backend": "file"}, stream="security")
        return True

    def is_revoked(self, jti: Optional[str]) -> bool:
        if not jti:
            return False
        r = self._use_redis()
        if r is not None:
            try:
                return bool(r.exists(REVOKED_KEY_PREFIX + jti))
            except redis.RedisError as e:
                write_log({"event": "revocation_redis_error", "error": str(e), "jti": jti}, stream="security")
        return self._in_file(jti, int(time.time()))
