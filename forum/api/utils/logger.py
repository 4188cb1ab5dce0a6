# forum/api/utils/logger.py
import json
from datetime import datetime, timezone
from typing import Optional


# Basic structured logging function
def write_log(entry: dict, stream: str = "default"):
    entry = dict(entry)
    entry.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    entry.setdefault("stream", stream)
    print(json.dumps(entry, ensure_ascii=False, default=str))


def token_snippet(token: Optional[str]) -> str:
    # never log a full bearer token
    return (token or "")[:16]


def log_request(method: str, path: str, remote_addr: Optional[str] = None):
    write_log({
        "event": "http_request",
        "method": method,
        "path": path,
        "remote_addr": remote_addr,
    }, stream="http")
