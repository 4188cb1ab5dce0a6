import os
import json

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config", "server.json")

with open(CONFIG_PATH) as f:
    config_data = json.load(f)

DEFAULT_SECRET = "changeme-local-dev"

# keys whose env override must be coerced away from str
_INT_KEYS = {"ACCESS_TOKEN_EXPIRE_MINUTES", "DB_TIMEOUT_SECONDS"}
_BOOL_KEYS = {"AUTH_COOKIE_SECURE"}


def _coerce(key, value):
    if key in _INT_KEYS:
        return int(value)
    if key in _BOOL_KEYS:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    return value


def load_settings(overrides=None) -> dict:
    """
    Resolve settings from config/server.json, then environment variables of the
    same name, then explicit overrides (highest precedence).
    """
    settings = {}
    for key, default in config_data.items():
        settings[key] = _coerce(key, os.getenv(key, default))
    for key, value in (overrides or {}).items():
        settings[key] = _coerce(key, value)

    if settings["ENV"] != "dev" and settings["SECRET_KEY"] == DEFAULT_SECRET:
        raise RuntimeError("insecure default SECRET_KEY in non-dev; configure SECRET_KEY")
    return settings


def cors_origins(value):
    if not value or value == "*":
        return "*"
    return [origin.strip() for origin in value.split(",") if origin.strip()]
