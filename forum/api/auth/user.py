# forum/api/auth/user.py
import re

from email_validator import EmailNotValidError, validate_email

from forum.api.auth.password import hash_password, verify_password
from forum.api.errors import ValidationError
from forum.api.utils.logger import write_log

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72
INVALID_LOGIN = "Email or Password are invalid"
WEAK_PASSWORD = (
    "Password must be at least 8 characters with at least one uppercase, "
    "lowercase, number and symbol"
)
PASSWORD_TOO_LONG = f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
NOT_TEXT = "Email, password and names must be strings"

_PASSWORD_RULES = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"[0-9]"),
    re.compile(r"[^A-Za-z0-9]"),
)


def _require_text(message: str, *values) -> None:
    if not all(values):
        raise ValidationError(message)
    if not all(isinstance(value, str) for value in values):
        raise ValidationError(NOT_TEXT)


def normalize_email(email: str) -> str:
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError("Email is not valid") from e
    return result.normalized.lower()


def is_strong_password(password: str) -> bool:
    if len(password) < MIN_PASSWORD_LENGTH:
        return False
    return all(rule.search(password) for rule in _PASSWORD_RULES)


def signup_user(repository, email: str, password: str, firstname: str, lastname: str) -> dict:
    _require_text("Email, password, firstname and lastname are required", email, password, firstname, lastname)
    email = normalize_email(email)
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(PASSWORD_TOO_LONG)
    if not is_strong_password(password):
        raise ValidationError(WEAK_PASSWORD)

    user = repository.create_user(
        email=email,
        password_hash=hash_password(password),
        firstname=firstname.strip(),
        lastname=lastname.strip(),
    )
    write_log({"event": "signup", "user_id": user["id"]}, stream="auth")
    return user


def login_user(repository, email: str, password: str) -> dict:
    _require_text("Email and password are required", email, password)

    user = repository.find_user_by_email(email.strip().lower())
    if not user or not verify_password(password, user["password"]):
        # same message for unknown e-mail and wrong password
        write_log({"event": "login_denied", "email_known": bool(user)}, stream="auth")
        raise ValidationError(INVALID_LOGIN)
    write_log({"event": "login", "user_id": user["id"]}, stream="auth")
    return user
