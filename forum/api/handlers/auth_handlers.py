# forum/api/handlers/auth_handlers.py
from flask import Blueprint, current_app, jsonify, request

from forum.api.auth.context import RequestContext
from forum.api.auth.identity import bearer_token
from forum.api.auth.token import issue_token, revoke_token
from forum.api.auth.user import login_user, signup_user
from forum.api.permissions import project_user
from forum.api.utils.logger import write_log

auth_blueprint = Blueprint("auth", __name__, url_prefix="/auth")


def _repository():
    return current_app.extensions["forum"]["repository"]


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _session_response(user: dict, status: int):
    token, claims = issue_token(user["id"])
    # the caller is the subject, so the self profile (with email) is returned
    viewer = RequestContext(authenticated=True, subject_id=user["id"], role=user["role"])
    response = jsonify({"authToken": token, "user": project_user(user, viewer)})
    response.status_code = status
    response.set_cookie(
        current_app.config["AUTH_COOKIE_NAME"],
        token,
        max_age=int(current_app.config["ACCESS_TOKEN_EXPIRE_MINUTES"]) * 60,
        httponly=True,
        secure=bool(current_app.config["AUTH_COOKIE_SECURE"]),
        samesite="Lax",
    )
    return response


def presented_token():
    token = bearer_token(request.headers.get("Authorization"))
    return token or request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])


@auth_blueprint.route("/signup", methods=["POST"])
def signup():
    body = _json_body()
    user = signup_user(
        _repository(),
        email=body.get("email"),
        password=body.get("password"),
        firstname=body.get("firstname"),
        lastname=body.get("lastname"),
    )
    return _session_response(user, 201)


@auth_blueprint.route("/login", methods=["POST"])
def login():
    body = _json_body()
    user = login_user(_repository(), email=body.get("email"), password=body.get("password"))
    return _session_response(user, 200)


@auth_blueprint.route("/logout", methods=["GET"])
def logout():
    token = presented_token()
    revoked = revoke_token(token) if token else False
    write_log({"event": "logout", "revoked": revoked}, stream="auth")
    response = jsonify({"message": "Logged out"})
    response.delete_cookie(current_app.config["AUTH_COOKIE_NAME"])
    return response, 200


@auth_blueprint.route("/alive", methods=["GET"])
def alive():
    return jsonify({"status": "ok"}), 200
