from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from ariadne import graphql_sync, make_executable_schema
from ariadne.explorer import ExplorerGraphiQL

from .auth.context import build_request_context
from .auth.identity import resolve_identity
from .db.repository import Repository
from .db.session import init_db, make_engine, make_session_factory
from .errors import ForumError, format_graphql_error, to_response_body
from .handlers.auth_handlers import auth_blueprint
from .routes import bindables
from .schema import type_defs
from .settings import cors_origins, load_settings
from .utils.logger import log_request, write_log
from .utils.revocation import RevocationStore

schema = make_executable_schema(type_defs, *bindables, convert_names_case=True)


def _request_context():
    header = request.headers.get("Authorization")
    if not header:
        cookie_token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
        if cookie_token:
            header = f"Bearer {cookie_token}"
    identity = resolve_identity(header)
    return build_request_context(identity, current_app.extensions["forum"]["repository"])


def graphql_playground():
    return ExplorerGraphiQL().html(None), 200


def _status_for(result: dict) -> int:
    # documents that never executed (bad body, parse or validation errors) carry no "data"
    if "data" not in result:
        return 400
    for error in result.get("errors") or ():
        code = (error.get("extensions") or {}).get("code")
        if code == "GRAPHQL_VALIDATION_FAILED" and error.get("path") is None:
            return 400
    return 200


def graphql_server():
    data = request.get_json(silent=True)
    session = _request_context()
    context = {
        "request": request,
        "session": session,
        "repository": current_app.extensions["forum"]["repository"],
    }

    _, result = graphql_sync(
        schema,
        data,
        context_value=context,
        debug=current_app.debug,
        error_formatter=format_graphql_error,
    )
    status_code = _status_for(result)
    return jsonify(result), status_code


def handle_forum_error(error: ForumError):
    write_log({"event": "request_failed", "path": request.path, "code": error.code}, stream="http")
    return jsonify(to_response_body(error)), error.http_status


def create_app(overrides=None, create_tables=False) -> Flask:
    settings = load_settings(overrides)

    app = Flask(__name__)
    app.config.update(settings)
    CORS(app, origins=cors_origins(settings["CORS_ORIGINS"]), supports_credentials=True)

    engine = make_engine(settings["DATABASE_URL"], timeout=settings["DB_TIMEOUT_SECONDS"])
    if create_tables:
        init_db(engine)
    app.extensions["forum"] = {
        "engine": engine,
        "repository": Repository(make_session_factory(engine)),
        "revocation": RevocationStore(settings["REDIS_URL"], settings["REVOCATION_FILE"]),
    }

    @app.before_request
    def _log_request():
        log_request(request.method, request.path, request.remote_addr)

    app.register_blueprint(auth_blueprint)
    app.add_url_rule("/graphql", "graphql_playground", graphql_playground, methods=["GET"])
    app.add_url_rule("/graphql", "graphql_server", graphql_server, methods=["POST"])
    app.register_error_handler(ForumError, handle_forum_error)
    return app


__all__ = ["create_app", "schema"]
