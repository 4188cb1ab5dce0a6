import argparse

from forum.api import create_app
from forum.api.db.models import Role
from forum.api.db.session import init_db
from forum.api.utils.logger import write_log


def promote(app, email: str) -> int:
    repository = app.extensions["forum"]["repository"]
    user = repository.find_user_by_email(email.strip().lower())
    if user is None:
        write_log({"event": "promote_failed", "email": email, "reason": "user not found"}, stream="system")
        return 1
    repository.set_user_role(user["id"], Role.ADMIN)
    write_log({"event": "promote", "user_id": user["id"], "role": Role.ADMIN.value}, stream="system")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Launch forum GraphQL server")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=5000, help="Port to run the server on")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    parser.add_argument("--cert", help="TLS certificate (PEM)")
    parser.add_argument("--key", help="TLS private key (PEM)")
    parser.add_argument("--init-db", action="store_true", help="Create database tables before starting")
    parser.add_argument("--promote", metavar="EMAIL", help="Grant ADMIN to the user with this email and exit")
    args = parser.parse_args(argv)

    app = create_app()
    if args.init_db:
        init_db(app.extensions["forum"]["engine"])
    if args.promote:
        return promote(app, args.promote)

    ssl_context = (args.cert, args.key) if args.cert and args.key else None
    app.run(host=args.host, port=args.port, debug=args.debug, ssl_context=ssl_context)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
