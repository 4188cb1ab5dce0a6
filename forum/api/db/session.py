# forum/api/db/session.py
"""
Engine construction and the transactional unit of work.

``session_scope`` is the only way the repository touches the database: the
block either commits as a whole or is rolled back on every exit path, and
driver-level failures are translated into the API's error kinds.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from forum.api.db.models import Base
from forum.api.errors import ForumError, Internal, Unavailable
from forum.api.utils.logger import write_log


def _connect_args(url: str, timeout: int) -> dict:
    if url.startswith("sqlite"):
        # seconds to wait on a locked database file
        return {"timeout": timeout, "check_same_thread": False}
    if url.startswith("postgresql"):
        return {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    return {}


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str, timeout: int = 5) -> Engine:
    kwargs = {"connect_args": _connect_args(url, timeout)}
    if not url.startswith("sqlite"):
        kwargs["pool_timeout"] = timeout
        kwargs["pool_pre_ping"] = True
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)
    write_log({"event": "init_db", "url": engine.url.render_as_string(hide_password=True)}, stream="system")


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    session = factory()
    try:
        yield session
        session.commit()
    except ForumError:
        session.rollback()
        raise
    except (PoolTimeoutError, OperationalError) as e:
        session.rollback()
        write_log({"event": "db_unavailable", "error": str(e)}, stream="system")
        raise Unavailable("persistence layer unavailable") from e
    except (DBAPIError, SQLAlchemyError) as e:
        session.rollback()
        write_log({"event": "db_error", "error": str(e)}, stream="system")
        raise Internal() from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
