from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import PersistenceError

Base = declarative_base()

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def create_session_factory(database_url: str) -> sessionmaker:
    engine_kwargs = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in IN_MEMORY_URLS:
            # One shared connection, otherwise every checkout sees an empty database.
            engine_kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **engine_kwargs)

    from . import tables  # noqa: F401  registers the mappers on Base

    Base.metadata.create_all(bind=engine)
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker, action: str = "read from") -> Iterator[Session]:
    """One transaction against the shift store.

    Commits on success and rolls back on any error. Database failures, opening
    the session included, surface as ``PersistenceError`` with the driver error
    as ``__cause__``; everything else propagates unchanged.
    """
    try:
        session = session_factory()
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Could not {action} the shift store") from exc
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceError(f"Could not {action} the shift store") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
