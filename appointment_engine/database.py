# appointment_engine/database.py
from datetime import datetime
import logging
from typing import Any, Callable, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base: DeclarativeMeta = declarative_base()


def create_db_engine(url: str, *, echo: bool = False, **engine_kwargs: Any) -> Engine:
    """
    Create an engine for the slot/booking store.

    SQLite connections are shared across threads (the booking services are
    driven from worker threads), and ``sqlite://`` in-memory URLs get a
    StaticPool so every session sees the same database.
    """
    if url.startswith("sqlite"):
        connect_args = engine_kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs.setdefault("poolclass", StaticPool)
        engine = create_engine(url, echo=echo, connect_args=connect_args, **engine_kwargs)
    else:
        engine_kwargs.setdefault("pool_pre_ping", True)
        engine_kwargs.setdefault("pool_recycle", 3600)
        engine = create_engine(url, echo=echo, **engine_kwargs)

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["connect_time"] = datetime.now()
        logger.debug("Database connection established")

    return engine


def create_session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create every table known to ``Base``."""
    # Registers the models on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created", extra={"tables": sorted(Base.metadata.tables)})


def get_db(
    session_factory: Callable[[], Session], *, commit: Optional[bool] = True
) -> Generator[Session, None, None]:
    """Yield a session with proper cleanup."""
    db = session_factory()
    try:
        yield db
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
