from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings

from typing import Optional
import logging


Base = declarative_base()


logger = logging.getLogger(__name__)


def build_engine(url: Optional[str] = None) -> Engine:
    connection_string = url or settings.storage.database_url
    connect_args = {}
    if connection_string.startswith("sqlite"):
        # FastAPI runs sync dependencies in a threadpool
        connect_args["check_same_thread"] = False
    return create_engine(
        connection_string,
        echo=settings.app.is_testing is True,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def build_session_maker(engine: Engine) -> sessionmaker:
    return sessionmaker(engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create missing tables; the schema is a single key/value table."""
    from app.core.db import schemas  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info(f"Database ready at {engine.url.render_as_string(hide_password=True)}")

