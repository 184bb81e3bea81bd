import structlog
from sqlalchemy import Engine, text
from sqlmodel import Session, SQLModel, create_engine

from signal_relay.storage import models as _models  # noqa: F401  registers tables

logger = structlog.get_logger(__name__)


def create_db_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


def get_session(engine: Engine) -> Session:
    return Session(engine)


def check_connection(engine: Engine) -> bool:
    """Run a trivial query; used as a startup health check."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("db_connection_failed", error=str(e))
        return False
    logger.info("db_connection_ok")
    return True
