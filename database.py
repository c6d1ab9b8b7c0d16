from typing import Generator
from sqlmodel import create_engine, SQLModel, Session
import logging

from core.config import DATABASE_URL

# check_same_thread is only understood by SQLite.
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)

logger = logging.getLogger(__name__)


def create_db_and_tables():
    """Creates any missing Demo Hub tables. Called once at startup and by the seed CLI."""
    import models  # registers table models on SQLModel.metadata

    logger.info(f"Ensuring tables exist on {engine.url.render_as_string(hide_password=True)}")
    try:
        SQLModel.metadata.create_all(engine)
    except Exception as e:
        logger.error(f"Could not create tables: {e}", exc_info=True)
        raise


def get_session() -> Generator[Session, None, None]:
    """
    Request-scoped session for `Depends`.
    Commits when the handler returns normally, rolls back when it raises.
    """
    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception as e:
            logger.debug(f"Rolling back database session: {e}")
            session.rollback()
            raise


if __name__ == "__main__":
    create_db_and_tables()
    print(f"Tables ready on {DATABASE_URL}")
