from contextlib import contextmanager
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from models import Base, Registry
from config import DATABASE_URL

logger = logging.getLogger(__name__)

def make_engine(url: str):
    if url.startswith("sqlite"):
        # one shared connection so an in-memory database survives across sessions
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, pool_pre_ping=True)

engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

def init_db(owner: str, bind=None):
    """Create the schema and make sure the single registry row exists.

    The owner is only recorded the first time; an existing registry keeps its owner.
    """
    bind = bind if bind is not None else engine
    Base.metadata.create_all(bind=bind)
    session = sessionmaker(bind=bind)()
    try:
        r = session.query(Registry).first()
        if not r:
            r = Registry(owner=owner, election_count=0)
            session.add(r)
            session.commit()
            logger.info("registry initialised with owner %s", owner)
        return r.owner
    finally:
        session.close()

@contextmanager
def session_scope(factory=None):
    """Commit on success, roll back on any exception."""
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
