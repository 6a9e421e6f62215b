# cart_service/data/database.py
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from cart_service.utils.settings import DATABASE_URL


def make_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    # one connection per thread, wait on the write lock instead of failing
    engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

    # pysqlite defers BEGIN until the first write, so two writers can each hold
    # a read lock and deadlock on the upgrade. Take the write lock up front.
    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    # models must be imported before create_all so they register on Base.metadata
    import cart_service.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def transaction(db: Session):
    """Commit when the block succeeds, roll back on any exception."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
