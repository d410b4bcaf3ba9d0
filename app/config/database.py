"""Database configuration and connection setup"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.config.settings import get_settings

settings = get_settings()


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite has no row locks, so every transaction is opened with
    BEGIN IMMEDIATE to take the write lock up front. This gives the booking
    unit of work the same serialization PostgreSQL gets from SELECT ... FOR UPDATE.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    # Create database engine with connection pooling
    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=False,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine = engine):
    """Create all tables known to the shared Base"""
    from app.models import Base

    Base.metadata.create_all(bind=bind)


if __name__ == "__main__":
    create_tables()
    print("Database tables created successfully!")
