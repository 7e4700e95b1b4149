from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def build_engine(database_uri: str) -> Engine:
    """Create an engine for the configured database.

    SQLite connections are shared between the event loop and the worker
    threads used for push delivery, so same-thread checking is disabled.
    """
    connect_args = {}
    if database_uri.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        database_uri,
        connect_args=connect_args,
        pool_pre_ping=True,    # Validate connections before use
        echo=False             # Set to True for SQL logging
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
