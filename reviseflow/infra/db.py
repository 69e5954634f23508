from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def create_db_engine(database_url: str, **engine_kwargs) -> Engine:
    return create_engine(database_url, pool_pre_ping=True, **engine_kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_db(engine: Engine, create_tables: bool = False) -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    if create_tables:
        # Registers the mapped tables on Base.metadata.
        from . import models  # noqa: F401

        Base.metadata.create_all(engine)
