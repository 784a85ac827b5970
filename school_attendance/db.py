from sqlmodel import SQLModel, Session, create_engine
from .config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # FastAPI may run sync dependencies on a different thread than the one that opened the connection
    connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, connect_args=connect_args)

def create_db_and_tables() -> None:
    # Import for side effects: every table must be registered on the metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)

def get_session():
    with Session(engine) as session:
        yield session
