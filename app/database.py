from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session
from app.config import settings

# entitlement writes rely on INSERT ... ON CONFLICT DO NOTHING
SUPPORTED_DIALECTS = ("postgresql", "sqlite")


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,   # checks dead connections
        "pool_recycle": 1800,    # refresh every 30 min
    }


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = create_engine(
    settings.database_url,
    echo=False,
    **_engine_kwargs(settings.database_url),
)

if engine.dialect.name not in SUPPORTED_DIALECTS:
    raise RuntimeError(
        f"Unsupported database dialect {engine.dialect.name!r}; "
        f"use one of {', '.join(SUPPORTED_DIALECTS)}"
    )

if engine.dialect.name == "sqlite":
    event.listen(engine, "connect", enable_sqlite_foreign_keys)


def create_db_and_tables():
    from app.models import user, asset, entitlement, order, order_item, order_event
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
