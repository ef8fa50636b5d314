import os
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings

Base = declarative_base()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for a database URL.

    SQLite is configured so that every transaction starts with BEGIN IMMEDIATE
    (writers are serialized and SAVEPOINT works through pysqlite), waits on a
    busy database instead of failing, and enforces foreign keys. In-memory
    databases share a single connection across threads.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, future=True, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}
    if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
        kwargs["poolclass"] = StaticPool
    else:
        path = database_url.split("///", 1)[-1]
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    engine = create_engine(database_url, echo=echo, future=True, **kwargs)

    @event.listens_for(engine, "connect")
    def _sqlite_on_connect(dbapi_connection, connection_record):
        # pysqlite's own transaction handling is disabled; "begin" below takes over
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _sqlite_on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = build_engine(settings.database_url, echo=settings.database_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def _import_all_models():
    """Import every model module so Base.metadata registers its tables."""
    from .domain import models  # noqa: F401 - Material, Warehouse
    from .domain import models_inventory  # noqa: F401 - MaterialStock, MaterialTransaction, DocumentSequence
    from .domain import models_maintenance  # noqa: F401 - MaintenanceRequest, MaintenancePlan, MaintenanceWork


def init_db(bind: Engine = None):
    """Create tables if they do not exist (normal startup)."""
    _import_all_models()
    Base.metadata.create_all(bind=bind or engine)


def recreate_schema_from_models(bind: Engine = None):
    """Drop every table and recreate it from the models. Use to start over as a new system."""
    _import_all_models()
    Base.metadata.drop_all(bind=bind or engine)
    Base.metadata.create_all(bind=bind or engine)
