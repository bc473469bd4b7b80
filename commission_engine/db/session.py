from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from commission_engine.core.config import SQLALCHEMY_DATABASE_URI, SQL_ECHO


def make_engine(url: str = SQLALCHEMY_DATABASE_URI) -> Engine:
    options = {"echo": SQL_ECHO}
    if url.startswith("sqlite"):
        # Sync routes run in FastAPI's threadpool
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return create_engine(url, **options)


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """Request-scoped session; routes commit through the crud layer."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
