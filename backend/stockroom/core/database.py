from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from stockroom.core.config import settings

DATABASE_URL = settings.database_url

# SQLite needs check_same_thread (and a busy timeout for concurrent writers), Postgres must NOT have them
connect_args = {"check_same_thread": False, "timeout": 15} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def create_tables(bind=None):
    # make sure every model is registered on Base.metadata
    from stockroom.models import audit_entry, inventory_item, stock_transaction  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
