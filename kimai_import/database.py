"""Database engine and session factory for the destination store."""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from kimai_import.config import settings

engine = create_engine(settings.database_url, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()
