"""SQLAlchemy models for the snapshot tables."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    JSON,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()


class TransactionsSnapshot(Base):
    """Latest transactions document."""

    __tablename__ = "transactions_snapshots"

    id = Column(Integer, primary_key=True)
    transactions = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)


class SchoolControlSnapshot(Base):
    """Latest parents and students document."""

    __tablename__ = "school_control_snapshots"

    id = Column(Integer, primary_key=True)
    parents = Column(JSON, nullable=False, default=list)
    students = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)


def create_db_engine(database_url: str) -> Engine:
    """Create an engine and make sure the snapshot tables exist."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    return sessionmaker(bind=engine)
