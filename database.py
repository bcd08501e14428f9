# database.py
"""
SQLAlchemy database connection and session management.

This module provides:
- Database engine configuration (Azure SQL / MS SQL Server in production,
  SQLite when DATABASE_URL points at it)
- Session factory for dependency injection
- Connection utilities

Every connection carries a bounded statement timeout so no store call can
suspend a payment request indefinitely.

Usage:
     from database import get_session, engine

     # In FastAPI routes:
     @router.get("/items")
     def get_items(db: Session = Depends(get_session)):
          return db.query(Item).all()
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from config import Settings, get_settings

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
     """
     Create the SQLAlchemy engine for the configured store.

     Both pymssql and sqlite3 accept a `timeout` connect argument (seconds);
     for pymssql it bounds each query, for sqlite3 it bounds lock waits.
     """
     url = settings.database_url
     if url.startswith("sqlite"):
          # Single shared connection so an in-memory database survives across sessions
          return create_engine(
               url,
               poolclass=StaticPool,
               connect_args={
                    "check_same_thread": False,
                    "timeout": settings.db_statement_timeout,
               },
               echo=settings.sql_echo,
          )

     return create_engine(
          url,
          poolclass=QueuePool,
          pool_size=5,
          max_overflow=10,
          pool_timeout=30,
          pool_recycle=1800,  # Recycle connections after 30 minutes
          pool_pre_ping=True,
          connect_args={
               "timeout": settings.db_statement_timeout,
               "login_timeout": settings.db_statement_timeout,
          },
          echo=settings.sql_echo,  # Log SQL if SQL_ECHO=true
     )


engine = build_engine(get_settings())

# Session factory
SessionLocal = sessionmaker(
     bind=engine,
     autocommit=False,
     autoflush=False,
     expire_on_commit=False,
)


def get_session() -> Generator[Session, None, None]:
     """
     FastAPI dependency that provides a database session.

     Services commit their own units of work; anything left pending when the
     request finishes is committed here, and rolled back on error.

     Yields:
          Session: SQLAlchemy database session
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
     """
     Context manager for database sessions (for use outside FastAPI routes).

     Usage:
          with get_session_context() as db:
               accounts = db.query(Account).all()

     Yields:
          Session: SQLAlchemy database session
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


def init_db() -> None:
     """
     Initialize database tables.

     Creates all tables defined in the models if they don't exist.
     For production, use Alembic migrations instead.
     """
     from models import Base
     Base.metadata.create_all(bind=engine)


def check_connection() -> bool:
     """
     Test database connectivity.

     Returns:
          bool: True if connection successful, False otherwise
     """
     try:
          with engine.connect() as conn:
               conn.execute(text("SELECT 1"))
          return True
     except SQLAlchemyError as e:
          logger.error("Database connection failed: %s", e)
          return False
