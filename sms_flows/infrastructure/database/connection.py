"""
Database Connection Manager.

This module handles the low-level details of connecting to the database.
It builds the SQLModel engine used by the SQL state store.
"""

from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlmodel import create_engine, SQLModel

from ...config import settings


@lru_cache()
def get_engine(database_url: str = settings.DATABASE_URL) -> Engine:
    # echo=False in production to avoid leaking message bodies in logs
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, echo=False, connect_args=connect_args)


def init_db(engine: Engine):
    """
    Idempotent initialization.
    Creates tables if they do not exist.
    Useful for local dev or simple deployments.
    """
    SQLModel.metadata.create_all(engine)
