"""
Database Initializer.

Run this script to create the conversation state table when
STATE_BACKEND=database.

Usage:
    python -m sms_flows.scripts.db_init
"""

from sms_flows.config import settings
from sms_flows.infrastructure.database.connection import get_engine, init_db

# Registers the table on SQLModel.metadata
from sms_flows.infrastructure.database import tables  # noqa: F401


def create_tables():
    print("Initializing Database Connection...")
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)
    print("Conversation table ready.")


if __name__ == "__main__":
    create_tables()
