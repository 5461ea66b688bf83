"""
Database Table Definitions.

This module defines the SQL schema using SQLModel.
We use the 'DBModel' suffix to distinguish these persistence models
from the Pydantic state models (ConversationState).
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationDBModel(SQLModel, table=True):
    """
    Persistence model for conversation state.
    Maps 1-to-1 with the 'conversations' table; one row per sender.
    """

    __tablename__ = "conversations"

    sender: str = Field(primary_key=True, index=True)
    interaction_id: str = Field(index=True)

    # The whole ConversationState as JSON (JSONB on Postgres).
    state: Dict[str, Any] = Field(
        sa_column=Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    )

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
