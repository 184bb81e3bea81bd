from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from signal_relay.models import TranslationStatus


class SourceMessageRecord(SQLModel, table=True):
    __tablename__ = "source_messages"
    __table_args__ = (
        UniqueConstraint("chat_id", "message_id", name="uq_source_messages_chat_message"),
    )

    id: int | None = Field(default=None, primary_key=True)
    message_id: int = Field(index=True)
    chat_id: str = Field(index=True)  # canonical form, see relay.chat_ids
    date: datetime
    text: str | None = None
    is_reply: bool = False
    reply_to_message_id: int | None = None
    metadata_json: str = "{}"  # sender, entities, reply_to
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TranslationRecord(SQLModel, table=True):
    __tablename__ = "translations"

    id: int | None = Field(default=None, primary_key=True)
    original_message_id: int = Field(foreign_key="source_messages.id", unique=True, index=True)
    translated_text: str | None = None
    target_chat_id: str
    target_message_id: int | None = None
    translation_time_ms: int = Field(default=0, ge=0)
    status: str = TranslationStatus.SUCCESS  # success, failed, updated, update_failed, translation_failed
    error_message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None
