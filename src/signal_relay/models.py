from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

# --- Enums ---


class TranslationStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    UPDATED = "updated"
    UPDATE_FAILED = "update_failed"
    TRANSLATION_FAILED = "translation_failed"


class RelayStatus(StrEnum):
    IGNORED = "ignored"                        # not from source channel / no text
    DUPLICATE = "duplicate"                    # already stored
    NOT_FOUND = "not_found"                    # edit of a message never delivered
    STORE_FAILED = "store_failed"
    TRANSLATION_FAILED = "translation_failed"
    DELIVERED = "delivered"
    DELIVERY_FAILED = "delivery_failed"
    UPDATED = "updated"
    UPDATE_FAILED = "update_failed"


# --- Inbound ---


class InboundMessage(BaseModel, frozen=True):
    """Minimal projection of a channel post the relay needs."""

    chat_id: str
    message_id: int
    date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    text: str | None = None
    reply_to_message_id: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    chat_type: str | None = None

    @property
    def is_reply(self) -> bool:
        return self.reply_to_message_id is not None

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


# --- Outcomes ---


class DeliveryResult(BaseModel, frozen=True):
    ok: bool
    message_id: int | None = None
    error: str = ""
    rendering: str = ""  # the chat id form that was accepted (or last tried)


class RelayResult(BaseModel, frozen=True):
    status: RelayStatus
    chat_id: str = ""
    message_id: int | None = None
    source_record_id: int | None = None
    translation_id: int | None = None
    target_message_id: int | None = None
    reply_to_target_message_id: int | None = None
    error: str = ""
