from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from signal_relay.models import TranslationStatus
from signal_relay.storage.models import SourceMessageRecord, TranslationRecord


class DuplicateMessageError(Exception):
    """A source message with the same (chat_id, message_id) is already stored."""

    def __init__(self, chat_id: str, message_id: int) -> None:
        super().__init__(f"Message {message_id} in chat {chat_id} already stored")
        self.chat_id = chat_id
        self.message_id = message_id


_UNIQUE_CONSTRAINT = "uq_source_messages_chat_message"


def _is_duplicate_message(error: IntegrityError) -> bool:
    """True only for the (chat_id, message_id) unique violation.

    PostgreSQL reports the constraint name; SQLite lists the offending columns.
    """
    detail = str(error.orig)
    if _UNIQUE_CONSTRAINT in detail:
        return True
    return "UNIQUE constraint failed" in detail and "source_messages.message_id" in detail


class MessageRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # --- Source messages ---

    def create_source_message(
        self,
        *,
        chat_id: str,
        message_id: int,
        date: datetime,
        text: str | None,
        reply_to_message_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> SourceMessageRecord:
        """Insert a source message; the unique (chat_id, message_id) constraint is the dedup guard."""
        record = SourceMessageRecord(
            chat_id=chat_id,
            message_id=message_id,
            date=date,
            text=text,
            is_reply=reply_to_message_id is not None,
            reply_to_message_id=reply_to_message_id,
            metadata_json=json.dumps(metadata or {}, ensure_ascii=False, default=str),
        )
        self._session.add(record)
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            if _is_duplicate_message(e):
                raise DuplicateMessageError(chat_id, message_id) from e
            raise
        self._session.refresh(record)
        return record

    def get_source_message(self, record_id: int) -> SourceMessageRecord | None:
        return self._session.get(SourceMessageRecord, record_id)

    def find_source_message(
        self, chat_id: str, message_id: int
    ) -> tuple[SourceMessageRecord, TranslationRecord | None] | None:
        """Look up a source message together with its translation (if any)."""
        statement = (
            select(SourceMessageRecord, TranslationRecord)
            .join(
                TranslationRecord,
                TranslationRecord.original_message_id == SourceMessageRecord.id,
                isouter=True,
            )
            .where(SourceMessageRecord.chat_id == chat_id)
            .where(SourceMessageRecord.message_id == message_id)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        message, translation = row
        return message, translation

    def update_source_message_text(self, record_id: int, text: str) -> SourceMessageRecord:
        message = self.get_source_message(record_id)
        if message is None:
            raise ValueError(f"Source message {record_id} not found")
        message.text = text
        self._session.add(message)
        self._session.commit()
        self._session.refresh(message)
        return message

    # --- Translations ---

    def create_translation(
        self,
        *,
        original_message_id: int,
        target_chat_id: str,
        translated_text: str | None,
        target_message_id: int | None,
        translation_time_ms: int,
        status: TranslationStatus = TranslationStatus.SUCCESS,
        error_message: str | None = None,
    ) -> TranslationRecord:
        record = TranslationRecord(
            original_message_id=original_message_id,
            translated_text=translated_text,
            target_chat_id=target_chat_id,
            target_message_id=target_message_id,
            translation_time_ms=max(translation_time_ms, 0),
            status=status,
            error_message=error_message,
        )
        self._session.add(record)
        try:
            self._session.commit()
        except IntegrityError:
            self._session.rollback()
            raise
        self._session.refresh(record)
        return record

    def get_translation(self, translation_id: int) -> TranslationRecord | None:
        return self._session.get(TranslationRecord, translation_id)

    def update_translation(
        self,
        translation_id: int,
        *,
        translated_text: str,
        translation_time_ms: int,
        status: TranslationStatus,
        error_message: str | None = None,
    ) -> TranslationRecord:
        translation = self.get_translation(translation_id)
        if translation is None:
            raise ValueError(f"Translation {translation_id} not found")
        translation.translated_text = translated_text
        translation.translation_time_ms = max(translation_time_ms, 0)
        translation.status = status
        translation.error_message = error_message
        translation.updated_at = datetime.now(UTC)
        self._session.add(translation)
        self._session.commit()
        self._session.refresh(translation)
        return translation

    def apply_edit(
        self,
        source_record_id: int,
        translation_id: int,
        *,
        source_text: str,
        translated_text: str,
        translation_time_ms: int,
    ) -> TranslationRecord:
        """Store an edit that reached the target channel: new source text and translation, one commit."""
        message = self.get_source_message(source_record_id)
        if message is None:
            raise ValueError(f"Source message {source_record_id} not found")
        translation = self.get_translation(translation_id)
        if translation is None:
            raise ValueError(f"Translation {translation_id} not found")
        message.text = source_text
        translation.translated_text = translated_text
        translation.translation_time_ms = max(translation_time_ms, 0)
        translation.status = TranslationStatus.UPDATED
        translation.error_message = None
        translation.updated_at = datetime.now(UTC)
        self._session.add(message)
        self._session.add(translation)
        self._session.commit()
        self._session.refresh(translation)
        return translation

    def count_by_status(self) -> dict[str, int]:
        statement = select(TranslationRecord.status, func.count()).group_by(
            TranslationRecord.status
        )
        return {status: count for status, count in self._session.exec(statement).all()}

    def count_source_messages(self) -> int:
        statement = select(func.count()).select_from(SourceMessageRecord)
        return self._session.exec(statement).one()

    def count_translations(self) -> int:
        statement = select(func.count()).select_from(TranslationRecord)
        return self._session.exec(statement).one()

    def rollback(self) -> None:
        """Reset the session after a failed flush/commit so later events can proceed."""
        self._session.rollback()
