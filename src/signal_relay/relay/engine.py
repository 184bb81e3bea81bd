from __future__ import annotations

import time
from collections.abc import Awaitable
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import SQLAlchemyError

from signal_relay.models import (
    DeliveryResult,
    InboundMessage,
    RelayResult,
    RelayStatus,
    TranslationStatus,
)
from signal_relay.relay.chat_ids import is_source_chat, normalize_chat_id
from signal_relay.storage.repository import DuplicateMessageError

if TYPE_CHECKING:
    from signal_relay.relay.delivery import Delivery
    from signal_relay.storage.repository import MessageRepository
    from signal_relay.translator import Translator

logger = structlog.get_logger(__name__)

_NO_TARGET_MESSAGE = "no delivered target message to edit"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class RelayEngine:
    """Translate source-channel posts into the target channel and keep them correlated.

    Every stored source message maps to at most one translation row; edits
    mutate that row and replies are threaded onto the translated parent.
    Nothing raised by the store, the translator or the delivery escapes: the
    outcome is returned as a RelayResult and, where a row exists, recorded on it.
    """

    def __init__(
        self,
        *,
        source_channel_id: str,
        target_channel_id: str,
        repo: MessageRepository,
        translator: Translator,
        delivery: Delivery,
    ) -> None:
        self._source_channel_id = source_channel_id
        self._source_chat = normalize_chat_id(source_channel_id)
        self._target_channel_id = target_channel_id
        self._repo = repo
        self._translator = translator
        self._delivery = delivery

    def accepts(self, event: InboundMessage) -> bool:
        return is_source_chat(
            event.chat_id, self._source_channel_id, chat_type=event.chat_type
        ) and event.has_text

    # --- New posts ---

    async def handle_new_message(self, event: InboundMessage) -> RelayResult:
        if not self.accepts(event):
            return RelayResult(status=RelayStatus.IGNORED, chat_id=event.chat_id,
                               message_id=event.message_id)

        chat_id = self._source_chat
        log = logger.bind(chat_id=chat_id, message_id=event.message_id)
        log.info("relay_new_message")

        try:
            source = self._repo.create_source_message(
                chat_id=chat_id,
                message_id=event.message_id,
                date=event.date,
                text=event.text,
                reply_to_message_id=event.reply_to_message_id,
                metadata=event.metadata,
            )
        except DuplicateMessageError:
            log.info("relay_duplicate_skipped")
            return RelayResult(status=RelayStatus.DUPLICATE, chat_id=chat_id,
                               message_id=event.message_id)
        except SQLAlchemyError as e:
            self._repo.rollback()
            log.error("relay_store_failed", stage="source_message", error=str(e))
            return RelayResult(status=RelayStatus.STORE_FAILED, chat_id=chat_id,
                               message_id=event.message_id, error=str(e))

        start = time.monotonic()
        translated = await self._translator.translate(event.text)
        translation_time_ms = _elapsed_ms(start)

        if not translated:
            log.warning("relay_translation_failed")
            translation_id = self._record_translation(
                log,
                source_record_id=source.id,
                translated_text=None,
                target_message_id=None,
                translation_time_ms=translation_time_ms,
                status=TranslationStatus.TRANSLATION_FAILED,
                error_message="no translation produced",
            )
            return RelayResult(
                status=RelayStatus.TRANSLATION_FAILED,
                chat_id=chat_id,
                message_id=event.message_id,
                source_record_id=source.id,
                translation_id=translation_id,
                error="no translation produced",
            )

        reply_target = self._resolve_reply_target(log, event.reply_to_message_id)
        delivery = await self._guarded(
            log, "send", self._delivery.send(translated, reply_to_message_id=reply_target),
        )

        if delivery.ok:
            status = TranslationStatus.SUCCESS
            relay_status = RelayStatus.DELIVERED
            log.info("relay_delivered", target_message_id=delivery.message_id,
                     reply_to=reply_target)
        else:
            status = TranslationStatus.FAILED
            relay_status = RelayStatus.DELIVERY_FAILED
            log.error("relay_delivery_failed", error=delivery.error)

        translation_id = self._record_translation(
            log,
            source_record_id=source.id,
            translated_text=translated,
            target_message_id=delivery.message_id if delivery.ok else None,
            translation_time_ms=translation_time_ms,
            status=status,
            error_message=None if delivery.ok else (delivery.error or "delivery failed"),
        )
        if translation_id is None:
            relay_status = RelayStatus.STORE_FAILED

        return RelayResult(
            status=relay_status,
            chat_id=chat_id,
            message_id=event.message_id,
            source_record_id=source.id,
            translation_id=translation_id,
            target_message_id=delivery.message_id if delivery.ok else None,
            reply_to_target_message_id=reply_target,
            error=delivery.error,
        )

    # --- Edits ---

    async def handle_edited_message(self, event: InboundMessage) -> RelayResult:
        if not self.accepts(event):
            return RelayResult(status=RelayStatus.IGNORED, chat_id=event.chat_id,
                               message_id=event.message_id)

        chat_id = self._source_chat
        log = logger.bind(chat_id=chat_id, message_id=event.message_id)
        log.info("relay_edit")

        try:
            found = self._repo.find_source_message(chat_id, event.message_id)
        except SQLAlchemyError as e:
            self._repo.rollback()
            log.error("relay_store_failed", stage="lookup", error=str(e))
            return RelayResult(status=RelayStatus.STORE_FAILED, chat_id=chat_id,
                               message_id=event.message_id, error=str(e))

        if found is None or found[1] is None:
            log.info("relay_edit_untracked")
            return RelayResult(status=RelayStatus.NOT_FOUND, chat_id=chat_id,
                               message_id=event.message_id)

        source, translation = found
        if translation.status == TranslationStatus.TRANSLATION_FAILED:
            log.info("relay_edit_never_translated")
            return RelayResult(status=RelayStatus.NOT_FOUND, chat_id=chat_id,
                               message_id=event.message_id, source_record_id=source.id,
                               translation_id=translation.id)

        start = time.monotonic()
        translated = await self._translator.translate(event.text)
        translation_time_ms = _elapsed_ms(start)

        if not translated:
            log.warning("relay_edit_translation_failed")
            return RelayResult(
                status=RelayStatus.TRANSLATION_FAILED,
                chat_id=chat_id,
                message_id=event.message_id,
                source_record_id=source.id,
                translation_id=translation.id,
                target_message_id=translation.target_message_id,
                error="no translation produced",
            )

        if translation.target_message_id is None:
            delivery = DeliveryResult(ok=False, error=_NO_TARGET_MESSAGE)
        else:
            delivery = await self._guarded(
                log, "edit", self._delivery.edit(translation.target_message_id, translated),
            )

        try:
            if delivery.ok:
                self._repo.apply_edit(
                    source.id,
                    translation.id,
                    source_text=event.text,
                    translated_text=translated,
                    translation_time_ms=translation_time_ms,
                )
            else:
                self._repo.update_translation(
                    translation.id,
                    translated_text=translated,
                    translation_time_ms=translation_time_ms,
                    status=TranslationStatus.UPDATE_FAILED,
                    error_message=delivery.error or "edit failed",
                )
        except SQLAlchemyError as e:
            self._repo.rollback()
            log.error("relay_store_failed", stage="translation_update", error=str(e))
            return RelayResult(status=RelayStatus.STORE_FAILED, chat_id=chat_id,
                               message_id=event.message_id, source_record_id=source.id,
                               translation_id=translation.id, error=str(e))

        if delivery.ok:
            log.info("relay_edit_applied", target_message_id=translation.target_message_id)
            relay_status = RelayStatus.UPDATED
        else:
            log.error("relay_edit_failed", error=delivery.error)
            relay_status = RelayStatus.UPDATE_FAILED

        return RelayResult(
            status=relay_status,
            chat_id=chat_id,
            message_id=event.message_id,
            source_record_id=source.id,
            translation_id=translation.id,
            target_message_id=translation.target_message_id,
            error=delivery.error,
        )

    # --- Helpers ---

    async def _guarded(
        self,
        log: structlog.typing.FilteringBoundLogger,
        operation: str,
        call: Awaitable[DeliveryResult],
    ) -> DeliveryResult:
        """Turn anything a Delivery raises into a failed DeliveryResult."""
        try:
            return await call
        except Exception as e:
            error = str(e) or type(e).__name__
            log.error("relay_delivery_raised", operation=operation, error=error,
                      error_type=type(e).__name__)
            return DeliveryResult(ok=False, error=error)

    def _resolve_reply_target(
        self, log: structlog.typing.FilteringBoundLogger, reply_to_message_id: int | None
    ) -> int | None:
        """Target-channel id of the translated parent, if the parent was delivered."""
        if reply_to_message_id is None:
            return None
        try:
            found = self._repo.find_source_message(self._source_chat, reply_to_message_id)
        except SQLAlchemyError as e:
            self._repo.rollback()
            log.warning("relay_reply_lookup_failed", reply_to=reply_to_message_id, error=str(e))
            return None
        if found is None or found[1] is None:
            log.info("relay_reply_parent_untracked", reply_to=reply_to_message_id)
            return None
        return found[1].target_message_id

    def _record_translation(
        self,
        log: structlog.typing.FilteringBoundLogger,
        *,
        source_record_id: int | None,
        translated_text: str | None,
        target_message_id: int | None,
        translation_time_ms: int,
        status: TranslationStatus,
        error_message: str | None,
    ) -> int | None:
        try:
            record = self._repo.create_translation(
                original_message_id=source_record_id,
                target_chat_id=self._target_channel_id,
                translated_text=translated_text,
                target_message_id=target_message_id,
                translation_time_ms=translation_time_ms,
                status=status,
                error_message=error_message,
            )
        except SQLAlchemyError as e:
            self._repo.rollback()
            log.error("relay_store_failed", stage="translation", status=status, error=str(e))
            return None
        log.info("translation_recorded", translation_id=record.id, status=status)
        return record.id
