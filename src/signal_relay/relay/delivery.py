from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog
from telegram import Message, ReplyParameters
from telegram.error import BadRequest, Forbidden, TelegramError

from signal_relay.models import DeliveryResult
from signal_relay.relay.chat_ids import address_renderings

if TYPE_CHECKING:
    from telegram import Bot

logger = structlog.get_logger(__name__)

_NOT_MODIFIED = "Message is not modified"


class Delivery(ABC):
    """Send/edit text in the target channel."""

    @abstractmethod
    async def send(
        self, text: str, *, reply_to_message_id: int | None = None
    ) -> DeliveryResult: ...

    @abstractmethod
    async def edit(self, message_id: int, text: str) -> DeliveryResult: ...


class TelegramDelivery(Delivery):
    """Bot API delivery, trying each chat id rendering until one is accepted.

    Addressing errors (BadRequest, Forbidden) move on to the next rendering.
    Transport errors and timeouts end the attempt: the platform may already
    have accepted the message, and a retry could post it twice.
    """

    def __init__(
        self,
        bot: Bot,
        target_channel_id: str,
        *,
        fallback: bool = False,
        timeout: float | None = 30.0,
    ) -> None:
        self._bot = bot
        self.target_channel_id = target_channel_id
        self._renderings = address_renderings(target_channel_id, fallback=fallback)
        self._timeout = timeout

    @property
    def renderings(self) -> list[int | str]:
        return list(self._renderings)

    async def send(
        self, text: str, *, reply_to_message_id: int | None = None
    ) -> DeliveryResult:
        reply_parameters = None
        if reply_to_message_id is not None:
            reply_parameters = ReplyParameters(
                message_id=reply_to_message_id, allow_sending_without_reply=True,
            )

        def _call(chat_id: int | str) -> Awaitable[Message | bool]:
            return self._bot.send_message(
                chat_id=chat_id, text=text, reply_parameters=reply_parameters,
            )

        return await self._attempt("send", _call)

    async def edit(self, message_id: int, text: str) -> DeliveryResult:
        def _call(chat_id: int | str) -> Awaitable[Message | bool]:
            return self._bot.edit_message_text(
                text=text, chat_id=chat_id, message_id=message_id,
            )

        result = await self._attempt("edit", _call, not_modified_ok=True)
        if result.ok and result.message_id is None:
            return result.model_copy(update={"message_id": message_id})
        return result

    async def _attempt(
        self,
        operation: str,
        call: Callable[[int | str], Awaitable[Message | bool]],
        *,
        not_modified_ok: bool = False,
    ) -> DeliveryResult:
        log = logger.bind(operation=operation, target=self.target_channel_id)
        last_error = ""
        last_rendering = ""

        for rendering in self._renderings:
            last_rendering = repr(rendering)
            try:
                sent = await asyncio.wait_for(call(rendering), timeout=self._timeout)
            except (BadRequest, Forbidden) as e:
                if not_modified_ok and _NOT_MODIFIED in str(e):
                    log.info("delivery_not_modified", rendering=last_rendering)
                    return DeliveryResult(ok=True, rendering=last_rendering)
                last_error = str(e) or type(e).__name__
                log.warning("delivery_rendering_failed", rendering=last_rendering, error=last_error)
                continue
            except (TelegramError, TimeoutError) as e:
                last_error = str(e) or type(e).__name__
                log.error("delivery_failed", rendering=last_rendering, error=last_error)
                return DeliveryResult(ok=False, error=last_error, rendering=last_rendering)

            message_id = sent.message_id if isinstance(sent, Message) else None
            log.info("delivery_ok", rendering=last_rendering, message_id=message_id)
            return DeliveryResult(ok=True, message_id=message_id, rendering=last_rendering)

        log.error("delivery_exhausted", attempts=len(self._renderings), error=last_error)
        return DeliveryResult(
            ok=False,
            error=last_error or "no chat id rendering available",
            rendering=last_rendering,
        )
