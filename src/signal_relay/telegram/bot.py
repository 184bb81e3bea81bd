from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from telegram import Bot, Message, Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from signal_relay.models import InboundMessage

if TYPE_CHECKING:
    from signal_relay.models import RelayResult
    from signal_relay.relay.engine import RelayEngine

logger = structlog.get_logger(__name__)

NEW_POST_FILTER = filters.UpdateType.CHANNEL_POST | filters.UpdateType.MESSAGE
EDITED_POST_FILTER = filters.UpdateType.EDITED


def inbound_from_message(message: Message) -> InboundMessage:
    """Project a Telegram message onto the fields the relay stores."""
    reply_to = message.reply_to_message.message_id if message.reply_to_message else None
    sender: dict[str, Any] | None = None
    if message.from_user is not None:
        sender = message.from_user.to_dict()
    elif message.sender_chat is not None:
        sender = message.sender_chat.to_dict()

    return InboundMessage(
        chat_id=str(message.chat_id),
        message_id=message.message_id,
        date=message.date,
        text=message.text,
        reply_to_message_id=reply_to,
        chat_type=str(message.chat.type),
        metadata={
            "from": sender,
            "entities": [entity.to_dict() for entity in message.entities],
            "reply_to": reply_to,
        },
    )


class RelayBot:
    def __init__(self, bot: Bot, *, engine: RelayEngine | None = None) -> None:
        self.bot = bot
        self._engine = engine
        self._app: Application | None = None

    def set_engine(self, engine: RelayEngine) -> None:
        self._engine = engine

    def build(self, *, post_init: Any = None) -> Application:
        builder = Application.builder().bot(self.bot)
        if post_init is not None:
            builder = builder.post_init(post_init)
        self._app = builder.build()
        self._app.add_handler(MessageHandler(NEW_POST_FILTER, self._new_post_handler))
        self._app.add_handler(MessageHandler(EDITED_POST_FILTER, self._edited_post_handler))
        self._app.add_error_handler(self._error_handler)
        return self._app

    async def log_identity(self) -> None:
        """Log who we are; a failure here only means the token/network is off."""
        try:
            me = await self.bot.get_me()
        except Exception as e:
            logger.error("bot_info_failed", error=str(e))
            return
        logger.info("bot_info", username=me.username, bot_id=me.id)

    # --- Update handlers ---

    async def _new_post_handler(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> RelayResult | None:
        message = update.channel_post or update.message
        if message is None or self._engine is None:
            return None
        return await self._engine.handle_new_message(inbound_from_message(message))

    async def _edited_post_handler(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> RelayResult | None:
        message = update.edited_channel_post or update.edited_message
        if message is None or self._engine is None:
            return None
        return await self._engine.handle_edited_message(inbound_from_message(message))

    async def _error_handler(
        self, update: object, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        update_id = update.update_id if isinstance(update, Update) else None
        logger.error(
            "update_handler_error",
            update_id=update_id,
            error=str(context.error),
            error_type=type(context.error).__name__,
        )
