from __future__ import annotations

import argparse
import asyncio
import signal
from typing import Any
from urllib.parse import urlparse

import structlog
from sqlmodel import Session
from telegram import Bot, Update

from signal_relay.config import Settings
from signal_relay.llm.backend import LiteLLMBackend
from signal_relay.llm.client import LLMClient
from signal_relay.logging import setup_logging
from signal_relay.prompts import DEFAULT_TRANSLATION_PROMPT
from signal_relay.relay.delivery import TelegramDelivery
from signal_relay.relay.engine import RelayEngine
from signal_relay.storage.database import check_connection, create_db_engine, init_db
from signal_relay.storage.repository import MessageRepository
from signal_relay.telegram.bot import RelayBot
from signal_relay.translator import Translator

logger = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="signal_relay", description="Translate and relay channel posts",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Relay posts (default)")
    translate = subparsers.add_parser("translate", help="Translate a text once and print it")
    translate.add_argument("text")
    subparsers.add_parser("status", help="Print translation counts by status")
    return parser.parse_args(argv)


def webhook_path(webhook_url: str) -> str:
    return urlparse(webhook_url).path.lstrip("/")


def create_app_components(
    *,
    telegram_bot_token: str,
    source_channel_id: str,
    target_channel_id: str,
    database_url: str,
    openrouter_api_key: str = "",
    openrouter_model: str = "openai/gpt-4o-mini",
    llm_temperature: float = 0.1,
    llm_max_tokens: int = 2000,
    llm_timeout_seconds: float = 60.0,
    ai_prompt: str = DEFAULT_TRANSLATION_PROMPT,
    delivery_timeout_seconds: float = 30.0,
    delivery_address_fallback: bool = False,
) -> dict[str, Any]:
    # Database
    db_engine = create_db_engine(database_url)
    init_db(db_engine)
    session = Session(db_engine)
    repo = MessageRepository(session)

    # LLM
    llm_client = LLMClient(
        backend=LiteLLMBackend(api_key=openrouter_api_key),
        model=openrouter_model,
        temperature=llm_temperature,
        max_tokens=llm_max_tokens,
        timeout=llm_timeout_seconds,
    )
    translator = Translator(llm_client, system_prompt=ai_prompt)

    # Telegram
    tg_bot = Bot(token=telegram_bot_token)
    delivery = TelegramDelivery(
        tg_bot,
        target_channel_id,
        fallback=delivery_address_fallback,
        timeout=delivery_timeout_seconds,
    )

    # Relay
    relay_engine = RelayEngine(
        source_channel_id=source_channel_id,
        target_channel_id=target_channel_id,
        repo=repo,
        translator=translator,
        delivery=delivery,
    )
    bot = RelayBot(tg_bot, engine=relay_engine)

    return {
        "bot": bot,
        "db_engine": db_engine,
        "session": session,
        "repo": repo,
        "llm_client": llm_client,
        "translator": translator,
        "delivery": delivery,
        "relay_engine": relay_engine,
    }


def _build_components(settings: Settings) -> dict[str, Any]:
    return create_app_components(
        telegram_bot_token=settings.telegram_bot_token,
        source_channel_id=settings.source_channel_id,
        target_channel_id=settings.target_channel_id,
        database_url=settings.database_url,
        openrouter_api_key=settings.openrouter_api_key,
        openrouter_model=settings.openrouter_model,
        llm_temperature=settings.llm_temperature,
        llm_max_tokens=settings.llm_max_tokens,
        llm_timeout_seconds=settings.llm_timeout_seconds,
        ai_prompt=settings.ai_prompt,
        delivery_timeout_seconds=settings.delivery_timeout_seconds,
        delivery_address_fallback=settings.delivery_address_fallback,
    )


async def _run_translate(components: dict[str, Any], text: str) -> None:
    translator: Translator = components["translator"]
    translated = await translator.translate(text)
    if translated is None:
        print("No translation produced.")
        return
    print(translated)


def _run_status(components: dict[str, Any]) -> None:
    repo: MessageRepository = components["repo"]
    print(f"Source messages: {repo.count_source_messages()}")
    counts = repo.count_by_status()
    if not counts:
        print("No translations yet.")
        return
    for status, count in sorted(counts.items()):
        print(f"  {status}: {count}")


async def _run_bot(components: dict[str, Any], settings: Settings) -> None:
    bot: RelayBot = components["bot"]
    app = bot.build()
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with app:
        await app.start()
        check_connection(components["db_engine"])
        await bot.log_identity()

        if settings.mode == "prod":
            await app.updater.start_webhook(
                listen=settings.webhook_listen,
                port=settings.port,
                url_path=webhook_path(settings.webhook_url),
                webhook_url=settings.webhook_url,
                allowed_updates=Update.ALL_TYPES,
            )
            logger.info("webhook_ready", url=settings.webhook_url, port=settings.port)
        else:
            await app.updater.start_polling(allowed_updates=Update.ALL_TYPES)
            logger.info("polling_ready")

        logger.info(
            "relay_ready",
            source=settings.source_channel_id,
            target=settings.target_channel_id,
            mode=settings.mode,
        )

        await stop.wait()

        logger.info("shutting_down")
        await app.updater.stop()
        await app.stop()

    components["session"].close()
    components["db_engine"].dispose()


def main() -> None:
    args = parse_args()
    settings = Settings()  # type: ignore[call-arg]
    setup_logging(json_output=settings.log_json, level=settings.log_level)
    logger.info("starting_signal_relay", mode=settings.mode)

    components = _build_components(settings)

    if args.command == "translate":
        asyncio.run(_run_translate(components, args.text))
        return

    if args.command == "status":
        _run_status(components)
        return

    asyncio.run(_run_bot(components, settings))


if __name__ == "__main__":
    main()
