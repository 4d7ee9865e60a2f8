"""Run the Telegram bot: ``python -m voicenotes.bot``."""

import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from voicenotes.bot.telegram import VoiceNotesBot
from voicenotes.config import settings
from voicenotes.services.container import build_container
from voicenotes.utils.logging_utils import setup_logging

logger = logging.getLogger("voicenotes.bot")


async def main() -> None:
    setup_logging(settings.log_level, settings.log_file)
    if not settings.telegram_bot_token:
        logger.error("VOICENOTES_TELEGRAM_BOT_TOKEN is not set")
        sys.exit(1)

    container = build_container(settings)
    if not container.transcriber.is_available():
        logger.warning(
            f"Transcription backend unavailable: {container.transcriber.unavailable_reason()}"
        )

    bot = Bot(
        token=settings.telegram_bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dispatcher = Dispatcher()
    dispatcher.include_router(VoiceNotesBot(container).build_router())

    me = await bot.get_me()
    logger.info(f"Bot @{me.username} running, storage at {settings.audio_dir}")
    try:
        await dispatcher.start_polling(bot)
    finally:
        await bot.session.close()
        container.engine.dispose()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
