"""Telegram bot ingress: voice messages in, transcripts out."""

import logging

from aiogram import F, Router, html
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import Message

from voicenotes.schemas.note import Note, Provenance, SourceChannel
from voicenotes.schemas.search import NoteStats
from voicenotes.services.container import ServiceContainer
from voicenotes.utils.exceptions import VoiceNotesException

logger = logging.getLogger(__name__)

LIST_LIMIT = 10
SEARCH_LIMIT = 5
LIST_PREVIEW_CHARS = 50
SEARCH_PREVIEW_CHARS = 100

HELP_TEXT = (
    f"📖 {html.bold('Help')}\n\n"
    f"{html.bold('How to use:')}\n"
    "1. Record a voice message in Telegram\n"
    "2. Send it to this bot\n"
    "3. Wait for the transcription\n\n"
    f"{html.bold('Commands:')}\n"
    "/list - Show recent voice notes\n"
    "/search &lt;keyword&gt; - Find specific notes\n"
    "/stats - View statistics"
)


def is_allowed(user_id: int | None, allowed_users: list[str]) -> bool:
    """An empty allow-list lets everyone in."""
    if not allowed_users:
        return True
    return user_id is not None and str(user_id) in allowed_users


def _timestamp(note: Note) -> str:
    return f"{note.created_at:%Y-%m-%d %H:%M} UTC"


def format_welcome(user_id: int) -> str:
    return (
        f"🎙️ {html.bold('Voice Notes Bot')}\n\n"
        "Send me voice messages and I'll transcribe them!\n\n"
        f"{html.bold('Your User ID:')} {html.code(str(user_id))}\n\n"
        f"{html.bold('Commands:')}\n"
        "/start - Show this message\n"
        "/list - List recent voice notes\n"
        "/search &lt;keyword&gt; - Search transcripts\n"
        "/stats - Show statistics\n"
        "/help - Get help"
    )


def format_note_list(notes: list[Note]) -> str:
    """Most recent notes, newest first."""
    if not notes:
        return "📭 No voice notes yet. Send one to get started!"

    lines = [f"📋 {html.bold('Recent Voice Notes')} ({len(notes)} total)", ""]
    for note in notes[:LIST_LIMIT]:
        preview = note.transcript_text[:LIST_PREVIEW_CHARS]
        lines.append(f"🎙 {html.bold(_timestamp(note))}")
        lines.append(f"   {html.quote(preview)}...")
        lines.append(f"   ID: {html.code(note.id)}")
        lines.append("")
    return "\n".join(lines).rstrip()


def format_search_results(query: str, notes: list[Note]) -> str:
    if not notes:
        return f'🔍 No results for "{html.quote(query)}"'

    lines = [
        f"🔍 {html.bold('Search Results')} ({len(notes)} found)",
        "",
        f'Query: "{html.quote(query)}"',
        "",
    ]
    for note in notes[:SEARCH_LIMIT]:
        preview = note.transcript_text[:SEARCH_PREVIEW_CHARS]
        lines.append(f"🎙 {html.bold(_timestamp(note))}")
        lines.append(f"   {html.quote(preview)}...")
        lines.append("")
    return "\n".join(lines).rstrip()


def format_stats(stats: NoteStats) -> str:
    return (
        f"📊 {html.bold('Voice Notes Statistics')}\n\n"
        f"Total Notes: {stats.total_notes}\n"
        f"Total Duration: {int(stats.total_duration_seconds // 60)} minutes\n"
        f"Total Words: {stats.total_words:,}\n\n"
        f"Average Duration: {stats.average_duration_seconds:.1f}s per note\n"
        f"Average Words: {stats.average_words} words per note"
    )


def format_transcription_result(note: Note) -> str:
    transcript = note.transcript
    language = transcript.language_code if transcript is not None else "unknown"
    header = (
        "⚠️ Transcription Failed"
        if transcript is not None and transcript.is_failure
        else "✅ Transcription Complete"
    )
    return (
        f"{html.bold(header)}\n\n"
        f"{html.quote(note.transcript_text)}\n\n"
        "---\n"
        f"Duration: {note.duration_seconds:g}s\n"
        f"Language: {html.quote(language)}\n"
        f"ID: {html.code(note.id)}"
    )


class VoiceNotesBot:
    """Telegram handlers bound to the shared services."""

    def __init__(self, container: ServiceContainer):
        self.container = container
        self.allowed_users = container.settings.telegram_allowed_users
        if not self.allowed_users:
            logger.warning("No Telegram allowed users configured, allowing all users")

    def build_router(self) -> Router:
        router = Router(name="voicenotes")
        router.message.register(self.handle_start, CommandStart())
        router.message.register(self.handle_help, Command("help"))
        router.message.register(self.handle_list, Command("list"))
        router.message.register(self.handle_search, Command("search"))
        router.message.register(self.handle_stats, Command("stats"))
        router.message.register(self.handle_voice, F.voice)
        router.message.register(self.handle_audio, F.audio)
        return router

    async def _authorize(self, message: Message) -> bool:
        user_id = message.from_user.id if message.from_user else None
        if is_allowed(user_id, self.allowed_users):
            return True
        logger.warning(f"Unauthorized Telegram user: {user_id}")
        await message.answer(
            f"❌ Unauthorized. Your user ID: {html.code(str(user_id))}\n\n"
            "Ask the owner to add it to VOICENOTES_TELEGRAM_ALLOWED_USERS"
        )
        return False

    async def handle_start(self, message: Message) -> None:
        user_id = message.from_user.id if message.from_user else 0
        logger.info(f"/start from user {user_id}")
        await message.answer(format_welcome(user_id))

    async def handle_help(self, message: Message) -> None:
        await message.answer(HELP_TEXT)

    async def handle_list(self, message: Message) -> None:
        if not await self._authorize(message):
            return
        notes = self.container.note_service.list_notes()
        await message.answer(format_note_list(notes))

    async def handle_search(self, message: Message, command: CommandObject) -> None:
        if not await self._authorize(message):
            return
        query = (command.args or "").strip()
        if not query:
            await message.answer("Usage: /search &lt;keyword&gt;")
            return
        results = self.container.note_service.search(query)
        await message.answer(format_search_results(query, results))

    async def handle_stats(self, message: Message) -> None:
        if not await self._authorize(message):
            return
        await message.answer(format_stats(self.container.note_service.get_stats()))

    async def handle_voice(self, message: Message) -> None:
        if not await self._authorize(message):
            return

        voice = message.voice
        user = message.from_user
        logger.info(f"Voice message from user {user.id if user else None}")
        status_message = await message.answer("🎙️ Processing voice note...")

        try:
            file = await message.bot.get_file(voice.file_id)
            stream = await message.bot.download_file(file.file_path)
            try:
                audio_bytes = stream.read()
            finally:
                stream.close()

            provenance = Provenance(
                source_channel=SourceChannel.BOT,
                original_filename=(file.file_path or "voice.ogg").rsplit("/", 1)[-1],
                content_type=voice.mime_type,
                duration_seconds=float(voice.duration or 0),
                external_payload={
                    "user": {
                        "id": user.id if user else None,
                        "username": (user.username or user.first_name) if user else None,
                    },
                    "chat_id": message.chat.id,
                },
            )
            note = await self.container.pipeline.process_note(audio_bytes, provenance)
        except VoiceNotesException as e:
            logger.error(f"Voice note from Telegram could not be stored: {e}")
            await status_message.edit_text(f"❌ Error: {html.quote(str(e))}")
            return
        except Exception as e:
            logger.exception("Failed to fetch or process voice note from Telegram")
            await status_message.edit_text(f"❌ Error: {html.quote(str(e))}")
            return

        await status_message.delete()
        await message.answer(format_transcription_result(note))

    async def handle_audio(self, message: Message) -> None:
        await message.answer(
            "🎵 Audio file received. Please send as voice message for transcription."
        )
