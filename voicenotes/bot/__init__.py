"""Telegram bot ingress."""

from voicenotes.bot.telegram import VoiceNotesBot

__all__ = ["VoiceNotesBot"]
