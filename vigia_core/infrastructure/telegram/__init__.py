"""Adapter da Bot API do Telegram."""

from .bot_api import TelegramBotTransport, parse_update

__all__ = ["TelegramBotTransport", "parse_update"]
