"""Chat session layer composing the conversation tree and the transport."""

from .attachments import AttachmentError, load_attachment
from .log import setup_logging
from .session import ChatSession
from .settings import AppSettings, load_settings, save_settings

__all__ = [
    "AppSettings",
    "AttachmentError",
    "ChatSession",
    "load_attachment",
    "load_settings",
    "save_settings",
    "setup_logging",
]
