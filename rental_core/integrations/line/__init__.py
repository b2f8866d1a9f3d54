"""
LINE Messaging API client. Chat commands live in `.commands`, imported
directly by the webhook handler.
"""

from .client import LineClient, LineEvent, LineWebhookBody, text_message

__all__ = ["LineClient", "LineEvent", "LineWebhookBody", "text_message"]
