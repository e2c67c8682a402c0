#!/usr/bin/env python3
"""
Interactive command-line chat for OpenAI-compatible endpoints.
"""

from .client import ChatClient, ChatError, ChatHTTPError, ChatResponseError, ChatTransportError
from .config import Settings, load_settings
from .conversation import Conversation, ResponseCache, cache_key
from .stream import JsonBodyParser, StreamParser

__all__ = [
	"ChatClient",
	"ChatError",
	"ChatHTTPError",
	"ChatResponseError",
	"ChatTransportError",
	"Conversation",
	"JsonBodyParser",
	"ResponseCache",
	"Settings",
	"StreamParser",
	"cache_key",
	"load_settings",
]
