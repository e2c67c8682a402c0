#!/usr/bin/env python3
"""
Conversation history and the response cache keyed on it.
"""

import json
import logging

logger = logging.getLogger(__name__)

ROLES = ("system", "user", "assistant")


def make_message(role, content):
	"""Build a chat message in the wire format."""
	if role not in ROLES:
		raise ValueError(f"Unknown message role: {role}")
	return {"role": role, "content": content}


class Conversation:
	"""Ordered, append-only list of chat messages.

	Starts with exactly one system message. Messages are copied on the way in
	and out so appended entries can't be changed behind the conversation's back.
	"""

	def __init__(self, system_prompt):
		self._messages = [make_message("system", system_prompt)]

	def __len__(self):
		return len(self._messages)

	def append(self, message):
		"""Add a message to the tail."""
		self._messages.append(make_message(message["role"], message["content"]))

	def append_user(self, content):
		self.append(make_message("user", content))

	def append_assistant(self, content):
		self.append(make_message("assistant", content))

	def snapshot(self):
		"""Return the full ordered message list for transmission."""
		return [dict(message) for message in self._messages]

	def pending(self, question):
		"""Return the snapshot with a new user message, without storing it."""
		return self.snapshot() + [make_message("user", question)]


def cache_key(messages):
	"""Serialize a message list exactly, for use as a cache key."""
	return json.dumps(messages, ensure_ascii=False)


class ResponseCache:
	"""Unbounded map from serialized conversation prefix to full answer."""

	def __init__(self):
		self._entries = {}

	def __len__(self):
		return len(self._entries)

	def __contains__(self, key):
		return key in self._entries

	def get(self, key):
		return self._entries.get(key)

	def put(self, key, text):
		logger.debug("Caching answer (%d chars) for %d-byte key", len(text), len(key))
		self._entries[key] = text
