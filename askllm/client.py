#!/usr/bin/env python3
"""
HTTP client for OpenAI-compatible chat-completion endpoints.
"""

import logging

import httpx

from .config import Settings
from .conversation import cache_key
from .stream import JsonBodyParser, StreamParser

logger = logging.getLogger(__name__)

# Role-transition tokens some chat templates leak into the output
STOP_SEQUENCES = ["<|im_end|>", "<|end|>", "<|eot_id|>"]
MAX_TOKENS = 200
TEMPERATURE = 0


class ChatError(Exception):
	"""Base class for failed chat requests."""

	def __init__(self, message="error"):
		super().__init__(message)
		self.message = message


class ChatHTTPError(ChatError):
	"""The endpoint answered with a non-success status."""

	def __init__(self, status_code, reason=""):
		super().__init__(f"HTTP error: {status_code} {reason}".rstrip())
		self.status_code = status_code
		self.reason = reason


class ChatTransportError(ChatError):
	"""The request failed below HTTP (connection refused, DNS, bad encoding, ...)."""


class ChatResponseError(ChatError):
	"""The response body ended without a usable answer."""


class ChatClient:
	"""Sends conversations to the endpoint and collects the answer.

	One persistent ``httpx.Client`` is reused across calls. At most one
	request is in flight at a time, so it needs no locking.

	Usage:
		with ChatClient(settings, cache=ResponseCache()) as client:
			answer = client.chat(messages, handler=print)
	"""

	def __init__(self, settings=None, cache=None, http_client=None):
		self.settings = settings or Settings()
		self.cache = cache
		self._owns_http = http_client is None
		self._http = http_client or httpx.Client(timeout=self.settings.timeout)

	def __enter__(self):
		return self

	def __exit__(self, exc_type, exc, tb):
		self.close()
		return False

	def close(self):
		"""Close the HTTP client if this instance created it."""
		if self._owns_http:
			self._http.close()

	def build_headers(self):
		headers = {"Content-Type": "application/json"}
		if self.settings.api_key:
			headers["Authorization"] = f"Bearer {self.settings.api_key}"
		return headers

	def build_payload(self, messages, stream):
		return {
			"messages": messages,
			"model": self.settings.model,
			"stop": list(STOP_SEQUENCES),
			"max_tokens": MAX_TOKENS,
			"temperature": TEMPERATURE,
			"stream": stream,
		}

	def chat(self, messages, handler=None):
		"""Send ``messages`` and return the trimmed answer.

		Args:
			messages: Full conversation, oldest first, ending with the new user turn
			handler: Called with each fragment as it arrives; streaming is only
				requested when this is given and streaming is enabled

		Raises:
			ChatHTTPError: Non-success status
			ChatTransportError: Network-level failure or undecodable body
			ChatResponseError: Non-streamed body never parsed
		"""
		stream = self.settings.streaming and handler is not None
		use_cache = not self.settings.streaming and self.cache is not None
		key = cache_key(messages)

		if use_cache:
			cached = self.cache.get(key)
			if cached is not None:
				logger.debug("Cache hit for %d messages", len(messages))
				return cached

		url = self.settings.completions_url
		logger.debug("POST %s model=%s stream=%s", url, self.settings.model, stream)
		try:
			with self._http.stream(
				"POST",
				url,
				headers=self.build_headers(),
				json=self.build_payload(messages, stream),
			) as response:
				if not response.is_success:
					raise ChatHTTPError(response.status_code, response.reason_phrase)
				if stream:
					answer = self._read_stream(response, handler)
				else:
					answer = self._read_body(response)
		except httpx.RequestError as e:
			raise ChatTransportError(f"{type(e).__name__}: {e}") from e

		answer = answer.strip()
		if use_cache:
			self.cache.put(key, answer)
		return answer

	def _read_stream(self, response, handler):
		parser = StreamParser(on_fragment=handler)
		# Read to the end after [DONE] so the connection goes back to the pool
		for chunk in response.iter_bytes():
			parser.feed(chunk)
		parser.close()
		return parser.answer

	def _read_body(self, response):
		parser = JsonBodyParser()
		for chunk in response.iter_bytes():
			parser.feed(chunk)
		answer = parser.close()
		if answer is None:
			raise ChatResponseError("Malformed response body: no answer could be parsed")
		return answer
