#!/usr/bin/env python3
"""
Incremental parsers for chat-completion response bodies.

Chunks arrive at whatever boundaries the network picks, so both parsers
keep their own buffer and only act on data that is known to be complete.
"""

import codecs
import json
import logging

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_LINE = "data: [DONE]"


def _delta_content(event):
	"""Extract choices[0].delta.content from a streamed event."""
	try:
		content = event["choices"][0]["delta"].get("content")
	except (KeyError, IndexError, TypeError, AttributeError):
		return ""
	return content if isinstance(content, str) else ""


def _message_content(body):
	"""Extract choices[0].message.content from a full response body."""
	content = body["choices"][0]["message"]["content"]
	return content.strip() if isinstance(content, str) else ""


class StreamParser:
	"""Turns server-sent `data:` lines into content fragments."""

	def __init__(self, on_fragment=None):
		self.on_fragment = on_fragment
		self.answer = ""
		self.done = False
		self._buffer = ""
		self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

	def feed(self, chunk):
		"""Consume a raw chunk and return the fragments it completed."""
		if isinstance(chunk, bytes):
			chunk = self._decoder.decode(chunk)
		self._buffer += chunk
		*lines, self._buffer = self._buffer.split("\n")
		return self._process(lines)

	def close(self):
		"""Flush whatever is left once the body has ended."""
		self._buffer += self._decoder.decode(b"", final=True)
		lines = [self._buffer] if self._buffer else []
		self._buffer = ""
		return self._process(lines)

	def _process(self, lines):
		fragments = []
		for line in lines:
			if self.done:
				break
			line = line.rstrip("\r")
			if line == DONE_LINE:
				self.done = True
				break
			if not line.startswith(DATA_PREFIX):
				continue
			try:
				event = json.loads(line[len(DATA_PREFIX):])
			except json.JSONDecodeError:
				logger.debug("Skipping malformed stream frame: %r", line)
				continue
			content = _delta_content(event)
			if not content:
				continue
			if self.on_fragment is not None:
				self.on_fragment(content)
			self.answer += content
			fragments.append(content)
		return fragments


class JsonBodyParser:
	"""Buffers a non-streamed body until it parses as one JSON object."""

	def __init__(self):
		self.answer = None
		self._buffer = b""

	def feed(self, chunk):
		"""Consume a raw chunk; return the answer once the body is complete."""
		self._buffer += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
		if not self._buffer.rstrip().endswith(b"}"):
			return None
		return self._try_parse()

	def close(self):
		"""Last parse attempt at end of body. Returns the answer or None."""
		if self._buffer.strip():
			self._try_parse()
		return self.answer

	def _try_parse(self):
		try:
			body = json.loads(self._buffer.decode("utf-8", errors="replace"))
			content = _message_content(body)
		except (json.JSONDecodeError, KeyError, IndexError, TypeError):
			return None
		self.answer = content
		self._buffer = b""
		return content
