#!/usr/bin/env python3
"""
Configuration for ask-llm: defaults, JSON config file and environment.
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = os.environ.get("ASKLLM_CONFIG_PATH", "askllm.json")

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_SYSTEM_PROMPT = "Answer the question politely and concisely."

DEFAULT_CONFIG = {
	"base_url": DEFAULT_BASE_URL,
	"model": DEFAULT_MODEL,
	"streaming": True,
	"debug": False,
	"system_prompt": DEFAULT_SYSTEM_PROMPT,
	"timeout": None,
}


@dataclass(frozen=True)
class Settings:
	"""Static configuration resolved once at startup."""

	base_url: str = DEFAULT_BASE_URL
	api_key: Optional[str] = None
	model: str = DEFAULT_MODEL
	streaming: bool = True
	debug: bool = False
	system_prompt: str = DEFAULT_SYSTEM_PROMPT
	timeout: Optional[float] = None

	@property
	def completions_url(self) -> str:
		return f"{self.base_url.rstrip('/')}/chat/completions"

	def override(self, **changes) -> "Settings":
		"""Return a copy with every non-None value in ``changes`` applied."""
		return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_config_file(path=None):
	"""Load the JSON config file, falling back to an empty dict."""
	path = path or CONFIG_PATH
	if not os.path.exists(path):
		return {}
	try:
		with open(path, "r", encoding="utf-8") as f:
			data = json.load(f)
	except (IOError, ValueError) as e:
		logger.warning("Could not read config file %s (%s). Using defaults only.", path, e)
		return {}
	if not isinstance(data, dict):
		logger.warning("Config file %s does not hold a JSON object. Using defaults only.", path)
		return {}
	return data


def _parse_timeout(value):
	if value is None or value == "" or isinstance(value, bool):
		return None
	try:
		timeout = float(value)
	except (TypeError, ValueError):
		logger.warning("Ignoring invalid timeout %r", value)
		return None
	return timeout if timeout > 0 else None


def load_settings(env=None, config_path=None):
	"""Resolve settings from defaults, the config file and the environment.

	Environment variables win over the config file:

	- ``LLM_API_BASE_URL``: endpoint base URL
	- ``LLM_API_KEY`` or ``OPENAI_API_KEY``: bearer credential
	- ``LLM_CHAT_MODEL``: model identifier
	- ``LLM_STREAMING``: ``no`` disables streaming
	- ``LLM_DEBUG``: any non-empty value enables timing output
	- ``LLM_TIMEOUT``: request timeout in seconds
	"""
	env = os.environ if env is None else env
	config = dict(DEFAULT_CONFIG)
	data = load_config_file(config_path)
	for key, default in DEFAULT_CONFIG.items():
		value = data.get(key)
		if value is None:
			continue
		if key in ("streaming", "debug"):
			if isinstance(value, bool):
				config[key] = value
		elif key == "timeout":
			config[key] = _parse_timeout(value)
		elif isinstance(value, str):
			config[key] = value
	api_key = data.get("api_key") if isinstance(data.get("api_key"), str) else None

	if env.get("LLM_API_BASE_URL"):
		config["base_url"] = env["LLM_API_BASE_URL"]
	api_key = env.get("LLM_API_KEY") or env.get("OPENAI_API_KEY") or api_key
	if env.get("LLM_CHAT_MODEL"):
		config["model"] = env["LLM_CHAT_MODEL"]
	if "LLM_STREAMING" in env:
		config["streaming"] = env["LLM_STREAMING"] != "no"
	if "LLM_DEBUG" in env:
		config["debug"] = bool(env["LLM_DEBUG"])
	if "LLM_TIMEOUT" in env:
		config["timeout"] = _parse_timeout(env["LLM_TIMEOUT"])

	return Settings(api_key=api_key or None, **config)
