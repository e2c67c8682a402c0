#!/usr/bin/env python3
"""
Interactive question/answer loop.
"""

import argparse
import logging
import time

import gnureadline as readline

# Keep line editing (arrows, copy/paste) but no history
readline.set_history_length(0)
readline.set_auto_history(False)

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .client import ChatClient, ChatError
from .config import load_settings
from .conversation import Conversation, ResponseCache

logger = logging.getLogger(__name__)

console = Console()

PROMPT = ">> "


def configure_logging(debug=False):
	"""Send log records to stderr through rich."""
	logging.basicConfig(
		level=logging.WARNING,
		format="%(message)s",
		handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
		force=True,
	)
	# httpx/httpcore stay at WARNING
	logging.getLogger("askllm").setLevel(logging.DEBUG if debug else logging.WARNING)


def print_info(message, out=None):
	(out or console).print(message, style="magenta", markup=False, highlight=False)


def handle_command(command_line, out=None):
	"""Handle a /command. Returns (handled, should_exit)."""
	stripped = command_line[1:].strip()
	if not stripped:
		print_info("Empty command.", out)
		return True, False
	command = stripped.split()[0].lower()

	if command == "quit":
		return True, True

	if command == "help":
		print_info("Available commands:", out)
		print_info(" /help - show this help", out)
		print_info(" /quit - exit (same as Ctrl+D)", out)
		return True, False

	print_info(f"Unknown command: /{command}", out)
	return True, False


def run_turn(client, conversation, question, settings, out=None):
	"""Send one question, render the answer and record the turn.

	The user message is committed together with the reply, so a failed
	request leaves the conversation as it was.
	"""
	out = out or console
	messages = conversation.pending(question)
	start_time = time.time()

	if settings.streaming:
		def write_fragment(fragment):
			out.out(fragment, end="", highlight=False)

		answer = client.chat(messages, write_fragment)
	else:
		with Progress(
			SpinnerColumn(),
			TextColumn("[progress.description]{task.description}"),
			TimeElapsedColumn(),
			console=out,
			transient=True
		) as progress:
			progress.add_task("[cyan]Thinking...", total=None)
			answer = client.chat(messages)

	conversation.append_user(question)
	conversation.append_assistant(answer)

	if settings.streaming:
		out.out("")
	else:
		out.print(answer, markup=False, highlight=False)

	if settings.debug:
		elapsed_ms = int((time.time() - start_time) * 1000)
		out.print(f"\n[{elapsed_ms} ms]\n", style="dim", markup=False, highlight=False)
	return answer


def repl(client, conversation, settings, out=None, read_line=None):
	"""Prompt until end of input, running one turn per line."""
	out = out or console
	read_line = read_line or input
	while True:
		try:
			question = read_line(PROMPT)
		except (EOFError, KeyboardInterrupt):
			out.out("")
			break

		if not question.strip():
			continue
		if question.startswith("/"):
			handled, should_exit = handle_command(question, out)
			if should_exit:
				break
			if handled:
				continue

		try:
			run_turn(client, conversation, question, settings, out)
		except ChatError as e:
			if settings.streaming:
				out.out("")
			out.print(f"Error: {e.message}", style="red", markup=False, highlight=False)
			logger.debug("Turn failed", exc_info=True)


def build_parser():
	parser = argparse.ArgumentParser(description="Chat with an OpenAI-compatible LLM endpoint")
	parser.add_argument("--model", type=str, help="Model identifier (overrides LLM_CHAT_MODEL)")
	parser.add_argument("--base-url", type=str, help="Endpoint base URL (overrides LLM_API_BASE_URL)")
	parser.add_argument("--system-prompt", type=str, help="System instruction for the conversation")
	parser.add_argument("--no-stream", action="store_true", help="Wait for the full answer instead of streaming")
	parser.add_argument("--debug", action="store_true", help="Show timing for each answer")
	return parser


def main(argv=None):
	args = build_parser().parse_args(argv)
	settings = load_settings().override(
		model=args.model,
		base_url=args.base_url,
		system_prompt=args.system_prompt,
		streaming=False if args.no_stream else None,
		debug=True if args.debug else None,
	)
	configure_logging(settings.debug)

	print_info(f"Using LLM at {settings.base_url}.")
	print_info("Press Ctrl+D to exit.\n")

	conversation = Conversation(settings.system_prompt)
	with ChatClient(settings, cache=ResponseCache()) as client:
		repl(client, conversation, settings)
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
