#!/usr/bin/env python3
"""
Entry point for the ask-llm console chat.
"""

from askllm.repl import main


if __name__ == "__main__":
	raise SystemExit(main())
