"""gpt-cli: compose prompts, chat with OpenAI models, and keep transcripts on disk."""

__version__ = "0.4.0"
