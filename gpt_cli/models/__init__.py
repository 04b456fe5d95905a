"""Data models shared across gpt-cli."""

from .message import Message, ROLE_ASSISTANT, ROLE_SYSTEM, ROLE_USER
from .prompt import DEFAULT_MODEL, PromptConfig

__all__ = [
    "Message",
    "PromptConfig",
    "DEFAULT_MODEL",
    "ROLE_SYSTEM",
    "ROLE_USER",
    "ROLE_ASSISTANT",
]
