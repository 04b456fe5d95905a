"""
Conversation history persistence.

A history is a JSON array of ``{"role": ..., "content": ...}`` objects in
a single file. Every save rewrites the whole file; nothing is appended in
place. Names without an extension get ``.json``, so ``--history work``
and ``--history work.json`` are the same conversation.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from .errors import HistoryError
from .models.message import Message

logger = logging.getLogger(__name__)

HISTORY_SUFFIX = ".json"
HISTORY_FILE_MODE = 0o600


def normalize_history_name(name: str | os.PathLike) -> str:
    """Append ``.json`` when the name has no extension."""
    name = os.fspath(name)
    if not os.path.splitext(name)[1]:
        name += HISTORY_SUFFIX
    return name


def load_conversation_history(name: str | os.PathLike) -> list[Message]:
    """
    Load a saved conversation.

    An empty name means "no history" and returns [] without touching the
    file system. A file that doesn't exist yet also returns [].

    Raises:
        HistoryError: If the file can't be read or isn't a list of messages.
    """
    if not name:
        return []

    path = normalize_history_name(name)
    try:
        with open(path, encoding="utf-8") as f:
            raw = f.read()
    except FileNotFoundError:
        logger.debug(f"No history at {path}, starting a new conversation")
        return []
    except OSError as e:
        raise HistoryError(f"Failed to read history file {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise HistoryError(f"History file {path} is not valid UTF-8: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HistoryError(f"History file {path} is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise HistoryError(f"History file {path} must contain a JSON array")

    messages = []
    for i, item in enumerate(data):
        try:
            messages.append(Message.from_dict(item))
        except ValueError as e:
            raise HistoryError(f"History file {path}, entry {i}: {e}") from e

    logger.debug(f"Loaded {len(messages)} message(s) from {path}")
    return messages


def save_conversation_history(name: str | os.PathLike, messages: Iterable[Message]) -> str:
    """
    Write the full conversation to disk, replacing any previous content.

    The JSON is written to a temporary file next to the target, restricted
    to the owner (0600), and moved over the target with ``os.replace`` so
    a crash mid-write never leaves a truncated history.

    Returns:
        The normalized path written.

    Raises:
        HistoryError: If the name is empty or the file can't be written.
    """
    if not name:
        raise HistoryError("No history file name given")

    path = normalize_history_name(name)
    payload = json.dumps([m.to_dict() for m in messages], ensure_ascii=False, indent=2)

    directory = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=directory, prefix=f".{os.path.basename(path)}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.chmod(tmp_path, HISTORY_FILE_MODE)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        raise HistoryError(f"Failed to save history file {path}: {e}") from e
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)

    logger.debug(f"Saved conversation history to {path}")
    return path


def _describe_content(message: Message) -> str:
    if not message.is_image:
        return message.text

    parts = []
    for part in message.content:
        if part.get("type") == "image_url":
            url = part.get("image_url", {}).get("url", "")
            mime = url[len("data:"):].split(";", 1)[0] if url.startswith("data:") else "url"
            parts.append(f"[image: {mime}]")
        elif part.get("type") == "text":
            parts.append(part.get("text", ""))
        else:
            parts.append(f"[{part.get('type', 'unknown')}]")
    return " ".join(parts)


def format_history(messages: list[Message]) -> str:
    """Readable transcript for ``show-history``; inline images are summarized."""
    lines = []
    for message in messages:
        lines.append(f"[{message.role}]")
        lines.append(_describe_content(message))
        lines.append("")
    return "\n".join(lines).rstrip("\n")
