"""
Parsed command-line options for a chat invocation.

The click command in cli.py fills an Options instance; everything
downstream (resolver, history, chat loop) reads from it instead of from
click directly, so the same logic can be driven from tests.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .config import ConfigDocument, ensure_directory, get_log_directory
from .errors import GptCliError
from .llm.client import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass
class Options:
    """
    Everything the user asked for on the command line.

    ``system``, ``user`` and ``model`` are None when the flag was not
    given. An empty string is a real value: ``-s ""`` clears the preset's
    system prompt.
    """
    prompt: str = ""                       # preset name under prompts:
    system: Optional[str] = None
    user: Optional[str] = None
    model: Optional[str] = None
    images: str = ""                       # comma-separated image paths
    collect: bool = False                  # append every file under collect_root
    collect_root: str = "."
    history_file: str = ""
    show_history: str = ""
    timeout: float = DEFAULT_TIMEOUT
    file_list: str = ""                    # comma-separated paths or globs
    tools: list[str] = field(default_factory=list)
    max_tokens: Optional[int] = None


def build_user_message(
    options: Options,
    args: Iterable[str] = (),
    stdin_text: Optional[str] = None,
) -> Options:
    """
    Fold positional words and piped stdin into ``options.user``.

    ``gpt-cli chat -u "Explain" this error < trace.txt`` ends up with
    ``user = "Explain this error <contents of trace.txt>"``. When none
    of the three sources has text, ``options.user`` is left untouched.

    Args:
        options: Parsed options; updated in place and returned.
        args: Positional words after the flags.
        stdin_text: Piped standard input, or None for a terminal.
    """
    parts = []
    if options.user:
        parts.append(options.user)
    words = " ".join(a for a in args if a)
    if words:
        parts.append(words)
    if stdin_text:
        piped = stdin_text.strip()
        if piped:
            parts.append(piped)

    if parts:
        options.user = " ".join(parts)
    return options


def auto_log_name(now: Optional[datetime] = None) -> str:
    """``log_20240102_030405.678.json`` for the given (or current) time."""
    now = now or datetime.now()
    return f"log_{now:%Y%m%d_%H%M%S}.{now.microsecond // 1000:03d}.json"


def configure_log_directory(
    options: Options,
    config: ConfigDocument,
    now: Optional[datetime] = None,
) -> Path:
    """
    Create the log directory and anchor history names inside it.

    - ``--history NAME`` becomes ``<log dir>/NAME``
    - with no --history and ``autoSaveLogs: true``, a timestamped file
      name is generated so every conversation is kept
    - ``show-history NAME`` becomes ``<log dir>/NAME``

    Returns:
        The log directory.

    Raises:
        GptCliError: If the log directory can't be created.
    """
    log_dir = get_log_directory(config)
    try:
        ensure_directory(log_dir)
    except OSError as e:
        raise GptCliError(f"Failed to create log directory {log_dir}: {e}") from e

    if options.history_file:
        options.history_file = str(log_dir / options.history_file)
    elif config.auto_save_logs:
        options.history_file = str(log_dir / auto_log_name(now))
        logger.debug(f"Auto-saving conversation to {options.history_file}")

    if options.show_history:
        options.show_history = str(log_dir / options.show_history)

    return log_dir
