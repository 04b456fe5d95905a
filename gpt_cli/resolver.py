"""
Prompt resolution: preset + command line + file contents -> PromptConfig.

Precedence, applied in this order:

1. the named preset from the config file (copied, never mutated)
2. -s / -u / -m / --max-tokens overrides, each independently
3. -i image list, replacing the preset's attachments wholesale
4. DEFAULT_MODEL if still no model
5. --collect: every file under the working directory appended to user
6. -f: the listed files (globs allowed) appended to user
7. --tool names appended after the preset's tools
"""

import glob
import logging
import os
from pathlib import Path

from .config import ConfigDocument
from .errors import FileReadError, UnknownPresetError
from .models.prompt import DEFAULT_MODEL, PromptConfig
from .options import Options

logger = logging.getLogger(__name__)

SKIP_DIRS = {".git"}
SECTION_SEPARATOR = "\n\n"


def format_file_block(display_path: str, content: str) -> str:
    return f"File: {display_path}\nContent:\n{content}\n\n"


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise FileReadError(path, e.strerror or str(e)) from e


def _append(text: str, block: str) -> str:
    return f"{text}{SECTION_SEPARATOR}{block}"


def split_list(value: str) -> list[str]:
    """Split a comma-separated flag value; empty input gives an empty list."""
    if not value:
        return []
    return value.split(",")


def collect_files(directory: str | os.PathLike = ".") -> str:
    """
    Concatenate every regular file below ``directory``.

    Walks recursively in sorted order, skipping ``.git`` directories.
    Each file becomes ``File: <path relative to directory>\\nContent:\\n<text>``.

    Raises:
        FileReadError: If the directory can't be walked or a file can't be read.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileReadError(root, "not a directory")

    def _on_error(err: OSError):
        raise FileReadError(err.filename or root, err.strerror or str(err)) from err

    blocks = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if not path.is_file():
                continue
            rel = path.relative_to(root).as_posix()
            blocks.append(format_file_block(rel, _read_text(path)))

    logger.debug(f"Collected {len(blocks)} file(s) under {root}")
    return "".join(blocks)


def read_files(file_list: str) -> str:
    """
    Read a comma-separated list of files, expanding glob patterns.

    Plain entries must exist. A pattern that matches nothing is skipped
    with a warning.

    Raises:
        FileReadError: If a listed file can't be read.
    """
    blocks = []
    for entry in split_list(file_list):
        entry = entry.strip()
        if not entry:
            continue

        if glob.has_magic(entry):
            matches = sorted(glob.glob(entry, recursive=True))
            if not matches:
                logger.warning(f"No files match '{entry}'")
                continue
        else:
            matches = [entry]

        for match in matches:
            path = Path(match)
            if path.is_dir():
                logger.debug(f"Skipping directory {match}")
                continue
            blocks.append(format_file_block(match, _read_text(path)))

    return "".join(blocks)


def get_prompt_config(config: ConfigDocument, options: Options) -> PromptConfig:
    """
    Resolve the effective prompt for one invocation.

    Args:
        config: Loaded configuration (not modified).
        options: Parsed command-line options.

    Returns:
        A fresh PromptConfig.

    Raises:
        UnknownPresetError: If ``options.prompt`` names no preset.
        FileReadError: If a collected or listed file can't be read.
    """
    if options.prompt:
        preset = config.prompts.get(options.prompt)
        if preset is None:
            raise UnknownPresetError(options.prompt)
        prompt = preset.copy()
    else:
        prompt = PromptConfig()

    if options.system is not None:
        prompt.system = options.system
    if options.user is not None:
        prompt.user = options.user
    if options.model is not None:
        prompt.model = options.model
    if options.max_tokens is not None:
        prompt.max_tokens = options.max_tokens

    if options.images:
        prompt.attachments = split_list(options.images)

    if not prompt.model:
        prompt.model = DEFAULT_MODEL

    if options.collect:
        prompt.user = _append(prompt.user, collect_files(options.collect_root))

    if options.file_list:
        prompt.user = _append(prompt.user, read_files(options.file_list))

    if options.tools:
        prompt.tools = prompt.tools + list(options.tools)

    logger.debug(
        f"Resolved prompt: preset={options.prompt or '-'} model={prompt.model} "
        f"attachments={len(prompt.attachments)} tools={prompt.tools}"
    )
    return prompt
