"""
Configuration for gpt-cli.

The config file is YAML with a strict schema: any key that is not listed
below is an error, so typos surface immediately instead of being silently
ignored.

    logDir: ~/gpt-logs
    autoSaveLogs: true
    prompts:
      review:
        model: gpt-4o
        system: You are a meticulous code reviewer.
        user: Review the following files.
        maxTokens: 2000
        attachments: []
        tools: []
    vectorStores:
      docs:
        name: Project docs
        id: vs_abc123
    assistants:
      helper:
        name: helper
        description: Answers questions about the docs
        model: gpt-4o
        instruction: Answer from the attached documents only.
        temperature: 0.2
        vectorStoreName: Project docs

Where the file lives (first match wins):

1. ``-c/--config`` on the command line
2. ``$GPT_CLI_CONFIG_PATH``
3. ``<user config dir>/gpt-cli/config.yaml``

A missing file is not an error: the tool runs with an empty configuration.
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from .errors import ConfigNotFoundError, ConfigParseError
from .models.prompt import PromptConfig

logger = logging.getLogger(__name__)

APP_NAME = "gpt-cli"
CONFIG_FILENAME = "config.yaml"
ENV_CONFIG_PATH = "GPT_CLI_CONFIG_PATH"


@dataclass
class VectorStoreConfig:
    """A named vector store the user refers to by preset name."""
    name: str = ""
    id: str = ""


@dataclass
class AssistantConfig:
    """Defaults for ``assistant create`` when --name matches this entry."""
    name: str = ""
    description: str = ""
    model: str = ""
    instruction: str = ""
    temperature: float = 0.0
    vector_store_name: str = ""


@dataclass
class ConfigDocument:
    """Master configuration, read-only once loaded."""
    log_dir: str = ""
    auto_save_logs: bool = False
    prompts: dict[str, PromptConfig] = field(default_factory=dict)
    vector_stores: dict[str, VectorStoreConfig] = field(default_factory=dict)
    assistants: dict[str, AssistantConfig] = field(default_factory=dict)


# ════════════════════════════════════════════════════════════════════════════
# PATH RESOLUTION
# ════════════════════════════════════════════════════════════════════════════


def user_config_dir() -> Path:
    """Return the OS-standard per-user configuration directory."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata)
        return Path.home() / "AppData" / "Roaming"
    else:  # Linux and other Unixes
        xdg = os.environ.get("XDG_CONFIG_HOME")
        if xdg:
            return Path(xdg)
        return Path.home() / ".config"


def user_data_dir() -> Path:
    """Return the OS-standard per-user data directory."""
    if sys.platform in ("darwin", "win32"):
        return user_config_dir()
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".local" / "share"


def get_config_file_path(config_path: str | os.PathLike | None = None) -> Path:
    """
    Resolve which config file to read.

    Priority: explicit path > $GPT_CLI_CONFIG_PATH > user config dir.
    The file is not required to exist.
    """
    if config_path:
        return Path(config_path)

    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path)

    return user_config_dir() / APP_NAME / CONFIG_FILENAME


def get_log_directory(config: ConfigDocument) -> Path:
    """Directory where conversation histories are kept."""
    if config.log_dir:
        return Path(config.log_dir).expanduser()
    return user_data_dir() / APP_NAME / "logs"


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


# ════════════════════════════════════════════════════════════════════════════
# STRICT SCHEMA DECODING
# ════════════════════════════════════════════════════════════════════════════
#
# yaml.safe_load gives us plain dicts; each section below is checked against
# a table of {yaml_key: (attribute, converter)}. Unknown keys and values of
# the wrong type raise ConfigParseError with the dotted location.
#
# ════════════════════════════════════════════════════════════════════════════


def _as_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise ConfigParseError(f"{where}: expected a string, got {type(value).__name__}")
    return value


def _as_int(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigParseError(f"{where}: expected an integer, got {type(value).__name__}")
    return value


def _as_float(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigParseError(f"{where}: expected a number, got {type(value).__name__}")
    return float(value)


def _as_bool(value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigParseError(f"{where}: expected true/false, got {type(value).__name__}")
    return value


def _as_str_list(value: Any, where: str) -> list[str]:
    if not isinstance(value, list):
        raise ConfigParseError(f"{where}: expected a list, got {type(value).__name__}")
    return [_as_str(item, f"{where}[{i}]") for i, item in enumerate(value)]


Converter = Callable[[Any, str], Any]

PROMPT_FIELDS: dict[str, tuple[str, Converter]] = {
    "model": ("model", _as_str),
    "system": ("system", _as_str),
    "user": ("user", _as_str),
    "maxTokens": ("max_tokens", _as_int),
    "attachments": ("attachments", _as_str_list),
    "tools": ("tools", _as_str_list),
}

VECTOR_STORE_FIELDS: dict[str, tuple[str, Converter]] = {
    "name": ("name", _as_str),
    "id": ("id", _as_str),
}

ASSISTANT_FIELDS: dict[str, tuple[str, Converter]] = {
    "name": ("name", _as_str),
    "description": ("description", _as_str),
    "model": ("model", _as_str),
    "instruction": ("instruction", _as_str),
    "temperature": ("temperature", _as_float),
    "vectorStoreName": ("vector_store_name", _as_str),
}


def _check_mapping(data: Any, where: str) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(f"{where}: expected a mapping, got {type(data).__name__}")
    return data


def _decode_fields(data: Any, fields: dict[str, tuple[str, Converter]], where: str) -> dict[str, Any]:
    data = _check_mapping(data, where)
    unknown = sorted(str(k) for k in data if k not in fields)
    if unknown:
        raise ConfigParseError(f"{where}: unknown field(s): {', '.join(unknown)}")

    kwargs = {}
    for key, (attr, convert) in fields.items():
        # An explicit null is the same as leaving the key out
        if data.get(key) is not None:
            kwargs[attr] = convert(data[key], f"{where}.{key}")
    return kwargs


def _decode_section(data: Any, cls: type, fields: dict, where: str) -> dict:
    section = _check_mapping(data, where)
    return {
        str(name): cls(**_decode_fields(entry, fields, f"{where}.{name}"))
        for name, entry in section.items()
    }


def parse_config(data: Any, source: str = "<config>") -> ConfigDocument:
    """Build a ConfigDocument from already-loaded YAML data."""
    top = _check_mapping(data, source)
    top_fields = {"logDir", "autoSaveLogs", "prompts", "vectorStores", "assistants"}
    unknown = sorted(str(k) for k in top if k not in top_fields)
    if unknown:
        raise ConfigParseError(f"{source}: unknown field(s): {', '.join(unknown)}")

    config = ConfigDocument()
    if top.get("logDir") is not None:
        config.log_dir = _as_str(top["logDir"], f"{source}.logDir")
    if top.get("autoSaveLogs") is not None:
        config.auto_save_logs = _as_bool(top["autoSaveLogs"], f"{source}.autoSaveLogs")

    config.prompts = _decode_section(top.get("prompts"), PromptConfig, PROMPT_FIELDS, "prompts")
    config.vector_stores = _decode_section(
        top.get("vectorStores"), VectorStoreConfig, VECTOR_STORE_FIELDS, "vectorStores"
    )
    config.assistants = _decode_section(
        top.get("assistants"), AssistantConfig, ASSISTANT_FIELDS, "assistants"
    )
    return config


# ════════════════════════════════════════════════════════════════════════════
# LOADING
# ════════════════════════════════════════════════════════════════════════════


def load_config(file_path: str | os.PathLike) -> ConfigDocument:
    """
    Load and strictly validate a config file.

    Args:
        file_path: Path to a YAML config file.

    Returns:
        The parsed ConfigDocument.

    Raises:
        ConfigNotFoundError: If no path is given or the file doesn't exist.
        ConfigParseError: If the file can't be read, isn't valid YAML, or
            doesn't match the schema.
    """
    if not file_path:
        raise ConfigNotFoundError("", "No config file path given")

    path = Path(os.path.normpath(file_path))
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError as e:
        raise ConfigNotFoundError(path) from e
    except OSError as e:
        raise ConfigParseError(f"Failed to read config file ({path}): {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"Config file ({path}) is not valid UTF-8: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse config file ({path}): {e}") from e

    try:
        return parse_config(data, source=str(path))
    except ConfigParseError as e:
        raise ConfigParseError(f"Invalid config file ({path}): {e}") from e


def load_configuration(config_path: str | os.PathLike | None = None) -> ConfigDocument:
    """
    Resolve the config path and load it, falling back to defaults.

    A missing config file is never fatal: an empty ConfigDocument is
    returned instead. A file that exists but is invalid still raises
    ConfigParseError.
    """
    path = get_config_file_path(config_path)
    try:
        config = load_config(path)
    except ConfigNotFoundError as e:
        logger.info(f"{e}. Using default configuration.")
        return ConfigDocument()

    logger.debug(
        f"Loaded config {path}: {len(config.prompts)} prompt(s), "
        f"{len(config.vector_stores)} vector store(s), {len(config.assistants)} assistant(s)"
    )
    return config
