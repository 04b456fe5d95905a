"""Shared test fixtures for gpt-cli."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

SAMPLE_CONFIG = """\
logDir: {log_dir}
autoSaveLogs: false
prompts:
  demo:
    model: gpt-4o
    system: You are terse.
    user: Summarize.
    maxTokens: 200
    tools: [search]
  plain:
    user: Hello
vectorStores:
  docs:
    name: Project docs
    id: vs_123
assistants:
  helper:
    name: helper
    description: Answers questions about the docs
    model: gpt-4o-mini
    instruction: Use the attached documents.
    temperature: 0.2
    vectorStoreName: Project docs
"""


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point every user directory at tmp_path and drop ambient settings."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.delenv("GPT_CLI_CONFIG_PATH", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def config_file(tmp_path):
    """A config file with prompts, vector stores and assistants; logs go to tmp_path/logs."""
    path = tmp_path / "config.yaml"
    path.write_text(SAMPLE_CONFIG.format(log_dir=tmp_path / "logs"), encoding="utf-8")
    return path


def make_completion(content="Hi there", model="gpt-4o", finish_reason="stop", choices=True):
    """Build an object shaped like the SDK's ChatCompletion."""
    choice = SimpleNamespace(
        message=SimpleNamespace(role="assistant", content=content),
        finish_reason=finish_reason,
    )
    return SimpleNamespace(
        choices=[choice] if choices else [],
        model=model,
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


@pytest.fixture
def fake_openai():
    """MagicMock standing in for openai.OpenAI; chat replies 'Hi there'."""
    client = MagicMock(name="OpenAI")
    client.chat.completions.create.return_value = make_completion()
    return client
