"""
Prompt configuration model.

A PromptConfig is both the shape of a preset under ``prompts:`` in the
config file and the fully resolved instructions for one invocation.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

# Used when neither the preset nor the command line names a model.
DEFAULT_MODEL = "gpt-3.5-turbo"


@dataclass
class PromptConfig:
    """Instructions for a single chat request."""
    model: str = ""
    system: str = ""
    user: str = ""
    max_tokens: Optional[int] = None  # None = no client-side limit
    attachments: list[str] = field(default_factory=list)  # image paths
    tools: list[str] = field(default_factory=list)

    def copy(self) -> "PromptConfig":
        """Independent copy, so resolving a preset never mutates the loaded config."""
        return replace(
            self,
            attachments=list(self.attachments),
            tools=list(self.tools),
        )
