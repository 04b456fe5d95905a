"""
Chat message model.

One turn in a conversation, in the shape the chat completions API takes.
Text messages carry a string; image messages carry a list of content parts
with an inline ``data:`` URL.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

VALID_ROLES = (ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT)

Content = Union[str, list[dict[str, Any]]]


@dataclass
class Message:
    """
    A single message in a conversation.

    Attributes:
    ----------
    role : str
        'system', 'user' or 'assistant'.

    content : str or list[dict]
        Plain text, or content parts for an inline image:
        ``[{"type": "image_url", "image_url": {"url": "data:image/png;base64,..."}}]``

    Example:
    -------
    >>> Message.user("What is variance?").to_dict()
    {'role': 'user', 'content': 'What is variance?'}
    """
    role: str
    content: Content

    @property
    def is_image(self) -> bool:
        return isinstance(self.content, list)

    @property
    def text(self) -> str:
        """Text content, or an empty string for image messages."""
        return self.content if isinstance(self.content, str) else ""

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        """
        Build a message from its JSON form.

        Raises:
            ValueError: if the role is unknown or content has the wrong shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        role = data.get("role")
        if role not in VALID_ROLES:
            raise ValueError(f"invalid role: {role!r}")
        content = data.get("content", "")
        if content is None:
            content = ""
        if not isinstance(content, (str, list)):
            raise ValueError(f"invalid content for {role} message: {type(content).__name__}")
        return cls(role=role, content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=ROLE_SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=ROLE_USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=ROLE_ASSISTANT, content=content)

    @classmethod
    def image(cls, data_url: str) -> Message:
        """A user message carrying one inline image."""
        return cls(
            role=ROLE_USER,
            content=[{"type": "image_url", "image_url": {"url": data_url}}],
        )
