"""
Chat request executor for the OpenAI API.

Wraps the official ``openai`` SDK client:

    client = ChatClient(timeout=60)
    response = client.execute_chat_completion("gpt-4o", messages, max_tokens=500)
    print(response.content)

    # File / vector store / assistant managers share the same SDK client
    FileManager(client.openai).list_files()

SDK exceptions never escape this module: they are re-raised as
RemoteRequestError with the original chained as ``__cause__``.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import openai
from openai import OpenAI

from ..errors import AuthenticationError, EmptyResponseError, RemoteRequestError
from ..models.message import Message

logger = logging.getLogger(__name__)

ENV_API_KEY = "OPENAI_API_KEY"
DEFAULT_TIMEOUT = 60
DEFAULT_CONNECT_TIMEOUT = 30


@dataclass
class ChatResponse:
    """
    Response from a chat completion request.

    Attributes:
    ----------
    message : Message
        The first choice, as an assistant message ready to append to history.

    model : str
        The model ID that generated this response. May carry a version
        suffix the request did not.

    finish_reason : str or None
        'stop', 'length' (hit max_tokens), 'content_filter', ...

    prompt_tokens / completion_tokens / total_tokens : int or None
        Token usage, when the backend reports it.

    raw_response : Any
        The unprocessed SDK response object.
    """
    message: Message
    model: str
    finish_reason: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    raw_response: Any = None

    @property
    def content(self) -> str:
        return self.message.text

    @property
    def usage(self) -> dict:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


class ChatClient:
    """
    Thin synchronous client for chat completions.

    Usage:
        client = ChatClient()                      # reads OPENAI_API_KEY
        client = ChatClient(api_key="sk-...", timeout=120)
        client = ChatClient(client=fake_sdk)       # tests: inject any object
                                                   # shaped like openai.OpenAI
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        client: Any = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: API key. Falls back to $OPENAI_API_KEY.
            timeout: Total request timeout in seconds.
            connect_timeout: TCP connect timeout in seconds.
            client: Pre-built SDK client; skips key lookup when given.
            logger: Logger to use instead of this module's logger.

        Raises:
            AuthenticationError: If no client is injected and no key is found.
        """
        self.log = logger or logging.getLogger(__name__)
        self.timeout = timeout
        self.connect_timeout = connect_timeout

        if client is not None:
            self._client = client
            return

        api_key = api_key or os.environ.get(ENV_API_KEY)
        if not api_key:
            raise AuthenticationError(
                f"API key required. Either:\n"
                f"  1. Set the {ENV_API_KEY} environment variable\n"
                f"  2. Pass api_key to ChatClient()"
            )

        self._client = OpenAI(
            api_key=api_key,
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
        )
        self.log.debug(f"OpenAI client initialized (timeout={timeout}s, connect={connect_timeout}s)")

    @property
    def openai(self) -> Any:
        """The underlying SDK client, for the resource managers."""
        return self._client

    def execute_chat_completion(
        self,
        model: str,
        messages: list[Message],
        max_tokens: int | None = None,
    ) -> ChatResponse:
        """
        Send one chat completion request.

        Args:
            model: Model ID.
            messages: Full outgoing sequence (history + new messages).
            max_tokens: Upper bound on generated tokens. None = not sent.

        Returns:
            ChatResponse built from the first choice.

        Raises:
            RemoteRequestError: The SDK raised (network, HTTP status, timeout).
            EmptyResponseError: The response had no choices.
        """
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        self.log.debug(f"Chat request: model={model} messages={len(messages)} max_tokens={max_tokens}")

        try:
            response = self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Chat completion request failed: {e}") from e

        if not response.choices:
            raise EmptyResponseError(f"No choices returned by model {model}")

        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        result = ChatResponse(
            message=Message.assistant(choice.message.content or ""),
            model=getattr(response, "model", None) or model,
            finish_reason=getattr(choice, "finish_reason", None),
            prompt_tokens=getattr(usage, "prompt_tokens", None),
            completion_tokens=getattr(usage, "completion_tokens", None),
            total_tokens=getattr(usage, "total_tokens", None),
            raw_response=response,
        )
        self.log.debug(
            f"Chat response: finish_reason={result.finish_reason} tokens={result.total_tokens}"
        )
        return result
