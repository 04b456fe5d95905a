"""
One chat turn, and the interactive loop built from it.

A turn is: load history -> build new messages -> send history + new ->
append the reply -> save. The history file always holds exactly what was
sent plus what came back, in order.
"""

import logging
from typing import Callable, Optional

from rich.console import Console

from .errors import GptCliError
from .history import format_history, load_conversation_history, save_conversation_history
from .llm.client import ChatClient, ChatResponse
from .message_builder import create_messages
from .models.message import ROLE_SYSTEM, Message
from .models.prompt import PromptConfig

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit"}

INTERACTIVE_HELP = """\
Commands:
  /history   show the conversation so far
  /help      show this help
  exit       leave (Ctrl+D also works)"""


def _has_system_message(messages: list[Message]) -> bool:
    return any(m.role == ROLE_SYSTEM for m in messages)


def prepare_outgoing(history: list[Message], new_messages: list[Message]) -> list[Message]:
    """
    History followed by the new messages.

    A continued conversation keeps the system message it started with; the
    preset's system prompt is not repeated on every turn.
    """
    if _has_system_message(history):
        new_messages = [m for m in new_messages if m.role != ROLE_SYSTEM]
    return history + new_messages


def send_turn(
    chat_client: ChatClient,
    prompt_config: PromptConfig,
    conversation: list[Message],
    new_messages: list[Message],
) -> ChatResponse:
    """
    Send ``conversation + new_messages`` and extend ``conversation`` in place.

    ``conversation`` is only modified after a successful response, so a
    failed request leaves it as it was.

    Raises:
        GptCliError: If there is nothing to send.
    """
    outgoing = prepare_outgoing(conversation, new_messages)
    if not outgoing:
        raise GptCliError(
            "Nothing to send: provide a message with -u, positional words, "
            "stdin, a preset (-p) or attachments"
        )

    response = chat_client.execute_chat_completion(
        prompt_config.model, outgoing, max_tokens=prompt_config.max_tokens
    )
    conversation[:] = outgoing + [response.message]
    return response


def run_chat_turn(
    chat_client: ChatClient,
    prompt_config: PromptConfig,
    history_file: str = "",
) -> ChatResponse:
    """
    Run one request/response cycle against the saved conversation.

    Args:
        chat_client: Client used to send the request.
        prompt_config: Fully resolved prompt.
        history_file: History name; empty means the turn is not persisted.

    Returns:
        The model's response.

    Raises:
        HistoryError, FileReadError, UnsupportedImageFormatError,
        RemoteRequestError, EmptyResponseError, GptCliError
    """
    conversation = load_conversation_history(history_file)
    new_messages = create_messages(prompt_config)

    if prompt_config.tools:
        logger.info(f"Tools requested but not sent to the chat API: {', '.join(prompt_config.tools)}")

    response = send_turn(chat_client, prompt_config, conversation, new_messages)

    if history_file:
        save_conversation_history(history_file, conversation)
    return response


def interactive_chat(
    chat_client: ChatClient,
    prompt_config: PromptConfig,
    history_file: str = "",
    console: Optional[Console] = None,
    read_line: Callable[[str], str] = input,
) -> int:
    """
    Multi-turn chat on the terminal.

    The first turn uses the resolved prompt (system text, -u message,
    attachments) if it has a user message; every later line the user types
    becomes a new user message. The history file, if any, is saved after
    each successful turn.

    Returns:
        Number of completed turns.
    """
    console = console or Console()
    conversation = load_conversation_history(history_file)
    turns = 0

    def _turn(new_messages: list[Message]) -> bool:
        nonlocal turns
        try:
            with console.status("Waiting for the model...", spinner="dots"):
                response = send_turn(chat_client, prompt_config, conversation, new_messages)
        except GptCliError as e:
            # conversation is untouched; the user can retry or move on
            console.print(f"[red]Error:[/] {e}")
            return False

        console.print(f"[bold green]assistant>[/] {response.content}")
        if history_file:
            save_conversation_history(history_file, conversation)
        turns += 1
        return True

    first = create_messages(prompt_config)
    sent = bool(prompt_config.user or prompt_config.attachments) and _turn(first)
    # a failed or skipped first turn still keeps the preset's system prompt
    if not sent and prompt_config.system and not _has_system_message(conversation):
        conversation.extend(m for m in first if m.role == ROLE_SYSTEM)

    console.print("[dim]Interactive mode. Type /help for commands, 'exit' to leave.[/]")
    while True:
        try:
            line = read_line("you> ")
        except EOFError:
            console.print()
            break

        text = line.strip()
        if not text:
            continue
        if text.lower() in EXIT_COMMANDS:
            break
        if text == "/help":
            console.print(INTERACTIVE_HELP)
            continue
        if text == "/history":
            if conversation:
                console.print(format_history(conversation), markup=False)
            else:
                console.print("[dim](empty)[/]")
            continue

        _turn([Message.user(text)])

    logger.debug(f"Interactive session ended after {turns} turn(s)")
    return turns
