"""
Assistant lifecycle: create, look up, chat.

Two ways of talking to an assistant:

- ``chat_once``: a single chat completion that borrows the assistant's
  model and top_p. No thread is created.
- threads: ``create_thread`` + ``ask`` for a persistent conversation.
  Each ``ask`` posts the message, starts a run and polls it until it
  leaves ``queued``/``in_progress``.

Polling is a plain sleep loop with a configurable interval and an
optional deadline; past the deadline RunTimeoutError is raised.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import openai
from rich.console import Console

from ..config import ConfigDocument
from ..errors import EmptyResponseError, GptCliError, RemoteRequestError, ResourceError, RunTimeoutError
from .vector_stores import VectorStoreManager

logger = logging.getLogger(__name__)

PENDING_RUN_STATUSES = {"queued", "in_progress"}
DEFAULT_POLL_INTERVAL = 1.0
ASSISTANT_TOOLS = [{"type": "code_interpreter"}, {"type": "file_search"}]


@dataclass
class AssistantSpec:
    """Fully resolved settings for a new assistant."""
    name: str
    description: str
    model: str
    instruction: str
    temperature: float
    vector_store_name: str = ""
    vector_store_id: str = ""


class AssistantManager:
    """
    Usage:
        assistants = AssistantManager(chat_client.openai)

        spec = AssistantManager.resolve_create_options(config, name="helper", model="gpt-4o")
        assistant = assistants.create(spec)

        print(assistants.chat_once(assistant.id, "Summarize the docs"))

        thread = assistants.create_thread()
        print(assistants.ask(thread.id, assistant.id, "And the changelog?", timeout=120))
    """

    def __init__(
        self,
        client: Any,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            client: ``openai.OpenAI`` or an object with the same API.
            logger: Logger to use instead of this module's logger.
            sleep: Called between polls (replaced in tests).
            clock: Monotonic clock used for the polling deadline.
        """
        self.client = client
        self.log = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._clock = clock

    # ════════════════════════════════════════════════════════════════════
    # CREATION
    # ════════════════════════════════════════════════════════════════════

    @staticmethod
    def resolve_create_options(
        config: ConfigDocument,
        name: str,
        description: Optional[str] = None,
        model: Optional[str] = None,
        instruction: Optional[str] = None,
        temperature: Optional[float] = None,
        vector_store_name: Optional[str] = None,
        vector_store_id: Optional[str] = None,
    ) -> AssistantSpec:
        """
        Merge command-line values over the ``assistants:`` entry for ``name``.

        With a config entry, anything given on the command line wins and
        everything else comes from the entry. Without one, every setting
        must be given on the command line.

        Raises:
            ResourceError: If ``name`` is empty, or there is no config entry
                and required options are missing (all of them are listed).
        """
        if not name:
            raise ResourceError("An assistant name is required (--name)")

        entry = config.assistants.get(name)
        if entry is not None:
            return AssistantSpec(
                name=name,
                description=description if description is not None else entry.description,
                model=model if model is not None else entry.model,
                instruction=instruction if instruction is not None else entry.instruction,
                temperature=temperature if temperature is not None else entry.temperature,
                vector_store_name=(
                    vector_store_name if vector_store_name is not None else entry.vector_store_name
                ),
                vector_store_id=vector_store_id or "",
            )

        required = [
            ("--description", description),
            ("--model", model),
            ("--instruction", instruction),
            ("--temperature", temperature),
        ]
        missing = [flag for flag, value in required if value is None]
        if vector_store_name is None and not vector_store_id:
            missing.append("--vector-store-name")
        if missing:
            raise ResourceError(
                f"No assistant named '{name}' in the config file, and these options "
                f"were not given: {', '.join(missing)}"
            )

        return AssistantSpec(
            name=name,
            description=description,
            model=model,
            instruction=instruction,
            temperature=temperature,
            vector_store_name=vector_store_name or "",
            vector_store_id=vector_store_id or "",
        )

    def create(self, spec: AssistantSpec, vector_stores: Optional[VectorStoreManager] = None) -> Any:
        """
        Create an assistant with code_interpreter and file_search enabled.

        The file_search tool is pointed at ``spec.vector_store_id`` if set
        (checked to exist), otherwise at the store named
        ``spec.vector_store_name`` (created if it doesn't exist yet).
        """
        vector_store_id = ""
        if spec.vector_store_id or spec.vector_store_name:
            vector_stores = vector_stores or VectorStoreManager(self.client, logger=self.log)
            vector_store_id = vector_stores.resolve(spec.vector_store_id, spec.vector_store_name).id

        kwargs: dict[str, Any] = {
            "name": spec.name,
            "description": spec.description,
            "model": spec.model,
            "instructions": spec.instruction,
            "temperature": spec.temperature,
            "tools": ASSISTANT_TOOLS,
        }
        if vector_store_id:
            kwargs["tool_resources"] = {"file_search": {"vector_store_ids": [vector_store_id]}}

        self.log.debug(
            f"Creating assistant: name={spec.name} model={spec.model} "
            f"temperature={spec.temperature} vector_store={vector_store_id or '-'}"
        )
        try:
            assistant = self.client.beta.assistants.create(**kwargs)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Creating assistant '{spec.name}' failed: {e}") from e

        self.log.info(f"Created assistant {assistant.id} ({spec.name})")
        return assistant

    # ════════════════════════════════════════════════════════════════════
    # LOOKUP
    # ════════════════════════════════════════════════════════════════════

    def retrieve(self, assistant_id: str) -> Any:
        try:
            return self.client.beta.assistants.retrieve(assistant_id)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Assistant {assistant_id} not found: {e}") from e

    def find_by_name(self, name: str) -> Optional[Any]:
        try:
            for assistant in self.client.beta.assistants.list(limit=100):
                if assistant.name == name:
                    return assistant
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Listing assistants failed: {e}") from e
        return None

    def resolve_id(self, assistant_id: str = "", name: str = "") -> str:
        """
        Raises:
            ResourceError: If neither is given, or no assistant has that name.
        """
        if assistant_id:
            return assistant_id
        if not name:
            raise ResourceError("Specify an assistant with --id or --name")
        assistant = self.find_by_name(name)
        if assistant is None:
            raise ResourceError(f"No assistant named '{name}'")
        return assistant.id

    # ════════════════════════════════════════════════════════════════════
    # SINGLE-SHOT CHAT
    # ════════════════════════════════════════════════════════════════════

    def chat_once(self, assistant_id: str, message: str) -> str:
        """Send one user message as a plain chat completion with the assistant's settings."""
        assistant = self.retrieve(assistant_id)

        kwargs: dict[str, Any] = {
            "model": assistant.model,
            "messages": [{"role": "user", "content": message}],
        }
        top_p = getattr(assistant, "top_p", None)
        if top_p is not None:
            kwargs["top_p"] = top_p

        try:
            response = self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Chat with assistant {assistant_id} failed: {e}") from e

        if not response.choices:
            raise EmptyResponseError(f"No choices returned for assistant {assistant_id}")
        return response.choices[0].message.content or ""

    # ════════════════════════════════════════════════════════════════════
    # THREADS & RUNS
    # ════════════════════════════════════════════════════════════════════

    def create_thread(self) -> Any:
        try:
            thread = self.client.beta.threads.create()
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Creating thread failed: {e}") from e
        self.log.info(f"Created thread {thread.id}")
        return thread

    def send_thread_message(self, thread_id: str, assistant_id: str, text: str) -> Any:
        """Post a user message to the thread and start a run. Returns the run."""
        try:
            self.client.beta.threads.messages.create(thread_id, role="user", content=text)
            run = self.client.beta.threads.runs.create(thread_id=thread_id, assistant_id=assistant_id)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Sending message to thread {thread_id} failed: {e}") from e
        self.log.info(f"Started run {run.id} on thread {thread_id}")
        return run

    def wait_for_run(
        self,
        thread_id: str,
        run_id: str,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Poll a run until it is no longer queued or in progress.

        Args:
            thread_id: Thread the run belongs to.
            run_id: Run to wait for.
            poll_interval: Seconds between status checks.
            timeout: Give up after this many seconds. None waits indefinitely.

        Returns:
            The run in its final state (completed, failed, requires_action, ...).

        Raises:
            RunTimeoutError: The run was still pending at the deadline.
            RemoteRequestError: A status check failed.
        """
        deadline = None if timeout is None else self._clock() + timeout

        while True:
            try:
                run = self.client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
            except openai.OpenAIError as e:
                raise RemoteRequestError(f"Checking run {run_id} failed: {e}") from e

            if run.status not in PENDING_RUN_STATUSES:
                self.log.info(f"Run {run_id} finished: status={run.status}")
                return run

            if deadline is not None and self._clock() >= deadline:
                raise RunTimeoutError(run_id, run.status, timeout)

            self.log.debug(f"Run {run_id} is {run.status}, checking again in {poll_interval}s")
            self._sleep(poll_interval)

    def latest_reply(self, thread_id: str) -> Optional[str]:
        """Text of the newest assistant message in the thread, or None."""
        try:
            messages = self.client.beta.threads.messages.list(thread_id, order="desc")
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Listing messages in thread {thread_id} failed: {e}") from e

        for message in messages:
            if message.role != "assistant" or not message.content:
                continue
            for part in message.content:
                text = getattr(part, "text", None)
                if text is not None:
                    return text.value
        return None

    def ask(
        self,
        thread_id: str,
        assistant_id: str,
        text: str,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """
        Post a message, wait for the run, return the assistant's reply.

        Raises:
            ResourceError: The run ended in a state other than completed.
            RunTimeoutError: The run didn't finish in time.
        """
        run = self.send_thread_message(thread_id, assistant_id, text)
        run = self.wait_for_run(thread_id, run.id, poll_interval=poll_interval, timeout=timeout)
        if run.status != "completed":
            last_error = getattr(run, "last_error", None)
            detail = f": {last_error.message}" if getattr(last_error, "message", None) else ""
            raise ResourceError(f"Run {run.id} ended with status '{run.status}'{detail}")
        return self.latest_reply(thread_id)


def interactive_assistant_chat(
    manager: AssistantManager,
    assistant_id: str,
    console: Optional[Console] = None,
    read_line: Callable[[str], str] = input,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    timeout: Optional[float] = None,
) -> int:
    """
    Chat with an assistant on a new thread until ``exit`` or EOF.

    A failed turn is reported and the loop continues.

    Returns:
        Number of replies received.
    """
    console = console or Console()
    thread = manager.create_thread()
    replies = 0

    console.print(f"[dim]Chatting with assistant {assistant_id} (thread {thread.id}). Type 'exit' to leave.[/]")
    while True:
        try:
            line = read_line("you> ")
        except EOFError:
            console.print()
            break

        text = line.strip()
        if not text:
            continue
        if text.lower() == "exit":
            break

        try:
            with console.status("Waiting for the assistant...", spinner="dots"):
                reply = manager.ask(thread.id, assistant_id, text, poll_interval=poll_interval, timeout=timeout)
        except GptCliError as e:
            console.print(f"[red]Error:[/] {e}")
            continue

        if reply is None:
            console.print("[yellow]No reply from the assistant.[/]")
        else:
            console.print(f"[bold green]assistant>[/] {reply}")
            replies += 1

    return replies
