"""
Command-line interface for gpt-cli.

Commands:
- chat: send a prompt (preset, flags, files, images, stdin) and print the reply
- show-history: print a saved conversation
- files: upload / list / delete uploaded files
- vector-store: create / list / delete / add-file / upload-and-add
- assistant: create / chat

Usage:
    gpt-cli chat -p review -f "src/*.py"
    git diff | gpt-cli chat -u "Write a commit message for this diff"
    gpt-cli chat --history work -I
    python run.py <command> [options]
"""

import functools
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .chat import interactive_chat, run_chat_turn
from .config import load_configuration
from .errors import GptCliError, HistoryError
from .history import format_history, load_conversation_history, normalize_history_name
from .llm.client import DEFAULT_TIMEOUT, ChatClient
from .options import Options, build_user_message, configure_log_directory
from .resolver import get_prompt_config
from .resources.assistants import DEFAULT_POLL_INTERVAL, AssistantManager, interactive_assistant_chat
from .resources.files import DEFAULT_PURPOSE, FileManager
from .resources.vector_stores import VectorStoreManager

logger = logging.getLogger(__name__)

# Rich consoles: tables on stdout, status and errors on stderr
console = Console()
err_console = Console(stderr=True)


# ── Logging Setup ──
def setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(level)
    # Keep the SDK's HTTP chatter out of --debug output
    for name in ("httpx", "httpcore", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def handle_errors(func):
    """Report GptCliError as ``Error: ...`` on stderr and exit 1; Ctrl+C exits 130."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GptCliError as e:
            logger.debug("Command failed", exc_info=True)
            err_console.print(f"[bold red]Error:[/] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            err_console.print("\n[yellow]Interrupted.[/]")
            sys.exit(130)

    return wrapper


def common_options(func):
    """-c/--config, -d/--debug and -t/--timeout, shared by every command."""
    func = click.option("--timeout", "-t", default=DEFAULT_TIMEOUT, type=float, show_default=True,
                        help="Request timeout in seconds")(func)
    func = click.option("--debug", "-d", is_flag=True, help="Enable debug logging")(func)
    func = click.option("--config", "-c", "config_path", default=None,
                        type=click.Path(dir_okay=False, path_type=Path),
                        help="Config file (default: $GPT_CLI_CONFIG_PATH or the user config dir)")(func)
    return func


def _read_piped_stdin() -> str | None:
    stream = click.get_text_stream("stdin")
    if stream.isatty():
        return None
    try:
        return stream.read()
    except UnicodeDecodeError as e:
        raise GptCliError(f"Piped input is not valid text: {e}") from e


@click.group()
@click.version_option(version=__version__, prog_name="gpt-cli")
def main():
    """
    gpt-cli - Chat with OpenAI models from the terminal.

    Compose prompts from config presets, flags, files, images and stdin,
    keep conversations on disk, and manage assistants, files and vector
    stores. Requires OPENAI_API_KEY.
    """
    pass


# ════════════════════════════════════════════════════════════════════════════
# CHAT
# ════════════════════════════════════════════════════════════════════════════


@main.command()
@click.argument("words", nargs=-1)
@click.option("--prompt", "-p", default="", help="Prompt preset from the config file")
@click.option("--system", "-s", default=None, help="Override the system message")
@click.option("--user", "-u", default=None, help="Override the user message")
@click.option("--images", "-i", default="", help="Comma-separated image files to attach")
@click.option("--model", "-m", default=None, help="Model to use")
@click.option("--collect", is_flag=True, help="Append every file under the current directory")
@click.option("--history", "history_file", default="", help="Conversation name (saved in the log directory)")
@click.option("--files", "-f", "file_list", default="", help="Comma-separated files or globs to append")
@click.option("--tool", "tools", multiple=True, help="Tool name (repeatable)")
@click.option("--max-tokens", default=None, type=int, help="Upper bound on reply tokens")
@click.option("--interactive", "-I", is_flag=True, help="Keep chatting until 'exit'")
@click.option("--quiet", "-q", is_flag=True, help="No spinner, reply only")
@common_options
@handle_errors
def chat(words, prompt, system, user, images, model, collect, history_file, file_list,
         tools, max_tokens, interactive, quiet, config_path, debug, timeout):
    """
    Send a prompt and print the reply.

    Positional WORDS and piped stdin are appended to the user message.

    Example:
        gpt-cli chat -p review -f "src/*.py"
        cat error.log | gpt-cli chat "What went wrong?"
    """
    setup_logging(debug)
    config = load_configuration(config_path)

    options = Options(
        prompt=prompt,
        system=system,
        user=user,
        model=model,
        images=images,
        collect=collect,
        history_file=history_file,
        timeout=timeout,
        file_list=file_list,
        tools=list(tools),
        max_tokens=max_tokens,
    )
    build_user_message(options, words, None if interactive else _read_piped_stdin())
    configure_log_directory(options, config)

    prompt_config = get_prompt_config(config, options)
    client = ChatClient(timeout=options.timeout)

    if interactive:
        interactive_chat(client, prompt_config, options.history_file, console=console)
        return

    if quiet:
        response = run_chat_turn(client, prompt_config, options.history_file)
    else:
        with err_console.status(f"Asking {prompt_config.model}...", spinner="dots"):
            response = run_chat_turn(client, prompt_config, options.history_file)

    click.echo(response.content)
    logger.debug(f"Token usage: {response.usage}")
    if options.history_file and not quiet:
        err_console.print(f"[dim]Saved to {normalize_history_name(options.history_file)}[/]")


@main.command("show-history")
@click.argument("name")
@common_options
@handle_errors
def show_history(name, config_path, debug, timeout):
    """
    Print a saved conversation from the log directory.

    Example:
        gpt-cli show-history work
    """
    setup_logging(debug)
    config = load_configuration(config_path)
    options = Options(show_history=name)
    configure_log_directory(options, config)

    path = normalize_history_name(options.show_history)
    if not Path(path).exists():
        raise HistoryError(f"No conversation history at {path}")

    messages = load_conversation_history(path)
    console.print(format_history(messages), markup=False, highlight=False)


# ════════════════════════════════════════════════════════════════════════════
# FILES
# ════════════════════════════════════════════════════════════════════════════


@main.group()
def files():
    """Manage uploaded files."""
    pass


@files.command("upload")
@click.argument("paths", nargs=-1, required=True)
@click.option("--purpose", default=DEFAULT_PURPOSE, show_default=True, help="Upload purpose")
@common_options
@handle_errors
def files_upload(paths, purpose, config_path, debug, timeout):
    """Upload one or more files."""
    setup_logging(debug)
    manager = FileManager(ChatClient(timeout=timeout).openai)
    for file_id in manager.upload_files(list(paths), purpose):
        console.print(f"Uploaded: [cyan]{file_id}[/]")


@files.command("list")
@common_options
@handle_errors
def files_list(config_path, debug, timeout):
    """List uploaded files."""
    setup_logging(debug)
    manager = FileManager(ChatClient(timeout=timeout).openai)

    table = Table(title="Uploaded Files")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Bytes", justify="right")
    table.add_column("Purpose")
    table.add_column("Status")
    for f in manager.list_files():
        table.add_row(f.id, f.filename, str(f.bytes), f.purpose, str(getattr(f, "status", "") or ""))
    console.print(table)


@files.command("delete")
@click.option("--id", "file_id", default="", help="File ID to delete")
@click.option("--name", "pattern", default="", help="Delete every file whose name matches (glob)")
@common_options
@handle_errors
def files_delete(file_id, pattern, config_path, debug, timeout):
    """Delete a file by ID, or all files matching a name pattern."""
    setup_logging(debug)
    if not file_id and not pattern:
        raise GptCliError("Specify --id or --name")

    manager = FileManager(ChatClient(timeout=timeout).openai)
    if file_id:
        manager.delete_file(file_id)
        console.print(f"Deleted file: [cyan]{file_id}[/]")
        return

    deleted = manager.delete_files_by_name(pattern)
    for f in deleted:
        console.print(f"Deleted file: [cyan]{f.id}[/] ({escape(f.filename)})")
    if not deleted:
        console.print(f"[yellow]No files match '{escape(pattern)}'[/]")


# ════════════════════════════════════════════════════════════════════════════
# VECTOR STORES
# ════════════════════════════════════════════════════════════════════════════


@main.group("vector-store")
def vector_store():
    """Manage vector stores."""
    pass


@vector_store.command("create")
@click.argument("name")
@common_options
@handle_errors
def vector_store_create(name, config_path, debug, timeout):
    """Create a vector store."""
    setup_logging(debug)
    store = VectorStoreManager(ChatClient(timeout=timeout).openai).create(name)
    console.print(f"Created vector store: [cyan]{store.id}[/] ({escape(store.name)})")


@vector_store.command("list")
@common_options
@handle_errors
def vector_store_list(config_path, debug, timeout):
    """List vector stores."""
    setup_logging(debug)
    stores = VectorStoreManager(ChatClient(timeout=timeout).openai).list()

    table = Table(title="Vector Stores")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Files", justify="right")
    for vs in stores:
        counts = getattr(vs, "file_counts", None)
        table.add_row(vs.id, vs.name or "", vs.status or "", str(getattr(counts, "total", "")))
    console.print(table)


@vector_store.command("delete")
@click.argument("vector_store_id")
@common_options
@handle_errors
def vector_store_delete(vector_store_id, config_path, debug, timeout):
    """Delete a vector store by ID."""
    setup_logging(debug)
    VectorStoreManager(ChatClient(timeout=timeout).openai).delete(vector_store_id)
    console.print(f"Deleted vector store: [cyan]{vector_store_id}[/]")


@vector_store.command("add-file")
@click.argument("vector_store_id")
@click.argument("file_ids", nargs=-1, required=True)
@common_options
@handle_errors
def vector_store_add_file(vector_store_id, file_ids, config_path, debug, timeout):
    """Attach already-uploaded files to a vector store."""
    setup_logging(debug)
    VectorStoreManager(ChatClient(timeout=timeout).openai).add_files(vector_store_id, list(file_ids))
    console.print(f"Added {len(file_ids)} file(s) to vector store [cyan]{vector_store_id}[/]")


@vector_store.command("upload-and-add")
@click.argument("paths", nargs=-1, required=True)
@click.option("--name", default=None, help="Vector store to use or create (default: auto-named)")
@click.option("--purpose", default=DEFAULT_PURPOSE, show_default=True, help="Upload purpose")
@common_options
@handle_errors
def vector_store_upload_and_add(paths, name, purpose, config_path, debug, timeout):
    """Upload local files and add them to a vector store."""
    setup_logging(debug)
    store = VectorStoreManager(ChatClient(timeout=timeout).openai).upload_and_add(
        list(paths), purpose=purpose, name=name
    )
    console.print(f"Added {len(paths)} file(s) to vector store [cyan]{store.id}[/] ({escape(store.name)})")


# ════════════════════════════════════════════════════════════════════════════
# ASSISTANTS
# ════════════════════════════════════════════════════════════════════════════


@main.group()
def assistant():
    """Create and chat with assistants."""
    pass


@assistant.command("create")
@click.option("--name", required=True, help="Assistant name (also the config entry to start from)")
@click.option("--description", default=None, help="Assistant description")
@click.option("--model", "-m", default=None, help="Model")
@click.option("--instruction", default=None, help="System instructions")
@click.option("--temperature", default=None, type=float, help="Sampling temperature")
@click.option("--vector-store-name", default=None, help="Vector store for file_search (created if missing)")
@click.option("--vector-store-id", default=None, help="Existing vector store ID for file_search")
@common_options
@handle_errors
def assistant_create(name, description, model, instruction, temperature, vector_store_name,
                     vector_store_id, config_path, debug, timeout):
    """
    Create an assistant with code_interpreter and file_search.

    Settings come from the config entry under assistants: matching --name;
    any flag given here overrides it. Without a config entry every
    setting must be passed as a flag.
    """
    setup_logging(debug)
    config = load_configuration(config_path)
    spec = AssistantManager.resolve_create_options(
        config,
        name,
        description=description,
        model=model,
        instruction=instruction,
        temperature=temperature,
        vector_store_name=vector_store_name,
        vector_store_id=vector_store_id,
    )
    created = AssistantManager(ChatClient(timeout=timeout).openai).create(spec)
    console.print(f"Created assistant: [cyan]{created.id}[/] ({escape(spec.name)})")


@assistant.command("chat")
@click.option("--id", "assistant_id", default="", help="Assistant ID")
@click.option("--name", default="", help="Assistant name (looked up on the server)")
@click.option("--message", "-u", default="", help="Send one message instead of starting a session")
@click.option("--poll-interval", default=DEFAULT_POLL_INTERVAL, type=float, show_default=True,
              help="Seconds between run status checks")
@click.option("--run-timeout", default=None, type=float, help="Give up on a run after this many seconds")
@common_options
@handle_errors
def assistant_chat(assistant_id, name, message, poll_interval, run_timeout, config_path, debug, timeout):
    """
    Chat with an assistant.

    With -u, sends a single message and prints the reply. Otherwise starts
    an interactive session on a new thread.
    """
    setup_logging(debug)
    manager = AssistantManager(ChatClient(timeout=timeout).openai)
    resolved_id = manager.resolve_id(assistant_id=assistant_id, name=name)

    if message:
        click.echo(manager.chat_once(resolved_id, message))
        return

    interactive_assistant_chat(
        manager, resolved_id, console=console, poll_interval=poll_interval, timeout=run_timeout
    )


if __name__ == "__main__":
    main()
