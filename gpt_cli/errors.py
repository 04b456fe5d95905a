"""
Exception hierarchy for gpt-cli.

Every error raised on purpose by this package derives from GptCliError, so
the CLI can report them uniformly:

    GptCliError (base)
    ├── ConfigNotFoundError          - config file missing (recoverable)
    ├── ConfigParseError             - malformed YAML / unknown field / bad type
    ├── UnknownPresetError           - -p NAME not in the prompts section
    ├── FileReadError                - collected or attached file unreadable
    ├── UnsupportedImageFormatError  - attachment is not jpg/png/gif
    ├── HistoryError                 - history file unreadable or unwritable
    ├── AuthenticationError          - OPENAI_API_KEY not set
    ├── RemoteRequestError           - the OpenAI API call failed
    ├── EmptyResponseError           - the API returned zero choices
    ├── RunTimeoutError              - assistant run did not finish in time
    └── ResourceError                - file / vector store / assistant command misuse
"""


class GptCliError(Exception):
    """
    Base exception for all gpt-cli errors.

    Catch this to handle every error the tool raises deliberately:

        try:
            reply = run_chat_turn(client, prompt_config, history_file)
        except GptCliError as e:
            print(f"Error: {e}", file=sys.stderr)
    """
    pass


class ConfigNotFoundError(GptCliError):
    """
    Raised when the config file does not exist (or no path was given).

    Callers are expected to fall back to an empty default configuration;
    see load_configuration().
    """

    def __init__(self, path, message: str | None = None):
        self.path = str(path) if path else ""
        super().__init__(message or f"Config file not found: {self.path or '(no path given)'}")


class ConfigParseError(GptCliError):
    """
    Raised when the config file exists but cannot be used.

    Common causes:
    - Invalid YAML syntax
    - A key that is not part of the schema (typos like ``maxToken``)
    - A value of the wrong type (``maxTokens: lots``)
    """
    pass


class UnknownPresetError(GptCliError):
    """Raised when the requested prompt preset is not defined in the config."""

    def __init__(self, preset: str):
        self.preset = preset
        super().__init__(f"Prompt preset '{preset}' is not defined in the config file")


class FileReadError(GptCliError):
    """Raised when a file that must be read (collected, listed, attached) cannot be."""

    def __init__(self, path, reason: str = ""):
        self.path = str(path)
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed to read {self.path}{detail}")


class UnsupportedImageFormatError(GptCliError):
    """
    Raised when an attachment's extension is not one of .jpg, .jpeg, .png, .gif.

    The MIME type is inferred from the extension only; the file contents
    are never inspected.
    """

    def __init__(self, extension: str, path: str = ""):
        self.extension = extension
        self.path = path
        where = f" ({path})" if path else ""
        super().__init__(f"Unsupported image format: {extension or '(none)'}{where}")


class HistoryError(GptCliError):
    """Raised when a conversation history file cannot be read, parsed or written."""
    pass


class AuthenticationError(GptCliError):
    """
    Raised when no API key is available.

    Resolution:
        export OPENAI_API_KEY="sk-..."
    """
    pass


class RemoteRequestError(GptCliError):
    """
    Raised when a call to the OpenAI API fails.

    The original SDK exception is chained as ``__cause__``.
    """
    pass


class EmptyResponseError(GptCliError):
    """Raised when a chat completion comes back with no choices."""
    pass


class RunTimeoutError(GptCliError):
    """Raised when an assistant run is still queued or in progress at the deadline."""

    def __init__(self, run_id: str, status: str, timeout: float):
        self.run_id = run_id
        self.status = status
        self.timeout = timeout
        super().__init__(
            f"Run {run_id} still '{status}' after {timeout:g}s. "
            f"Increase --run-timeout or check the run on the dashboard."
        )


class ResourceError(GptCliError):
    """
    Raised when a file, vector store or assistant command cannot proceed.

    Typical causes are missing required options (e.g. creating an assistant
    without a config entry and without --model) or a name that matches
    nothing on the server.
    """
    pass
