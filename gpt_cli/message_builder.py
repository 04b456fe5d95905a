"""
Turn a resolved PromptConfig into the messages sent to the API.

Order is fixed: system (if any), user (if any), then one user message per
image attachment in the order given. Images are sent inline as base64
``data:`` URLs; the bytes are not decoded, resized or transcoded.
"""

import base64
import logging
from pathlib import Path

from .errors import FileReadError, UnsupportedImageFormatError
from .models.message import Message
from .models.prompt import PromptConfig

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}


def image_mime_type(path: str) -> str:
    """
    MIME type for an image path, from its extension alone.

    Raises:
        UnsupportedImageFormatError: For anything but jpg/jpeg/png/gif.
    """
    ext = Path(path).suffix.lower()
    try:
        return IMAGE_MIME_TYPES[ext]
    except KeyError:
        raise UnsupportedImageFormatError(ext, str(path)) from None


def image_to_base64(path: str) -> tuple[str, str]:
    """
    Read an image file and base64-encode it.

    The extension is checked before the file is opened, so an unsupported
    format is reported even when the file doesn't exist.

    Returns:
        (base64 data, MIME type)

    Raises:
        UnsupportedImageFormatError: Extension is not a supported image type.
        FileReadError: The file can't be read.
    """
    mime_type = image_mime_type(path)
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise FileReadError(path, e.strerror or str(e)) from e
    return base64.b64encode(data).decode("ascii"), mime_type


def create_messages(prompt_config: PromptConfig) -> list[Message]:
    """
    Build the outgoing message sequence for one request.

    May return an empty list when the prompt has no system text, no user
    text and no attachments; callers decide whether that is an error.
    """
    messages: list[Message] = []

    if prompt_config.system:
        messages.append(Message.system(prompt_config.system))

    if prompt_config.user:
        messages.append(Message.user(prompt_config.user))

    for attachment in prompt_config.attachments:
        data, mime_type = image_to_base64(attachment)
        messages.append(Message.image(f"data:{mime_type};base64,{data}"))
        logger.debug(f"Attached {attachment} ({mime_type}, {len(data)} base64 chars)")

    return messages
