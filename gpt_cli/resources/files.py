"""
Uploaded file management (the API's ``/files`` endpoint).

    manager = FileManager(chat_client.openai)
    uploaded = manager.upload_file("notes.pdf")          # purpose="assistants"
    for f in manager.list_files():
        print(f.id, f.filename)
    manager.delete_files_by_name("draft-*.md")
"""

import fnmatch
import logging
import os
from typing import Any, Optional

import openai

from ..errors import FileReadError, RemoteRequestError, ResourceError

logger = logging.getLogger(__name__)

DEFAULT_PURPOSE = "assistants"


class FileManager:
    """Upload, list and delete files stored with the API."""

    def __init__(self, client: Any, logger: Optional[logging.Logger] = None):
        """
        Args:
            client: ``openai.OpenAI`` (or anything with the same ``files`` API).
            logger: Logger to use instead of this module's logger.
        """
        self.client = client
        self.log = logger or logging.getLogger(__name__)

    def upload_file(self, path: str, purpose: str = DEFAULT_PURPOSE) -> Any:
        """
        Upload a single file.

        Raises:
            FileReadError: If the file doesn't exist or can't be opened.
            RemoteRequestError: If the upload fails.
        """
        if not os.path.isfile(path):
            raise FileReadError(path, "file not found")

        try:
            with open(path, "rb") as f:
                uploaded = self.client.files.create(file=f, purpose=purpose)
        except OSError as e:
            raise FileReadError(path, e.strerror or str(e)) from e
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Upload failed for {path}: {e}") from e

        self.log.info(f"Uploaded {path} -> {uploaded.id}")
        return uploaded

    def upload_files(self, paths: list[str], purpose: str = DEFAULT_PURPOSE) -> list[str]:
        """
        Upload several files, stopping at the first failure.

        Every path is checked before anything is sent, so a typo in the last
        path doesn't leave the first ones uploaded.

        Returns:
            The new file IDs, in input order.
        """
        missing = [p for p in paths if not os.path.isfile(p)]
        if missing:
            raise FileReadError(missing[0], "file not found")

        return [self.upload_file(p, purpose).id for p in paths]

    def list_files(self) -> list[Any]:
        try:
            return list(self.client.files.list())
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Listing files failed: {e}") from e

    def delete_file(self, file_id: str) -> None:
        try:
            self.client.files.delete(file_id)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Deleting file {file_id} failed: {e}") from e
        self.log.info(f"Deleted file {file_id}")

    def delete_files_by_name(self, pattern: str) -> list[Any]:
        """
        Delete every uploaded file whose name matches a shell-style pattern.

        Deletion continues past individual failures; they are reported
        together at the end.

        Returns:
            The file objects that were deleted.

        Raises:
            ResourceError: If one or more matching files could not be deleted.
        """
        deleted = []
        failures = []
        for f in self.list_files():
            if not fnmatch.fnmatchcase(f.filename or "", pattern):
                continue
            try:
                self.delete_file(f.id)
                deleted.append(f)
            except RemoteRequestError as e:
                failures.append(f"{f.filename} ({f.id}): {e.__cause__ or e}")

        if failures:
            raise ResourceError(
                f"Could not delete {len(failures)} file(s): " + "; ".join(failures)
            )
        if not deleted:
            self.log.warning(f"No uploaded files match '{pattern}'")
        return deleted
