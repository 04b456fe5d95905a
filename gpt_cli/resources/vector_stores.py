"""
Vector store management.

A vector store is a server-side index of uploaded files used by the
assistants' ``file_search`` tool. Stores can be addressed by ID or by
name; names are not unique on the server, so lookups by name take the
first match.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import openai

from ..errors import RemoteRequestError, ResourceError
from .files import DEFAULT_PURPOSE, FileManager

logger = logging.getLogger(__name__)


def auto_store_name(now: Optional[float] = None) -> str:
    return f"Auto-Generated Vector Store {int(now if now is not None else time.time())}"


class VectorStoreManager:
    """
    CRUD for vector stores, plus the upload-then-attach shortcut.

    Usage:
        stores = VectorStoreManager(chat_client.openai)
        vs = stores.get_or_create("Project docs")
        stores.add_files(vs.id, ["file-abc", "file-def"])

        # Upload local files and index them in one step
        vs = stores.upload_and_add(["a.md", "b.md"], name="Project docs")
    """

    def __init__(self, client: Any, logger: Optional[logging.Logger] = None):
        self.client = client
        self.log = logger or logging.getLogger(__name__)

    # ════════════════════════════════════════════════════════════════════
    # CRUD
    # ════════════════════════════════════════════════════════════════════

    def create(self, name: str) -> Any:
        if not name:
            raise ResourceError("A vector store name is required")
        try:
            store = self.client.vector_stores.create(name=name)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Creating vector store '{name}' failed: {e}") from e
        self.log.info(f"Created vector store {store.id} ({name})")
        return store

    def list(self) -> list[Any]:
        try:
            return list(self.client.vector_stores.list())
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Listing vector stores failed: {e}") from e

    def retrieve(self, vector_store_id: str) -> Any:
        try:
            return self.client.vector_stores.retrieve(vector_store_id)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Vector store {vector_store_id} not found: {e}") from e

    def delete(self, vector_store_id: str) -> None:
        try:
            self.client.vector_stores.delete(vector_store_id)
        except openai.OpenAIError as e:
            raise RemoteRequestError(f"Deleting vector store {vector_store_id} failed: {e}") from e
        self.log.info(f"Deleted vector store {vector_store_id}")

    # ════════════════════════════════════════════════════════════════════
    # FILES
    # ════════════════════════════════════════════════════════════════════

    def add_file(self, vector_store_id: str, file_id: str) -> Any:
        try:
            vs_file = self.client.vector_stores.files.create(
                vector_store_id=vector_store_id, file_id=file_id
            )
        except openai.OpenAIError as e:
            raise RemoteRequestError(
                f"Adding file {file_id} to vector store {vector_store_id} failed: {e}"
            ) from e
        self.log.info(f"Added file {file_id} to vector store {vector_store_id}")
        return vs_file

    def add_files(self, vector_store_id: str, file_ids: list[str]) -> list[Any]:
        """Attach files one at a time, stopping at the first failure."""
        return [self.add_file(vector_store_id, file_id) for file_id in file_ids]

    # ════════════════════════════════════════════════════════════════════
    # LOOKUP
    # ════════════════════════════════════════════════════════════════════

    def find_by_name(self, name: str) -> Optional[Any]:
        for store in self.list():
            if store.name == name:
                return store
        return None

    def get_or_create(self, name: str) -> Any:
        """Return the first store called ``name``, creating it if there is none."""
        store = self.find_by_name(name)
        if store is not None:
            self.log.debug(f"Using existing vector store {store.id} ({name})")
            return store
        return self.create(name)

    def resolve(self, vector_store_id: str = "", name: str = "") -> Any:
        """
        Find a store by ID, or by name (creating it if needed).

        Raises:
            ResourceError: If neither an ID nor a name is given.
        """
        if vector_store_id:
            return self.retrieve(vector_store_id)
        if name:
            return self.get_or_create(name)
        raise ResourceError("Specify a vector store ID or name")

    def upload_and_add(
        self,
        paths: list[str],
        purpose: str = DEFAULT_PURPOSE,
        name: Optional[str] = None,
        files: Optional[FileManager] = None,
    ) -> Any:
        """
        Upload local files and attach them to a vector store.

        Args:
            paths: Local files to upload.
            purpose: Upload purpose.
            name: Store to use or create. Defaults to a timestamped name.
            files: FileManager to upload with (defaults to one on the same client).

        Returns:
            The vector store the files were added to.
        """
        files = files or FileManager(self.client, logger=self.log)
        file_ids = files.upload_files(paths, purpose)

        store = self.get_or_create(name or auto_store_name())
        self.add_files(store.id, file_ids)
        self.log.info(f"Added {len(file_ids)} file(s) to vector store {store.id} ({store.name})")
        return store
