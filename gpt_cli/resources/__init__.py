"""Managers for server-side resources: uploaded files, vector stores, assistants."""

from .assistants import AssistantManager, AssistantSpec
from .files import FileManager
from .vector_stores import VectorStoreManager

__all__ = ["AssistantManager", "AssistantSpec", "FileManager", "VectorStoreManager"]
