from .client import ChatClient, ChatResponse

__all__ = ["ChatClient", "ChatResponse"]
