from .admin import AdminChatFilter

__all__ = ["AdminChatFilter"]
