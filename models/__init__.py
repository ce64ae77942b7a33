from .threads import Thread, Base, DEFAULT_THREAD_TITLE, utcnow
from .users import User
from .messages import Message, MessageRole

__all__ = ["Thread", "User", "Message", "MessageRole", "Base", "DEFAULT_THREAD_TITLE", "utcnow"]
