from .storage import StorageBackend, create_storage
from .threads import ThreadService
from .relay import RelayClient, get_relay_client

__all__ = ["StorageBackend", "create_storage", "ThreadService", "RelayClient", "get_relay_client"]
