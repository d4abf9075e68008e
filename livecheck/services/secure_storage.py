"""
Key-value storage for authentication tokens and the verified phone number
"""
import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Minimal get/set/delete interface a platform secure store must provide"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used in tests and by the websocket service"""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SecureStorage:
    """
    Typed accessors over a KeyValueStore.

    Holds the auth token returned by OTP verification, the refresh token and
    the phone number used as the upload username.
    """

    AUTH_TOKEN = "auth_token"
    REFRESH_TOKEN = "refresh_token"
    USER_PHONE = "user_phone"

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store or InMemoryKeyValueStore()

    def store_auth_token(self, token: str) -> None:
        self.store.set(self.AUTH_TOKEN, token)

    def get_auth_token(self) -> Optional[str]:
        return self.store.get(self.AUTH_TOKEN)

    def store_refresh_token(self, token: str) -> None:
        self.store.set(self.REFRESH_TOKEN, token)

    def get_refresh_token(self) -> Optional[str]:
        return self.store.get(self.REFRESH_TOKEN)

    def store_user_phone(self, phone: str) -> None:
        self.store.set(self.USER_PHONE, phone)

    def get_user_phone(self) -> Optional[str]:
        return self.store.get(self.USER_PHONE)

    def clear_all(self) -> None:
        """Remove every stored credential (logout)."""
        for key in (self.AUTH_TOKEN, self.REFRESH_TOKEN, self.USER_PHONE):
            self.store.delete(key)
        logger.info("Cleared stored credentials")

    def is_authenticated(self) -> bool:
        return self.get_auth_token() is not None
