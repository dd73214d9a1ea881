"""Admin bearer-token stores.

Issued admin tokens are tracked by their JWT ``jti``. A token is honoured
only while its jti is in the store, so logging out is a ``revoke``. The
store instance is built once in ``create_app`` and handed around through
``app.extensions['admin_tokens']``.
"""
import threading
import time
from typing import Dict, Optional

import redis


class AdminTokenStore:
    """Interface: create/verify/revoke for issued admin tokens."""

    def add(self, jti: str, expires_in: Optional[int] = None) -> None:
        raise NotImplementedError

    def contains(self, jti: str) -> bool:
        raise NotImplementedError

    def revoke(self, jti: str) -> None:
        raise NotImplementedError


class MemoryTokenStore(AdminTokenStore):
    """Per-process store for development and tests."""

    def __init__(self):
        self._tokens: Dict[str, Optional[float]] = {}
        self._lock = threading.Lock()

    def add(self, jti: str, expires_in: Optional[int] = None) -> None:
        deadline = time.monotonic() + expires_in if expires_in else None
        with self._lock:
            self._tokens[jti] = deadline

    def contains(self, jti: str) -> bool:
        with self._lock:
            if jti not in self._tokens:
                return False
            deadline = self._tokens[jti]
            if deadline is not None and time.monotonic() > deadline:
                del self._tokens[jti]
                return False
            return True

    def revoke(self, jti: str) -> None:
        with self._lock:
            self._tokens.pop(jti, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


class RedisTokenStore(AdminTokenStore):
    """Shared store for multi-worker deployments."""

    KEY_PREFIX = 'qr_attendance:admin_token:'

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> 'RedisTokenStore':
        return cls(redis.Redis.from_url(url, decode_responses=True, socket_timeout=5))

    def _key(self, jti: str) -> str:
        return f'{self.KEY_PREFIX}{jti}'

    def add(self, jti: str, expires_in: Optional[int] = None) -> None:
        if expires_in:
            self.client.setex(self._key(jti), int(expires_in), '1')
        else:
            self.client.set(self._key(jti), '1')

    def contains(self, jti: str) -> bool:
        return bool(self.client.exists(self._key(jti)))

    def revoke(self, jti: str) -> None:
        self.client.delete(self._key(jti))


def build_token_store(url: str) -> AdminTokenStore:
    """Pick a store from ``TOKEN_STORE_URL``."""
    if not url or url.startswith('memory://'):
        return MemoryTokenStore()
    if url.startswith(('redis://', 'rediss://', 'unix://')):
        return RedisTokenStore.from_url(url)
    raise ValueError(f'Unsupported token store URL: {url}')
