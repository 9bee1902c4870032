from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone

from app.application.exceptions import NotFoundError
from app.application.ports.api_key_store import ApiKeyStorePort
from app.domain.entities.api_key import ApiKey


class MemoryApiKeyStore(ApiKeyStorePort):
    """
    Keys are inserted and listed under ``_index_lock``. Updates to an existing
    key swap its record under that key's own lock, so usage counting on one key
    never waits on another.
    """

    def __init__(self) -> None:
        self._keys: dict[str, ApiKey] = {}
        self._by_hash: dict[str, str] = {}
        self._index_lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _get_lock(self, key_id: str) -> threading.Lock:
        """Get the update lock for an existing key id."""
        with self._index_lock:
            if key_id not in self._keys:
                raise NotFoundError(f"API key {key_id} not found")
            return self._locks[key_id]

    def add(self, api_key: ApiKey) -> None:
        with self._index_lock:
            self._keys[api_key.id] = api_key
            self._by_hash[api_key.key_hash] = api_key.id
            self._locks.setdefault(api_key.id, threading.Lock())

    def get(self, key_id: str) -> ApiKey | None:
        return self._keys.get(key_id)

    def get_by_hash(self, key_hash: str) -> ApiKey | None:
        key_id = self._by_hash.get(key_hash)
        return self._keys.get(key_id) if key_id else None

    def list_keys(self) -> list[ApiKey]:
        with self._index_lock:
            keys = list(self._keys.values())
        return sorted(keys, key=lambda k: k.created_at)

    def increment_usage(self, key_id: str) -> ApiKey:
        with self._get_lock(key_id):
            current = self._keys[key_id]
            updated = replace(
                current,
                usage_count=current.usage_count + 1,
                last_used_at=datetime.now(timezone.utc),
            )
            self._keys[key_id] = updated
            return updated

    def set_active(self, key_id: str, active: bool) -> ApiKey:
        with self._get_lock(key_id):
            updated = replace(self._keys[key_id], active=active)
            self._keys[key_id] = updated
            return updated
