"""API key validation, issuing and usage tracking.

Keys carry an ``lg_`` prefix followed by a URL-safe random token. Only the
SHA-256 hash of a key is kept; the raw key is returned once, when issued.

Presenting no key at all is anonymous access and is allowed. Presenting a key
that is unknown or revoked is rejected with ``InvalidKeyError`` before the
request touches any booking state.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timezone

from app.application.exceptions import InvalidKeyError
from app.application.ports.api_key_store import ApiKeyStorePort
from app.domain.entities.api_key import ApiKey


KEY_PREFIX = "lg_"


def hash_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


def generate_api_key() -> tuple[str, str, str]:
    """Return ``(raw_key, key_prefix, key_hash)`` for a fresh key.

    ``key_prefix`` is the first 8 characters, safe to show in listings and logs.
    """
    key = KEY_PREFIX + secrets.token_urlsafe(32)
    return key, key[:8], hash_key(key)


class ApiKeyRegistry:
    def __init__(self, store: ApiKeyStorePort) -> None:
        self._store = store
        self._logger = logging.getLogger(__name__)

    def validate(self, raw_key: str | None) -> ApiKey | None:
        """Return the key context, or None for anonymous access.

        Raises:
            InvalidKeyError: a key was presented but is unknown or inactive.
        """
        if not raw_key:
            return None
        api_key = self._store.get_by_hash(hash_key(raw_key))
        if api_key is None or not api_key.active:
            self._logger.info("Rejected API key", extra={"key_prefix": raw_key[:8]})
            raise InvalidKeyError("Invalid or inactive API key")
        return api_key

    def record_usage(self, key_id: str) -> None:
        """Bump usage_count and last_used_at. Never raises: metering must not fail a request."""
        try:
            self._store.increment_usage(key_id)
        except Exception as e:
            self._logger.warning("Failed to record API key usage", extra={"key_id": key_id, "error": str(e)})

    def issue(self, name: str) -> tuple[str, ApiKey]:
        raw_key, key_prefix, key_hash = generate_api_key()
        api_key = self._register(name, key_prefix, key_hash)
        self._logger.info("Issued API key", extra={"key_prefix": key_prefix})
        return raw_key, api_key

    def seed(self, raw_key: str, name: str = "seeded") -> ApiKey:
        """Register a key supplied through configuration. Re-seeding the same key is a no-op."""
        key_hash = hash_key(raw_key)
        existing = self._store.get_by_hash(key_hash)
        if existing is not None:
            return existing
        return self._register(name, raw_key[:8], key_hash)

    def revoke(self, key_id: str) -> ApiKey:
        api_key = self._store.set_active(key_id, False)
        self._logger.info("Revoked API key", extra={"key_prefix": api_key.key_prefix})
        return api_key

    def list_keys(self) -> list[ApiKey]:
        return self._store.list_keys()

    def _register(self, name: str, key_prefix: str, key_hash: str) -> ApiKey:
        api_key = ApiKey(
            id=str(uuid.uuid4()),
            name=name,
            key_prefix=key_prefix,
            key_hash=key_hash,
            created_at=datetime.now(timezone.utc),
        )
        self._store.add(api_key)
        return api_key
