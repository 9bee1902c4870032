from abc import ABC, abstractmethod

from app.domain.entities.api_key import ApiKey


class ApiKeyStorePort(ABC):
    @abstractmethod
    def add(self, api_key: ApiKey) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, key_id: str) -> ApiKey | None:
        raise NotImplementedError

    @abstractmethod
    def get_by_hash(self, key_hash: str) -> ApiKey | None:
        raise NotImplementedError

    @abstractmethod
    def list_keys(self) -> list[ApiKey]:
        raise NotImplementedError

    @abstractmethod
    def increment_usage(self, key_id: str) -> ApiKey:
        """Increment usage_count and set last_used_at. Raises NotFoundError for unknown ids."""
        raise NotImplementedError

    @abstractmethod
    def set_active(self, key_id: str, active: bool) -> ApiKey:
        """Raises NotFoundError for unknown ids."""
        raise NotImplementedError
