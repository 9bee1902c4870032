from abc import ABC, abstractmethod

from app.domain.entities.contractor import Contractor


class AuthenticatorPort(ABC):
    """Contractor identity lives outside the gateway; it only asks who is active."""

    @abstractmethod
    def get_contractor(self, contractor_id: int) -> Contractor | None:
        raise NotImplementedError
