from __future__ import annotations

import logging
from typing import Iterable

from app.application.ports.authenticator import AuthenticatorPort
from app.domain.entities.contractor import Contractor


class StaticContractorDirectory(AuthenticatorPort):
    def __init__(self, active_ids: Iterable[int] = (), pending_ids: Iterable[int] = ()) -> None:
        self._contractors: dict[int, Contractor] = {}
        for contractor_id in pending_ids:
            self._contractors[contractor_id] = Contractor(id=contractor_id, status="pending")
        for contractor_id in active_ids:
            self._contractors[contractor_id] = Contractor(id=contractor_id, status="active")

    def get_contractor(self, contractor_id: int) -> Contractor | None:
        return self._contractors.get(contractor_id)

    def add(self, contractor: Contractor) -> None:
        self._contractors[contractor.id] = contractor


class OpenContractorDirectory(AuthenticatorPort):
    """Treats every contractor id as active. For local development only."""

    def __init__(self) -> None:
        logging.getLogger(__name__).warning("No contractor ids configured; accepting every contractor in dev mode")

    def get_contractor(self, contractor_id: int) -> Contractor | None:
        return Contractor(id=contractor_id, status="active")
