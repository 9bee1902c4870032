from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Contractor:
    id: int
    status: str = "pending"  # "pending" | "active"
    business_name: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"
