"""Principal abstraction for callers acting on the scheduling engine."""

from __future__ import annotations

from dataclasses import dataclass

from .core.enums import RoleName


@dataclass(frozen=True)
class Actor:
    """The identity performing an operation. Authentication happens upstream."""

    id: str
    role: RoleName

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN

    def can_act_for(self, owner_id: str) -> bool:
        """True when the actor owns ``owner_id``'s resources or is an admin."""
        return self.is_admin or self.id == owner_id
