# backend/tutor_scheduling/api/dependencies/auth.py
"""
Caller identity for API requests.

Authentication happens upstream; the gateway forwards the authenticated
principal in the ``X-Actor-Id`` and ``X-Actor-Role`` headers.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from ...core.enums import RoleName
from ...principal import Actor

logger = logging.getLogger(__name__)


def get_actor(
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    x_actor_role: Optional[str] = Header(None, alias="X-Actor-Role"),
) -> Actor:
    """Build the acting principal from forwarded identity headers."""
    actor_id = (x_actor_id or "").strip()
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity",
        )
    try:
        role = RoleName((x_actor_role or RoleName.LEARNER.value).strip().lower())
    except ValueError:
        logger.warning("Rejected unknown actor role", extra={"actor_id": actor_id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return Actor(id=actor_id, role=role)


def require_owner(actor: Actor, tutor_id: str) -> None:
    """Only the tutor (or an admin) may edit a tutor's availability."""
    if not actor.can_act_for(tutor_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
