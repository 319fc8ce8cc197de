"""Request status transition rules for explicit status updates."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from sparehub.core.errors import ForbiddenError, InvalidTransitionError
from sparehub.models.request import RequestStatus

# Offers Received выставляется только через submit_offer, Expired обычно через sweep
ALLOWED_TRANSITIONS: Mapping[str, frozenset[str]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.CLOSED, RequestStatus.EXPIRED}),
    RequestStatus.OFFERS_RECEIVED: frozenset(
        {RequestStatus.CLOSED, RequestStatus.EXPIRED}
    ),
    RequestStatus.CLOSED: frozenset(),
    RequestStatus.EXPIRED: frozenset(),
}


@dataclass(frozen=True)
class Actor:
    id: str
    role: str = "customer"  # customer/shopkeeper/admin

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def can_manage(actor: Actor | None, customer_id: str) -> bool:
    """None = внутренний вызов (cron, админский скрипт)."""
    if actor is None or actor.is_admin:
        return True
    return actor.role == "customer" and actor.id == customer_id


def validate_transition(
    *, current: str, target: str, actor: Actor | None, customer_id: str
) -> bool:
    """
    Returns False when nothing changes (same status), True when the move is allowed.

    Raises InvalidTransitionError / ForbiddenError otherwise.
    """
    if current == target:
        return False

    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current, target)

    if target == RequestStatus.EXPIRED:
        if actor is not None and not actor.is_admin:
            raise ForbiddenError("Only an administrator can expire a request")
    elif not can_manage(actor, customer_id):
        raise ForbiddenError("Only the request owner can close it")

    return True
