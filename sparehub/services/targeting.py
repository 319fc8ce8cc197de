"""Broadcast targeting: which shopkeepers see a new request."""
from __future__ import annotations

from typing import Iterable, Protocol

from sparehub.core.config import Settings
from sparehub.schemas.requests import CreateRequestIn


class TargetingStrategy(Protocol):
    def compute_targets(self, request: CreateRequestIn) -> set[str]:
        ...


class CallerSuppliedTargeting:
    """Targets come with the creation payload (`broadcastTo`); may be empty."""

    def compute_targets(self, request: CreateRequestIn) -> set[str]:
        return {sk for sk in request.broadcast_to if sk}


class StaticTargeting:
    """Every request goes to the same configured set of shopkeepers."""

    def __init__(self, shopkeeper_ids: Iterable[str]) -> None:
        self.shopkeeper_ids = frozenset(sk for sk in shopkeeper_ids if sk)

    def compute_targets(self, request: CreateRequestIn) -> set[str]:
        return set(self.shopkeeper_ids)


def targeting_from_settings(cfg: Settings) -> TargetingStrategy:
    if cfg.static_targets:
        return StaticTargeting(cfg.static_targets)
    return CallerSuppliedTargeting()
