"""
Жизненный цикл заявки на запчасть.

Pending -> Offers Received (каждый новый оффер) -> Closed (закрывает владелец)
Pending / Offers Received -> Expired (sweep по expires_at)
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from sparehub.core.config import Settings
from sparehub.core.errors import (
    DuplicateOfferError,
    ForbiddenError,
    InactiveRequestError,
    RequestNotFoundError,
    StoreError,
    validation_error_from,
)
from sparehub.models.request import Offer, PartRequest, RequestStatus, utcnow
from sparehub.repositories.requests import RequestRepository
from sparehub.schemas.requests import CreateRequestIn, OfferFieldsIn
from sparehub.services.targeting import (
    CallerSuppliedTargeting,
    TargetingStrategy,
    targeting_from_settings,
)
from sparehub.services.transitions import Actor, can_manage, validate_transition

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)


def _coerce(model: type[BaseModel], data: Any):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise validation_error_from(e.errors()) from e


def _as_naive_utc(now: datetime) -> datetime:
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


class RequestLifecycleService:
    def __init__(
        self,
        repo: RequestRepository,
        *,
        targeting: TargetingStrategy | None = None,
        ttl: timedelta = DEFAULT_TTL,
        strict_transitions: bool = True,
        sweep_on_read: bool = True,
        market_includes_untargeted: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.targeting = targeting or CallerSuppliedTargeting()
        self.ttl = ttl
        self.strict_transitions = strict_transitions
        self.sweep_on_read = sweep_on_read
        self.market_includes_untargeted = market_includes_untargeted
        self.clock = clock

    def _now(self) -> datetime:
        return _as_naive_utc(self.clock())

    def _get_or_404(self, request_id: int) -> PartRequest:
        req = self.repo.get(request_id)
        if not req:
            raise RequestNotFoundError(request_id)
        return req

    # ---------- create ----------
    def create_request(self, data: CreateRequestIn | Mapping[str, Any]) -> PartRequest:
        draft: CreateRequestIn = _coerce(CreateRequestIn, data)
        now = self._now()
        targets = self.targeting.compute_targets(draft)

        req = PartRequest(
            customer_id=draft.customer,
            customer_name=draft.customer_name,
            customer_email=draft.customer_email,
            customer_phone=draft.customer_phone,
            part_name=draft.part_name,
            vehicle_model=draft.vehicle_model,
            category=draft.category,
            condition=draft.condition,
            description=draft.description,
            reference_photo=draft.reference_photo,
            budget_min=draft.budget_min,
            budget_max=draft.budget_max,
            location_state=draft.location.state,
            location_district=draft.location.district,
            location_area=draft.location.area,
            status=RequestStatus.PENDING,
            created_at=now,
            updated_at=now,
            expires_at=now + self.ttl,
        )
        req = self.repo.add(req, targets)
        logger.info(
            "Request %s created by customer %s (%s targets)",
            req.id,
            req.customer_id,
            len(targets),
        )
        return req

    # ---------- read ----------
    def list_requests_for_customer(self, customer_id: str) -> list[PartRequest]:
        if self.sweep_on_read:
            self.sweep_expired_requests()
        return self.repo.list_for_customer(customer_id)

    def list_market_requests_for_shopkeeper(self, shopkeeper_id: str) -> list[PartRequest]:
        if self.sweep_on_read:
            self.sweep_expired_requests()
        return self.repo.list_market(
            shopkeeper_id, include_untargeted=self.market_includes_untargeted
        )

    def get_request(self, request_id: int) -> PartRequest:
        return self._get_or_404(request_id)

    # ---------- offers ----------
    def submit_offer(
        self,
        request_id: int,
        shopkeeper_id: str,
        fields: OfferFieldsIn | Mapping[str, Any],
    ) -> PartRequest:
        offer_in: OfferFieldsIn = _coerce(OfferFieldsIn, fields)
        now = self._now()
        req = self._get_or_404(request_id)

        if req.is_active() and req.is_expired(now):
            # sweep ещё не дошёл до этой заявки
            self.repo.mark_one_expired(req.id, now)
            raise InactiveRequestError(request_id, RequestStatus.EXPIRED)
        if not req.is_active():
            raise InactiveRequestError(request_id, req.status)

        # быстрая проверка; окончательная защита - unique constraint в БД
        if self.repo.has_offer_from(request_id, shopkeeper_id):
            raise DuplicateOfferError(request_id, shopkeeper_id)

        offer = Offer(
            request_id=request_id,
            shopkeeper_id=shopkeeper_id,
            shopkeeper_name=offer_in.shopkeeper_name,
            shop_name=offer_in.shop_name,
            price=offer_in.price,
            photo=offer_in.photo,
            message=offer_in.message,
            responded_at=now,
        )
        if not self.repo.append_offer(offer, now):
            # заявку закрыли/просрочили параллельно
            current = self._get_or_404(request_id)
            raise InactiveRequestError(request_id, current.status)

        logger.info(
            "Offer from shopkeeper %s on request %s (price %s)",
            shopkeeper_id,
            request_id,
            offer_in.price,
        )
        return self._get_or_404(request_id)

    def record_view(self, request_id: int, shopkeeper_id: str) -> PartRequest:
        self._get_or_404(request_id)
        if self.repo.add_viewer(request_id, shopkeeper_id, self._now()):
            logger.debug("Shopkeeper %s viewed request %s", shopkeeper_id, request_id)
        return self._get_or_404(request_id)

    # ---------- status ----------
    def update_status(
        self, request_id: int, new_status: str, actor: Actor | None = None
    ) -> PartRequest:
        target = RequestStatus.normalize(new_status)
        if target is None:
            raise validation_error_from(
                [{"loc": ("status",), "msg": f"Unknown status '{new_status}'", "type": "value_error"}]
            )

        now = self._now()
        req = self._get_or_404(request_id)
        if self.strict_transitions and req.is_active() and req.is_expired(now):
            # дедлайн прошёл, sweep ещё не дошёл: сначала Expired, потом проверка перехода
            self.repo.mark_one_expired(req.id, now)
            req = self._get_or_404(request_id)
        current = req.status

        if self.strict_transitions:
            if not validate_transition(
                current=current, target=target, actor=actor, customer_id=req.customer_id
            ):
                return req
        # lax: прямая перезапись статуса без проверок

        req = self.repo.set_status(req, target, now)
        logger.info(
            "Request %s status %s -> %s (actor=%s)",
            request_id,
            current,
            target,
            actor.id if actor else "system",
        )
        return req

    def delete_request(self, request_id: int, actor: Actor | None = None) -> None:
        req = self._get_or_404(request_id)
        if not can_manage(actor, req.customer_id):
            raise ForbiddenError("Only the request owner can delete it")
        self.repo.delete(req)
        logger.info("Request %s deleted", request_id)

    # ---------- expiry ----------
    def sweep_expired_requests(self, now: datetime | None = None) -> int:
        """Pending/Offers Received с expires_at < now -> Expired. Идемпотентно."""
        now = _as_naive_utc(now) if now is not None else self._now()
        ids = self.repo.find_expirable_ids(now)
        if not ids:
            return 0

        try:
            expired = self.repo.mark_expired(ids, now)
        except StoreError:
            logger.exception("Bulk expiry failed, falling back to per-request updates")
            expired = 0
            for request_id in ids:
                try:
                    if self.repo.mark_one_expired(request_id, now):
                        expired += 1
                except StoreError:
                    logger.exception("Failed to expire request %s", request_id)

        if expired:
            logger.info("Expired %s request(s)", expired)
        return expired


def build_lifecycle_service(db: Session, cfg: Settings) -> RequestLifecycleService:
    return RequestLifecycleService(
        RequestRepository(db),
        targeting=targeting_from_settings(cfg),
        ttl=timedelta(days=cfg.request_ttl_days),
        strict_transitions=cfg.strict_status_transitions,
        sweep_on_read=cfg.sweep_on_read,
        market_includes_untargeted=cfg.market_includes_untargeted,
    )
