from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from sparehub.core.errors import DuplicateOfferError, RequestNotFoundError
from sparehub.models.request import (
    Offer,
    PartRequest,
    RequestStatus,
    RequestTarget,
    RequestViewer,
)
from sparehub.repositories.base import BaseRepository

_ACTIVE = tuple(RequestStatus.ACTIVE)


def _with_children(stmt):
    return stmt.options(
        selectinload(PartRequest.offers),
        selectinload(PartRequest.targets),
        selectinload(PartRequest.viewers),
    )


class RequestRepository(BaseRepository):
    # ---------- read ----------
    def get(self, request_id: int) -> PartRequest | None:
        with self._store_op("get_request"):
            stmt = _with_children(select(PartRequest).where(PartRequest.id == request_id))
            return self.db.execute(stmt).scalars().first()

    def list_for_customer(self, customer_id: str) -> list[PartRequest]:
        with self._store_op("list_for_customer"):
            stmt = _with_children(
                select(PartRequest)
                .where(PartRequest.customer_id == customer_id)
                .order_by(PartRequest.created_at.desc(), PartRequest.id.desc())
            )
            return list(self.db.execute(stmt).scalars().all())

    def list_market(
        self, shopkeeper_id: str, *, include_untargeted: bool = False
    ) -> list[PartRequest]:
        targeted = PartRequest.targets.any(RequestTarget.shopkeeper_id == shopkeeper_id)
        visibility = or_(targeted, ~PartRequest.targets.any()) if include_untargeted else targeted
        with self._store_op("list_market"):
            stmt = _with_children(
                select(PartRequest)
                .where(visibility, PartRequest.status.in_(_ACTIVE))
                .order_by(PartRequest.created_at.desc(), PartRequest.id.desc())
            )
            return list(self.db.execute(stmt).scalars().all())

    def has_offer_from(self, request_id: int, shopkeeper_id: str) -> bool:
        with self._store_op("has_offer_from"):
            return self._offer_exists(request_id, shopkeeper_id)

    def _offer_exists(self, request_id: int, shopkeeper_id: str) -> bool:
        stmt = select(Offer.id).where(
            Offer.request_id == request_id, Offer.shopkeeper_id == shopkeeper_id
        )
        return self.db.execute(stmt).first() is not None

    def find_expirable_ids(self, now: datetime) -> list[int]:
        with self._store_op("find_expirable_ids"):
            stmt = (
                select(PartRequest.id)
                .where(PartRequest.status.in_(_ACTIVE), PartRequest.expires_at < now)
                .order_by(PartRequest.id.asc())
            )
            return list(self.db.execute(stmt).scalars().all())

    # ---------- write ----------
    def add(self, req: PartRequest, targets: Iterable[str] = ()) -> PartRequest:
        with self._store_op("add_request"):
            for shopkeeper_id in sorted(set(targets)):
                req.targets.append(RequestTarget(shopkeeper_id=shopkeeper_id))
            self.db.add(req)
            self.db.commit()
            self.db.refresh(req)
            return req

    def append_offer(self, offer: Offer, now: datetime) -> bool:
        """
        Атомарно: insert оффера + условный перевод статуса в Offers Received.

        Returns False (и откатывает insert), если заявка уже не активна.
        Unique (request_id, shopkeeper_id) -> DuplicateOfferError,
        заявка удалена до insert -> RequestNotFoundError.
        """
        request_id, shopkeeper_id = offer.request_id, offer.shopkeeper_id
        with self._store_op("append_offer"):
            self.db.add(offer)
            try:
                self.db.flush()
            except IntegrityError as e:
                self.db.rollback()
                # unique (request_id, shopkeeper_id) или FK: заявку удалили параллельно
                if self._offer_exists(request_id, shopkeeper_id):
                    raise DuplicateOfferError(request_id, shopkeeper_id) from e
                gone = self.db.execute(
                    select(PartRequest.id).where(PartRequest.id == request_id)
                ).first() is None
                if gone:
                    raise RequestNotFoundError(request_id) from e
                raise

            res = self.db.execute(
                update(PartRequest)
                .where(
                    PartRequest.id == request_id,
                    PartRequest.status.in_(_ACTIVE),
                )
                .values(status=RequestStatus.OFFERS_RECEIVED, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount == 0:
                self.db.rollback()
                return False

            self._add_viewer(request_id, shopkeeper_id, now)
            self.db.commit()
            return True

    def add_viewer(self, request_id: int, shopkeeper_id: str, now: datetime) -> bool:
        with self._store_op("add_viewer"):
            added = self._add_viewer(request_id, shopkeeper_id, now)
            self.db.commit()
            return added

    def _add_viewer(self, request_id: int, shopkeeper_id: str, now: datetime) -> bool:
        exists = self.db.execute(
            select(RequestViewer.id).where(
                RequestViewer.request_id == request_id,
                RequestViewer.shopkeeper_id == shopkeeper_id,
            )
        ).first()
        if exists:
            return False
        self.db.add(
            RequestViewer(
                request_id=request_id, shopkeeper_id=shopkeeper_id, viewed_at=now
            )
        )
        self.db.flush()
        return True

    def set_status(self, req: PartRequest, status: str, now: datetime) -> PartRequest:
        with self._store_op("set_status"):
            req.status = status
            req.updated_at = now
            self.db.commit()
            return req

    def delete(self, req: PartRequest) -> None:
        with self._store_op("delete_request"):
            self.db.delete(req)
            self.db.commit()

    def mark_expired(self, ids: list[int], now: datetime) -> int:
        """Bulk update; условие по статусу/дедлайну повторяется для идемпотентности."""
        if not ids:
            return 0
        with self._store_op("mark_expired"):
            res = self.db.execute(
                update(PartRequest)
                .where(
                    PartRequest.id.in_(ids),
                    PartRequest.status.in_(_ACTIVE),
                    PartRequest.expires_at < now,
                )
                .values(status=RequestStatus.EXPIRED, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            return int(res.rowcount or 0)

    def mark_one_expired(self, request_id: int, now: datetime) -> bool:
        return self.mark_expired([request_id], now) == 1

