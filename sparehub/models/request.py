from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sparehub.db.session import Base


def utcnow() -> datetime:
    # naive UTC: одинаково ведёт себя в postgres и sqlite
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RequestStatus:
    PENDING = "Pending"
    OFFERS_RECEIVED = "Offers Received"
    CLOSED = "Closed"
    EXPIRED = "Expired"

    ALL = (PENDING, OFFERS_RECEIVED, CLOSED, EXPIRED)
    ACTIVE = frozenset({PENDING, OFFERS_RECEIVED})
    TERMINAL = frozenset({CLOSED, EXPIRED})

    @classmethod
    def normalize(cls, value: str | None) -> str | None:
        """Accepts 'Offers Received', 'OffersReceived', 'offers_received' etc."""
        if value is None:
            return None
        key = str(value).replace(" ", "").replace("_", "").lower()
        for status in cls.ALL:
            if status.replace(" ", "").lower() == key:
                return status
        return None


CATEGORIES = (
    "Car Parts",
    "Bike Parts",
    "Electric Car Parts",
    "Electric Scooty Parts",
    "Mobile",
    "Tablets",
    "Laptops",
    "Spare Parts",
    "Accessories",
    "Electronics",
)

CONDITIONS = ("New", "Used", "Reconditioned", "Any")


class PartRequest(Base):
    __tablename__ = "part_requests"
    __table_args__ = (
        Index(
            "ix_part_requests_location_category",
            "location_state",
            "location_district",
            "category",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    customer_id: Mapped[str] = mapped_column(String(64), index=True)
    customer_name: Mapped[str] = mapped_column(String(120))
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    part_name: Mapped[str] = mapped_column(String(200))
    vehicle_model: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(64))
    condition: Mapped[str] = mapped_column(String(32))
    description: Mapped[str] = mapped_column(Text, default="")
    reference_photo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    budget_min: Mapped[int] = mapped_column(Integer)
    budget_max: Mapped[int] = mapped_column(Integer)

    location_state: Mapped[str] = mapped_column(String(100))
    location_district: Mapped[str] = mapped_column(String(100))
    location_area: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(32), default=RequestStatus.PENDING, index=True
    )  # Pending/Offers Received/Closed/Expired

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )
    # ставится один раз при создании
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)

    offers = relationship(
        "Offer",
        back_populates="request",
        order_by="Offer.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    targets = relationship(
        "RequestTarget", cascade="all, delete-orphan", passive_deletes=True
    )
    viewers = relationship(
        "RequestViewer",
        order_by="RequestViewer.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def broadcasted_to(self) -> list[str]:
        return sorted(t.shopkeeper_id for t in self.targets)

    @property
    def viewed_by(self) -> list[str]:
        return [v.shopkeeper_id for v in self.viewers]

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def is_active(self) -> bool:
        return self.status in RequestStatus.ACTIVE


class Offer(Base):
    __tablename__ = "request_offers"
    __table_args__ = (
        UniqueConstraint(
            "request_id", "shopkeeper_id", name="uq_request_offers_request_shopkeeper"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("part_requests.id", ondelete="CASCADE"), index=True
    )
    shopkeeper_id: Mapped[str] = mapped_column(String(64), index=True)
    shopkeeper_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    shop_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    price: Mapped[int] = mapped_column(Integer)
    photo: Mapped[str | None] = mapped_column(String(500), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    responded_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    request = relationship("PartRequest", back_populates="offers")


class RequestTarget(Base):
    """Shopkeeper the request is broadcast to."""

    __tablename__ = "request_targets"
    __table_args__ = (
        UniqueConstraint(
            "request_id", "shopkeeper_id", name="uq_request_targets_request_shopkeeper"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("part_requests.id", ondelete="CASCADE"), index=True
    )
    shopkeeper_id: Mapped[str] = mapped_column(String(64), index=True)


class RequestViewer(Base):
    """Shopkeeper who interacted with the request (viewed or offered)."""

    __tablename__ = "request_viewers"
    __table_args__ = (
        UniqueConstraint(
            "request_id", "shopkeeper_id", name="uq_request_viewers_request_shopkeeper"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("part_requests.id", ondelete="CASCADE"), index=True
    )
    shopkeeper_id: Mapped[str] = mapped_column(String(64))
    viewed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
