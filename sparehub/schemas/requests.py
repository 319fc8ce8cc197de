from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from sparehub.models.request import CATEGORIES, CONDITIONS, PartRequest, RequestStatus

Category = Literal[CATEGORIES]  # type: ignore[valid-type]
Condition = Literal[CONDITIONS]  # type: ignore[valid-type]
ActorRole = Literal["customer", "shopkeeper", "admin"]


class _In(BaseModel):
    class Config:
        populate_by_name = True
        str_strip_whitespace = True
        # клиент шлёт id пользователей числами (Date.now())
        coerce_numbers_to_str = True


class _Out(BaseModel):
    class Config:
        populate_by_name = True


# ---------- input ----------
class LocationIn(_In):
    state: str = Field(min_length=1)
    district: str = Field(min_length=1)
    area: Optional[str] = None


class CreateRequestIn(_In):
    customer: str = Field(min_length=1)
    customer_name: str = Field(min_length=1, alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")

    part_name: str = Field(min_length=1, alias="partName")
    vehicle_model: str = Field(min_length=1, alias="vehicleModel")
    category: Category
    condition: Condition
    description: str = ""
    reference_photo: Optional[str] = Field(None, alias="referencePhoto")

    budget_min: int = Field(ge=0, alias="budgetMin")
    budget_max: int = Field(ge=0, alias="budgetMax")

    location: LocationIn
    # кому показывать заявку; используется CallerSuppliedTargeting
    broadcast_to: List[str] = Field(default_factory=list, alias="broadcastTo")

    @field_validator("condition", mode="before")
    @classmethod
    def _old_means_used(cls, v):
        if isinstance(v, str) and v.strip().lower() == "old":
            return "Used"
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v):
        return "" if v is None else v

    @model_validator(mode="after")
    def _budget_range(self):
        if self.budget_min > self.budget_max:
            raise ValueError("budgetMin must be less than or equal to budgetMax")
        return self


class OfferFieldsIn(_In):
    shopkeeper_name: Optional[str] = Field(None, alias="shopkeeperName")
    shop_name: Optional[str] = Field(None, alias="shopName")
    price: int = Field(gt=0)
    photo: Optional[str] = None
    message: Optional[str] = None


class SubmitOfferIn(OfferFieldsIn):
    shopkeeper_id: str = Field(min_length=1, alias="shopkeeperId")


class RecordViewIn(_In):
    shopkeeper_id: str = Field(min_length=1, alias="shopkeeperId")


class StatusUpdateIn(_In):
    status: str
    actor_id: Optional[str] = Field(None, alias="actorId")
    actor_role: ActorRole = Field("customer", alias="actorRole")

    @field_validator("status")
    @classmethod
    def _known_status(cls, v: str) -> str:
        normalized = RequestStatus.normalize(v)
        if normalized is None:
            raise ValueError(f"Unknown status '{v}'")
        return normalized


# ---------- output ----------
class LocationOut(_Out):
    state: str
    district: str
    area: Optional[str] = None


class OfferOut(_Out):
    id: int
    shopkeeper_id: str = Field(alias="shopkeeperId")
    shopkeeper_name: Optional[str] = Field(None, alias="shopkeeperName")
    shop_name: Optional[str] = Field(None, alias="shopName")
    price: int
    photo: Optional[str] = None
    message: Optional[str] = None
    responded_at: datetime = Field(alias="respondedAt")


class RequestOut(_Out):
    id: int
    customer: str
    customer_name: str = Field(alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    part_name: str = Field(alias="partName")
    vehicle_model: str = Field(alias="vehicleModel")
    category: str
    condition: str
    description: str
    reference_photo: Optional[str] = Field(None, alias="referencePhoto")
    budget_min: int = Field(alias="budgetMin")
    budget_max: int = Field(alias="budgetMax")
    location: LocationOut
    status: str
    broadcasted_to: List[str] = Field(alias="broadcastedTo")
    viewed_by: List[str] = Field(alias="viewedBy")
    offers: List[OfferOut]
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    expires_at: datetime = Field(alias="expiresAt")

    @classmethod
    def from_model(cls, req: PartRequest) -> "RequestOut":
        return cls(
            id=req.id,
            customer=req.customer_id,
            customer_name=req.customer_name,
            customer_email=req.customer_email,
            customer_phone=req.customer_phone,
            part_name=req.part_name,
            vehicle_model=req.vehicle_model,
            category=req.category,
            condition=req.condition,
            description=req.description or "",
            reference_photo=req.reference_photo,
            budget_min=req.budget_min,
            budget_max=req.budget_max,
            location=LocationOut(
                state=req.location_state,
                district=req.location_district,
                area=req.location_area,
            ),
            status=req.status,
            broadcasted_to=req.broadcasted_to,
            viewed_by=req.viewed_by,
            offers=[
                OfferOut(
                    id=o.id,
                    shopkeeper_id=o.shopkeeper_id,
                    shopkeeper_name=o.shopkeeper_name,
                    shop_name=o.shop_name,
                    price=o.price,
                    photo=o.photo,
                    message=o.message,
                    responded_at=o.responded_at,
                )
                for o in req.offers
            ],
            created_at=req.created_at,
            updated_at=req.updated_at,
            expires_at=req.expires_at,
        )


def request_json(req: PartRequest) -> dict:
    return RequestOut.from_model(req).model_dump(by_alias=True, mode="json")
