from fastapi import APIRouter, Depends

from sparehub.core.deps import get_request_service
from sparehub.schemas.requests import (
    ActorRole,
    CreateRequestIn,
    RecordViewIn,
    StatusUpdateIn,
    SubmitOfferIn,
    request_json,
)
from sparehub.services.lifecycle import RequestLifecycleService
from sparehub.services.transitions import Actor

router = APIRouter(prefix="/requests", tags=["requests"])


@router.post("", status_code=201)
def create_request(
    payload: CreateRequestIn,
    service: RequestLifecycleService = Depends(get_request_service),
):
    req = service.create_request(payload)
    return {
        "success": True,
        "message": "Request created successfully",
        "request": request_json(req),
        "notifiedShopkeepers": len(req.broadcasted_to),
    }


@router.get("/customer/{customer_id}")
def list_customer_requests(
    customer_id: str,
    service: RequestLifecycleService = Depends(get_request_service),
):
    items = service.list_requests_for_customer(customer_id)
    return {"success": True, "requests": [request_json(r) for r in items]}


@router.get("/market/{shopkeeper_id}")
def list_market_requests(
    shopkeeper_id: str,
    service: RequestLifecycleService = Depends(get_request_service),
):
    items = service.list_market_requests_for_shopkeeper(shopkeeper_id)
    return {"success": True, "requests": [request_json(r) for r in items]}


# cron дергает этот же sweep раз в час (см. worker), здесь - ручной запуск
@router.get("/cleanup/expired")
def cleanup_expired(service: RequestLifecycleService = Depends(get_request_service)):
    expired = service.sweep_expired_requests()
    return {"success": True, "message": "Expired requests marked", "expired": expired}


@router.post("/{request_id}/offer")
def submit_offer(
    request_id: int,
    payload: SubmitOfferIn,
    service: RequestLifecycleService = Depends(get_request_service),
):
    req = service.submit_offer(request_id, payload.shopkeeper_id, payload)
    return {
        "success": True,
        "message": "Offer submitted successfully",
        "request": request_json(req),
    }


@router.post("/{request_id}/view")
def record_view(
    request_id: int,
    payload: RecordViewIn,
    service: RequestLifecycleService = Depends(get_request_service),
):
    req = service.record_view(request_id, payload.shopkeeper_id)
    return {"success": True, "request": request_json(req)}


@router.put("/{request_id}/status")
def update_status(
    request_id: int,
    payload: StatusUpdateIn,
    service: RequestLifecycleService = Depends(get_request_service),
):
    actor = Actor(id=payload.actor_id, role=payload.actor_role) if payload.actor_id else None
    req = service.update_status(request_id, payload.status, actor)
    return {"success": True, "request": request_json(req)}


@router.delete("/{request_id}")
def delete_request(
    request_id: int,
    actor_id: str | None = None,
    actor_role: ActorRole = "customer",
    service: RequestLifecycleService = Depends(get_request_service),
):
    actor = Actor(id=actor_id, role=actor_role) if actor_id else None
    service.delete_request(request_id, actor)
    return {"success": True, "message": "Request deleted successfully"}
