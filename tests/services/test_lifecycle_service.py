"""
Тесты для RequestLifecycleService: создание, офферы, листинги, sweep, удаление.
"""

from datetime import timedelta, timezone

import pytest
from sqlalchemy import delete, update

from sparehub.core.errors import (
    DuplicateOfferError,
    ForbiddenError,
    InactiveRequestError,
    RequestNotFoundError,
    StoreError,
    ValidationError,
)
from sparehub.models.request import Offer, PartRequest, RequestStatus
from sparehub.repositories.requests import RequestRepository
from sparehub.services.lifecycle import RequestLifecycleService
from sparehub.services.transitions import Actor

OFFER = {"shopkeeperName": "Amit", "shopName": "Amit Auto Spares", "price": 450}


# --- create ---


def test_create_request_starts_pending(service, make_payload, clock):
    req = service.create_request(make_payload())

    assert req.id is not None
    assert req.status == RequestStatus.PENDING
    assert req.offers == []
    assert req.viewed_by == []
    assert req.broadcasted_to == ["shop-1", "shop-2"]
    assert req.created_at == clock.now
    assert req.expires_at == clock.now + timedelta(days=7)


def test_create_request_inverted_budget_rejected(service, make_payload):
    """Сценарий A: budgetMin > budgetMax."""
    with pytest.raises(ValidationError) as exc:
        service.create_request(make_payload(budgetMin=1000, budgetMax=500))
    assert "budgetMin" in exc.value.message


@pytest.mark.parametrize(
    "field", ["partName", "vehicleModel", "category", "condition", "budgetMin", "budgetMax", "location"]
)
def test_create_request_missing_required_field(service, make_payload, field):
    payload = make_payload()
    payload.pop(field)
    with pytest.raises(ValidationError) as exc:
        service.create_request(payload)
    assert exc.value.message == "Missing required fields"


def test_create_request_blank_part_name_rejected(service, make_payload):
    with pytest.raises(ValidationError):
        service.create_request(make_payload(partName="   "))


def test_create_request_negative_budget_rejected(service, make_payload):
    with pytest.raises(ValidationError):
        service.create_request(make_payload(budgetMin=-1))


def test_create_request_unknown_category_rejected(service, make_payload):
    with pytest.raises(ValidationError):
        service.create_request(make_payload(category="Tractor Parts"))


def test_create_request_zero_budget_allowed(service, make_payload):
    req = service.create_request(make_payload(budgetMin=0, budgetMax=0))
    assert req.budget_min == 0


def test_create_request_old_condition_stored_as_used(service, make_payload):
    req = service.create_request(make_payload(condition="Old"))
    assert req.condition == "Used"


def test_create_request_custom_ttl(db, clock, make_payload):
    service = RequestLifecycleService(
        RequestRepository(db), ttl=timedelta(days=3), clock=clock
    )
    req = service.create_request(make_payload())
    assert req.expires_at == clock.now + timedelta(days=3)


def test_create_then_list_round_trip(service, make_payload):
    created = service.create_request(make_payload())
    [listed] = service.list_requests_for_customer("cust-1")

    assert listed.id == created.id
    assert listed.status == RequestStatus.PENDING
    assert listed.part_name == "Brake pad set"
    assert listed.vehicle_model == "Maruti Swift 2019"
    assert listed.customer_name == "Ravi Kumar"
    assert (listed.location_state, listed.location_district, listed.location_area) == (
        "Delhi",
        "South Delhi",
        "Saket",
    )
    assert (listed.budget_min, listed.budget_max) == (500, 1500)
    assert listed.expires_at == created.expires_at


# --- offers ---


def test_first_offer_moves_to_offers_received(service, make_payload):
    """Сценарий C."""
    req = service.create_request(make_payload())

    updated = service.submit_offer(req.id, "shop-1", OFFER)

    assert updated.status == RequestStatus.OFFERS_RECEIVED
    assert len(updated.offers) == 1
    assert updated.offers[0].price == 450
    assert updated.offers[0].shop_name == "Amit Auto Spares"
    assert "shop-1" in updated.viewed_by


def test_second_offer_from_same_shopkeeper_rejected(service, make_payload):
    """Сценарий D."""
    req = service.create_request(make_payload())
    service.submit_offer(req.id, "shop-1", OFFER)

    with pytest.raises(DuplicateOfferError):
        service.submit_offer(req.id, "shop-1", {**OFFER, "price": 400})

    assert len(service.get_request(req.id).offers) == 1


def test_store_unique_constraint_is_authoritative(service, make_payload, mocker):
    req = service.create_request(make_payload())
    service.submit_offer(req.id, "shop-1", OFFER)

    # пред-проверка "проиграла гонку"
    mocker.patch.object(service.repo, "has_offer_from", return_value=False)

    with pytest.raises(DuplicateOfferError):
        service.submit_offer(req.id, "shop-1", OFFER)
    assert len(service.get_request(req.id).offers) == 1


def test_offers_from_distinct_shopkeepers_kept_in_arrival_order(service, make_payload, clock):
    req = service.create_request(make_payload())
    for i, shop in enumerate(["shop-3", "shop-1", "shop-2"]):
        clock.advance(minutes=5)
        service.submit_offer(req.id, shop, {**OFFER, "price": 400 + i})

    updated = service.get_request(req.id)
    assert [o.shopkeeper_id for o in updated.offers] == ["shop-3", "shop-1", "shop-2"]
    assert updated.status == RequestStatus.OFFERS_RECEIVED
    assert updated.viewed_by == ["shop-3", "shop-1", "shop-2"]


def test_offer_on_missing_request(service):
    with pytest.raises(RequestNotFoundError):
        service.submit_offer(999, "shop-1", OFFER)


def test_offer_with_non_positive_price_rejected(service, make_payload):
    req = service.create_request(make_payload())
    with pytest.raises(ValidationError):
        service.submit_offer(req.id, "shop-1", {**OFFER, "price": 0})


@pytest.mark.parametrize("terminal", [RequestStatus.CLOSED, RequestStatus.EXPIRED])
def test_no_offers_on_terminal_request(service, make_payload, terminal):
    req = service.create_request(make_payload())
    service.update_status(req.id, terminal)

    for shop in ("shop-1", "shop-2", "shop-9"):
        with pytest.raises(InactiveRequestError):
            service.submit_offer(req.id, shop, OFFER)
    assert service.get_request(req.id).offers == []


def test_offer_after_deadline_expires_request(service, make_payload, clock):
    req = service.create_request(make_payload())
    clock.advance(days=8)

    with pytest.raises(InactiveRequestError):
        service.submit_offer(req.id, "shop-1", OFFER)
    assert service.get_request(req.id).status == RequestStatus.EXPIRED


def test_offer_rolled_back_when_request_closed_concurrently(
    service, make_payload, session_factory, mocker
):
    req = service.create_request(make_payload())
    request_id = req.id

    def close_meanwhile(*args):
        other = session_factory()
        other.execute(
            update(PartRequest)
            .where(PartRequest.id == request_id)
            .values(status=RequestStatus.CLOSED)
        )
        other.commit()
        other.close()
        return False

    mocker.patch.object(service.repo, "has_offer_from", side_effect=close_meanwhile)

    with pytest.raises(InactiveRequestError):
        service.submit_offer(request_id, "shop-1", OFFER)

    current = service.get_request(request_id)
    assert current.status == RequestStatus.CLOSED
    assert current.offers == []


def test_offer_on_request_deleted_concurrently(
    service, make_payload, session_factory, mocker
):
    req = service.create_request(make_payload())
    request_id = req.id

    def delete_meanwhile(*args):
        other = session_factory()
        other.execute(delete(PartRequest).where(PartRequest.id == request_id))
        other.commit()
        other.close()
        return False

    mocker.patch.object(service.repo, "has_offer_from", side_effect=delete_meanwhile)

    # FK-ошибка insert не должна выглядеть как повторный оффер
    with pytest.raises(RequestNotFoundError):
        service.submit_offer(request_id, "shop-9", OFFER)
    with pytest.raises(RequestNotFoundError):
        service.get_request(request_id)


def test_record_view_is_idempotent(service, make_payload):
    req = service.create_request(make_payload())
    service.record_view(req.id, "shop-2")
    updated = service.record_view(req.id, "shop-2")

    assert updated.viewed_by == ["shop-2"]
    assert updated.status == RequestStatus.PENDING


def test_record_view_missing_request(service):
    with pytest.raises(RequestNotFoundError):
        service.record_view(42, "shop-1")


# --- listings ---


def test_customer_listing_newest_first(service, make_payload, clock):
    first = service.create_request(make_payload(partName="Clutch plate"))
    clock.advance(hours=1)
    second = service.create_request(make_payload(partName="Headlight"))
    service.create_request(make_payload(customer="cust-2"))

    items = service.list_requests_for_customer("cust-1")
    assert [r.id for r in items] == [second.id, first.id]


def test_customer_listing_sweeps_stale_requests(service, make_payload, clock):
    service.create_request(make_payload())
    clock.advance(days=8)

    [req] = service.list_requests_for_customer("cust-1")
    assert req.status == RequestStatus.EXPIRED


def test_market_listing_only_targeted_active_requests(service, make_payload, clock):
    visible = service.create_request(make_payload(broadcastTo=["shop-1"]))
    service.create_request(make_payload(broadcastTo=["shop-2"]))
    closed = service.create_request(make_payload(broadcastTo=["shop-1"]))
    service.update_status(closed.id, RequestStatus.CLOSED)
    clock.advance(hours=1)
    offered = service.create_request(make_payload(broadcastTo=["shop-1", "shop-3"]))
    service.submit_offer(offered.id, "shop-3", OFFER)

    items = service.list_market_requests_for_shopkeeper("shop-1")
    assert [r.id for r in items] == [offered.id, visible.id]


def test_market_listing_hides_expired(service, make_payload, clock):
    service.create_request(make_payload(broadcastTo=["shop-1"]))
    clock.advance(days=7, seconds=1)

    assert service.list_market_requests_for_shopkeeper("shop-1") == []


def test_market_listing_untargeted_requests(db, clock, make_payload):
    repo = RequestRepository(db)
    strict = RequestLifecycleService(repo, clock=clock)
    open_market = RequestLifecycleService(
        repo, clock=clock, market_includes_untargeted=True
    )
    untargeted = strict.create_request(make_payload(broadcastTo=[]))

    assert strict.list_market_requests_for_shopkeeper("shop-7") == []
    assert [r.id for r in open_market.list_market_requests_for_shopkeeper("shop-7")] == [
        untargeted.id
    ]


def test_listing_without_sweep_on_read(db, clock, make_payload):
    service = RequestLifecycleService(RequestRepository(db), clock=clock, sweep_on_read=False)
    service.create_request(make_payload())
    clock.advance(days=8)

    [req] = service.list_requests_for_customer("cust-1")
    assert req.status == RequestStatus.PENDING


# --- sweep ---


def test_sweep_expires_after_deadline(service, make_payload, clock):
    """Сценарий B."""
    req = service.create_request(make_payload())

    assert service.sweep_expired_requests(clock.now + timedelta(days=6)) == 0
    assert service.sweep_expired_requests(clock.now + timedelta(days=8)) == 1
    assert service.get_request(req.id).status == RequestStatus.EXPIRED


def test_sweep_is_idempotent(service, make_payload, clock):
    service.create_request(make_payload())
    offered = service.create_request(make_payload(customer="cust-2"))
    service.submit_offer(offered.id, "shop-1", OFFER)
    now = clock.now + timedelta(days=10)

    assert service.sweep_expired_requests(now) == 2
    first = {r.id: (r.status, r.updated_at) for r in service.list_requests_for_customer("cust-1")}

    assert service.sweep_expired_requests(now) == 0
    second = {r.id: (r.status, r.updated_at) for r in service.list_requests_for_customer("cust-1")}
    assert first == second


def test_sweep_leaves_closed_requests_alone(service, make_payload, clock):
    req = service.create_request(make_payload())
    service.update_status(req.id, RequestStatus.CLOSED)

    assert service.sweep_expired_requests(clock.now + timedelta(days=30)) == 0
    assert service.get_request(req.id).status == RequestStatus.CLOSED


def test_sweep_continues_after_per_record_failure(service, make_payload, clock, mocker):
    a = service.create_request(make_payload())
    b = service.create_request(make_payload())

    real_mark_expired = service.repo.mark_expired
    mocker.patch.object(service.repo, "mark_expired", side_effect=StoreError("boom"))

    def flaky(request_id, now):
        if request_id == a.id:
            raise StoreError("bad row")
        return real_mark_expired([request_id], now) == 1

    mocker.patch.object(service.repo, "mark_one_expired", side_effect=flaky)

    assert service.sweep_expired_requests(clock.now + timedelta(days=8)) == 1
    assert service.get_request(b.id).status == RequestStatus.EXPIRED
    assert service.get_request(a.id).status == RequestStatus.PENDING


def test_sweep_accepts_timezone_aware_now(service, make_payload, clock):
    service.create_request(make_payload())
    aware = (clock.now + timedelta(days=8)).replace(tzinfo=timezone.utc)
    assert service.sweep_expired_requests(aware) == 1


# --- delete ---


def test_delete_by_owner_removes_offers(service, make_payload, db):
    req = service.create_request(make_payload())
    service.submit_offer(req.id, "shop-1", OFFER)

    service.delete_request(req.id, Actor(id="cust-1"))

    with pytest.raises(RequestNotFoundError):
        service.get_request(req.id)
    assert db.query(Offer).count() == 0


def test_delete_by_other_customer_forbidden(service, make_payload):
    req = service.create_request(make_payload())
    with pytest.raises(ForbiddenError):
        service.delete_request(req.id, Actor(id="cust-2"))


def test_delete_by_admin_allowed(service, make_payload):
    req = service.create_request(make_payload())
    service.delete_request(req.id, Actor(id="root", role="admin"))
    with pytest.raises(RequestNotFoundError):
        service.get_request(req.id)


def test_delete_missing_request(service):
    with pytest.raises(RequestNotFoundError):
        service.delete_request(123)


def test_is_expired_uses_strict_deadline(service, make_payload, clock):
    req = service.create_request(make_payload())

    assert req.is_expired(req.expires_at) is False
    assert req.is_expired(req.expires_at + timedelta(seconds=1)) is True
    assert req.is_expired(clock.now) is False
