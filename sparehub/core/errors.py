"""Domain errors raised by the request lifecycle and favorites services."""
from __future__ import annotations


class SpareHubError(Exception):
    """Base error. `status_code` and `error` are used by the HTTP layer."""

    status_code = 500
    error = "server_error"

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationError(SpareHubError):
    """Missing or invalid input fields."""

    status_code = 400
    error = "validation_error"

    def __init__(self, message: str, details: list | None = None) -> None:
        super().__init__(message)
        self.details = details or []


def validation_error_from(errors: list[dict]) -> ValidationError:
    """Builds a ValidationError from pydantic/FastAPI `errors()` output."""
    details = []
    for e in errors:
        field = ".".join(str(p) for p in e.get("loc", ()) if p != "body")
        msg = str(e.get("msg", "")).removeprefix("Value error, ")
        details.append({"field": field, "message": msg, "type": e.get("type", "")})

    if any(d["type"] == "missing" for d in details):
        message = "Missing required fields"
    elif details:
        first = details[0]
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    else:
        message = "Invalid input"
    return ValidationError(message, details)


class NotFoundError(SpareHubError):
    status_code = 404
    error = "not_found"


class RequestNotFoundError(NotFoundError):
    def __init__(self, request_id: int) -> None:
        super().__init__("Request not found")
        self.request_id = request_id


class FavoriteNotFoundError(NotFoundError):
    def __init__(self, user_id: str, product_id: int) -> None:
        super().__init__("Favorite not found")
        self.user_id = user_id
        self.product_id = product_id


class InactiveRequestError(SpareHubError):
    """Offer submitted to a Closed/Expired request."""

    status_code = 400
    error = "inactive_request"

    def __init__(self, request_id: int, status: str) -> None:
        super().__init__("This request is no longer active")
        self.request_id = request_id
        self.status = status


class DuplicateOfferError(SpareHubError):
    status_code = 400
    error = "duplicate_offer"

    def __init__(self, request_id: int, shopkeeper_id: str) -> None:
        super().__init__("You have already submitted an offer for this request")
        self.request_id = request_id
        self.shopkeeper_id = shopkeeper_id


class InvalidTransitionError(SpareHubError):
    status_code = 400
    error = "invalid_transition"

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot change status from '{current}' to '{target}'")
        self.current = current
        self.target = target


class ForbiddenError(SpareHubError):
    status_code = 403
    error = "forbidden"


class StoreError(SpareHubError):
    """Persistence failure. Reads are safe to retry, offer submission is not."""

    status_code = 500
    error = "store_error"
