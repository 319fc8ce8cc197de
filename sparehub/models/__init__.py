# sparehub/models/__init__.py

from .favorite import Favorite
from .request import (
    CATEGORIES,
    CONDITIONS,
    Offer,
    PartRequest,
    RequestStatus,
    RequestTarget,
    RequestViewer,
    utcnow,
)

__all__ = [
    "CATEGORIES",
    "CONDITIONS",
    "Favorite",
    "Offer",
    "PartRequest",
    "RequestStatus",
    "RequestTarget",
    "RequestViewer",
    "utcnow",
]
