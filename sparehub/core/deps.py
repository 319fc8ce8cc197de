from fastapi import Depends
from sqlalchemy.orm import Session

from sparehub.core.config import Settings, get_settings
from sparehub.db.session import get_db
from sparehub.repositories.favorites import FavoriteRepository
from sparehub.services.favorites import FavoriteService
from sparehub.services.lifecycle import RequestLifecycleService, build_lifecycle_service


def get_request_service(
    db: Session = Depends(get_db),
    cfg: Settings = Depends(get_settings),
) -> RequestLifecycleService:
    return build_lifecycle_service(db, cfg)


def get_favorite_service(db: Session = Depends(get_db)) -> FavoriteService:
    return FavoriteService(FavoriteRepository(db))
