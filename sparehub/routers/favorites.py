from fastapi import APIRouter, Depends

from sparehub.core.deps import get_favorite_service
from sparehub.schemas.favorites import ToggleFavoriteIn, ToggleFavoriteOut
from sparehub.services.favorites import FavoriteService

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.get("/{user_id}")
def list_favorites(
    user_id: str,
    service: FavoriteService = Depends(get_favorite_service),
):
    return {"success": True, "favorites": service.list_favorites(user_id)}


@router.post("/toggle", response_model=ToggleFavoriteOut)
def toggle_favorite(
    payload: ToggleFavoriteIn,
    service: FavoriteService = Depends(get_favorite_service),
):
    action = service.toggle_favorite(payload.user_id, payload.product_id)
    message = "Added to favorites" if action == "added" else "Removed from favorites"
    return ToggleFavoriteOut(action=action, message=message)


@router.delete("/{user_id}/{product_id}")
def remove_favorite(
    user_id: str,
    product_id: int,
    service: FavoriteService = Depends(get_favorite_service),
):
    service.remove_favorite(user_id, product_id)
    return {"success": True, "message": "Removed from favorites"}
