from __future__ import annotations

import logging
from typing import Literal

from sparehub.core.errors import FavoriteNotFoundError, ValidationError
from sparehub.repositories.favorites import FavoriteRepository

logger = logging.getLogger(__name__)

ToggleAction = Literal["added", "removed"]


class FavoriteService:
    def __init__(self, repo: FavoriteRepository) -> None:
        self.repo = repo

    @staticmethod
    def _require(user_id: str | None, product_id: int | None) -> None:
        if not user_id or not product_id:
            raise ValidationError("Missing userId or productId")

    def list_favorites(self, user_id: str) -> list[int]:
        return self.repo.list_product_ids(user_id)

    def toggle_favorite(self, user_id: str, product_id: int) -> ToggleAction:
        self._require(user_id, product_id)
        if self.repo.exists(user_id, product_id):
            self.repo.remove(user_id, product_id)
            logger.info("User %s removed product %s from favorites", user_id, product_id)
            return "removed"

        self.repo.add(user_id, product_id)
        logger.info("User %s added product %s to favorites", user_id, product_id)
        return "added"

    def remove_favorite(self, user_id: str, product_id: int) -> None:
        self._require(user_id, product_id)
        if not self.repo.remove(user_id, product_id):
            raise FavoriteNotFoundError(user_id, product_id)
