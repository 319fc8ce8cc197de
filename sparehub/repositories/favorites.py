from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from sparehub.models.favorite import Favorite
from sparehub.repositories.base import BaseRepository


class FavoriteRepository(BaseRepository):
    def list_product_ids(self, user_id: str) -> list[int]:
        with self._store_op("list_favorites"):
            stmt = (
                select(Favorite.product_id)
                .where(Favorite.user_id == user_id)
                .order_by(Favorite.added_at.desc(), Favorite.id.desc())
            )
            return list(self.db.execute(stmt).scalars().all())

    def exists(self, user_id: str, product_id: int) -> bool:
        with self._store_op("favorite_exists"):
            stmt = select(Favorite.id).where(
                Favorite.user_id == user_id, Favorite.product_id == product_id
            )
            return self.db.execute(stmt).first() is not None

    def add(self, user_id: str, product_id: int) -> bool:
        """False, если пара уже есть (в т.ч. добавлена параллельным запросом)."""
        with self._store_op("add_favorite"):
            self.db.add(Favorite(user_id=user_id, product_id=product_id))
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                return False
            return True

    def remove(self, user_id: str, product_id: int) -> bool:
        with self._store_op("remove_favorite"):
            res = self.db.execute(
                delete(Favorite).where(
                    Favorite.user_id == user_id, Favorite.product_id == product_id
                )
            )
            self.db.commit()
            return bool(res.rowcount)
