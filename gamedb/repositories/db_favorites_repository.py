"""SQLAlchemy-backed favourites store."""
from typing import List

import database
from .base import DBRepository


class DBFavoritesRepository(DBRepository):
    """Favourites store over the ``favorites`` table."""

    def list_for_user(self, user_id: str) -> List[str]:
        with self._session('listing favorites') as db:
            rows = (
                db.query(database.Favorite)
                .filter(database.Favorite.user_id == str(user_id))
                .order_by(database.Favorite.id)
                .all()
            )
            return [r.game_id for r in rows]

    def add(self, user_id: str, game_id: str) -> bool:
        with self._session('adding favorite') as db:
            existing = db.query(database.Favorite).filter(
                database.Favorite.user_id == str(user_id),
                database.Favorite.game_id == str(game_id),
            ).first()
            if existing:
                return False
            db.add(database.Favorite(user_id=str(user_id), game_id=str(game_id)))
        return True

    def remove(self, user_id: str, game_id: str) -> bool:
        with self._session('removing favorite') as db:
            removed = db.query(database.Favorite).filter(
                database.Favorite.user_id == str(user_id),
                database.Favorite.game_id == str(game_id),
            ).delete(synchronize_session=False)
        return bool(removed)

    def delete_by_game(self, game_id: str) -> int:
        with self._session('deleting favorites of game') as db:
            return db.query(database.Favorite).filter(
                database.Favorite.game_id == str(game_id)
            ).delete(synchronize_session=False)
