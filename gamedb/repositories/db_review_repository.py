"""SQLAlchemy-backed review store."""
from typing import Dict, List, Optional

import database
from .base import DBRepository

_WRITABLE = ('text', 'rating')


def _as_pk(review_id) -> Optional[int]:
    try:
        return int(review_id)
    except (TypeError, ValueError):
        return None


class DBReviewRepository(DBRepository):
    """Review store over the ``reviews`` table.

    Review ids are the stringified autoincrement primary key, which also
    serves as the ``sequence`` that newest-first listings are ordered on.
    """

    def create(self, review: Dict) -> str:
        with self._session('creating review') as db:
            row = database.Review(
                user_id=str(review['user_id']),
                game_id=str(review['game_id']),
                text=review.get('text'),
                rating=review.get('rating'),
                date_time_posted=review['date_time_posted'],
            )
            db.add(row)
            db.flush()
            review_id = str(row.id)
        return review_id

    def get(self, review_id: str) -> Optional[Dict]:
        pk = _as_pk(review_id)
        if pk is None:
            return None
        with self._session('loading review') as db:
            row = db.get(database.Review, pk)
            return database.review_to_dict(row) if row is not None else None

    def update(self, review_id: str, partial: Dict) -> bool:
        pk = _as_pk(review_id)
        if pk is None:
            return False
        with self._session('updating review') as db:
            row = db.get(database.Review, pk)
            if row is None:
                return False
            for key in _WRITABLE:
                if key in partial:
                    setattr(row, key, partial[key])
        return True

    def delete(self, review_id: str) -> bool:
        pk = _as_pk(review_id)
        if pk is None:
            return False
        with self._session('deleting review') as db:
            row = db.get(database.Review, pk)
            if row is None:
                return False
            db.delete(row)
        return True

    def delete_by_game(self, game_id: str) -> int:
        with self._session('deleting reviews of game') as db:
            return db.query(database.Review).filter(
                database.Review.game_id == str(game_id)
            ).delete(synchronize_session=False)

    def _list(self, action: str, *criteria) -> List[Dict]:
        with self._session(action) as db:
            rows = (
                db.query(database.Review)
                .filter(*criteria)
                .order_by(database.Review.id.desc())
                .all()
            )
            return [database.review_to_dict(r) for r in rows]

    def list_all(self) -> List[Dict]:
        return self._list('listing reviews')

    def list_by_game(self, game_id: str) -> List[Dict]:
        return self._list('listing reviews of game', database.Review.game_id == str(game_id))

    def list_by_user(self, user_id: str) -> List[Dict]:
        return self._list('listing reviews of user', database.Review.user_id == str(user_id))
