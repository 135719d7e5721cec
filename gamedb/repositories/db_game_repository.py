"""SQLAlchemy-backed game store."""
from typing import Dict, List, Optional

import database
from .base import DBRepository

# dict key -> Game column
_COLUMNS = {
    'title': 'title',
    'description': 'description',
    'release_date': 'release_date',
    'platform': 'platform',
    'genre': 'genre',
    'image': 'image',
    'upcoming': 'upcoming',
    'released': 'released',
    'average_rating': 'average_rating',
    'total_ratings': 'total_ratings',
}


class DBGameRepository(DBRepository):
    """Game store over the ``games`` table."""

    def exists(self, game_id: str) -> bool:
        with self._session('checking game') as db:
            return db.get(database.Game, str(game_id)) is not None

    def get(self, game_id: str) -> Optional[Dict]:
        with self._session('loading game') as db:
            row = db.get(database.Game, str(game_id))
            return database.game_to_dict(row) if row is not None else None

    def list_all(self) -> List[Dict]:
        with self._session('listing games') as db:
            rows = db.query(database.Game).order_by(database.Game.title, database.Game.id).all()
            return [database.game_to_dict(r) for r in rows]

    def create(self, game: Dict) -> bool:
        with self._session('creating game') as db:
            if db.get(database.Game, str(game['game_id'])) is not None:
                return False
            row = database.Game(id=str(game['game_id']))
            for key, column in _COLUMNS.items():
                if key in game:
                    setattr(row, column, game[key])
            db.add(row)
        return True

    def apply_partial_update(self, game_id: str, fields: Dict) -> bool:
        """Overwrite only *fields* on the game row.  Returns ``False`` if absent."""
        with self._session('updating game') as db:
            row = db.get(database.Game, str(game_id))
            if row is None:
                self._log.warning("Partial update skipped, game %s not found", game_id)
                return False
            for key, value in fields.items():
                column = _COLUMNS.get(key)
                if column:
                    setattr(row, column, value)
        return True

    def delete(self, game_id: str) -> bool:
        with self._session('deleting game') as db:
            row = db.get(database.Game, str(game_id))
            if row is None:
                return False
            db.delete(row)
        return True
