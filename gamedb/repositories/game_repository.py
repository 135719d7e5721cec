"""Repository for game records ({game_id: game_dict})."""
import copy
from typing import Dict, List, Optional

from .base import BaseRepository
from ..errors import StoreError


class GameRepository(BaseRepository):
    """Persists game metadata and the rating aggregate to a JSON file.

    Schema::

        {
            "<game_id>": {
                "game_id":        <str>,
                "title":          <str>,
                "description":    <str>,
                "release_date":   <"YYYY-MM-DD" | "">,
                "platform":       <str>,
                "genre":          <str>,
                "image":          <str>,
                "upcoming":       <bool>,
                "released":       <bool>,
                "average_rating": <float>,
                "total_ratings":  <int>
            }
        }
    """

    def __init__(self, file_path: str = '.gamedb_games.json') -> None:
        super().__init__(file_path)
        raw = self._load({})
        self.data: Dict[str, Dict] = raw if isinstance(raw, dict) else {}

    def exists(self, game_id: str) -> bool:
        with self._lock:
            return str(game_id) in self.data

    def get(self, game_id: str) -> Optional[Dict]:
        """Return a copy of the game for *game_id*, or ``None``."""
        with self._lock:
            game = self.data.get(str(game_id))
            return dict(game) if game is not None else None

    def list_all(self) -> List[Dict]:
        """Return every game ordered by title."""
        with self._lock:
            games = [dict(g) for g in self.data.values()]
        return sorted(games, key=lambda g: (g.get('title') or '', g['game_id']))

    def create(self, game: Dict) -> bool:
        """Insert *game* keyed by its ``game_id``.  Returns ``False`` if taken."""
        key = str(game['game_id'])
        with self._lock:
            if key in self.data:
                return False
            self.data[key] = dict(game, game_id=key)
            try:
                self.save()
            except StoreError:
                del self.data[key]
                raise
            return True

    def apply_partial_update(self, game_id: str, fields: Dict) -> bool:
        """Overwrite only *fields* on the stored game.  Returns ``False`` if absent."""
        key = str(game_id)
        with self._lock:
            if key not in self.data:
                self._log.warning("Partial update skipped, game %s not found", key)
                return False
            previous = copy.deepcopy(self.data[key])
            self.data[key].update({k: v for k, v in fields.items() if k != 'game_id'})
            try:
                self.save()
            except StoreError:
                self.data[key] = previous
                raise
            return True

    def delete(self, game_id: str) -> bool:
        """Remove the game.  Returns ``True`` if it existed."""
        key = str(game_id)
        with self._lock:
            if key not in self.data:
                return False
            removed = self.data.pop(key)
            try:
                self.save()
            except StoreError:
                self.data[key] = removed
                raise
            return True

    def save(self) -> None:
        """Persist the current in-memory data to disk."""
        self._save(self.data)
