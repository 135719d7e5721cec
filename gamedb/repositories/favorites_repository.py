"""Repository for per-user favourites ({user_id: [game_id, ...]})."""
from typing import Dict, List

from .base import BaseRepository
from ..errors import StoreError


class FavoritesRepository(BaseRepository):
    """Persists every user's favourites list to a JSON file.

    Schema::

        {"<user_id>": ["<game_id>", ...]}
    """

    def __init__(self, file_path: str = '.gamedb_favorites.json') -> None:
        super().__init__(file_path)
        raw = self._load({})
        self.data: Dict[str, List[str]] = raw if isinstance(raw, dict) else {}

    def list_for_user(self, user_id: str) -> List[str]:
        with self._lock:
            return list(self.data.get(str(user_id), []))

    def add(self, user_id: str, game_id: str) -> bool:
        """Append *game_id* to the user's list.  Returns ``True`` if added."""
        user_key, game_key = str(user_id), str(game_id)
        with self._lock:
            favorites = self.data.setdefault(user_key, [])
            if game_key in favorites:
                return False
            favorites.append(game_key)
            try:
                self.save()
            except StoreError:
                favorites.remove(game_key)
                raise
            return True

    def remove(self, user_id: str, game_id: str) -> bool:
        """Remove *game_id* from the user's list.  Returns ``True`` if it was present."""
        user_key, game_key = str(user_id), str(game_id)
        with self._lock:
            favorites = self.data.get(user_key, [])
            if game_key not in favorites:
                return False
            favorites.remove(game_key)
            try:
                self.save()
            except StoreError:
                favorites.append(game_key)
                raise
            return True

    def delete_by_game(self, game_id: str) -> int:
        """Drop *game_id* from every user's list.  Returns the number of entries removed."""
        game_key = str(game_id)
        with self._lock:
            previous = {user: list(games) for user, games in self.data.items()}
            removed = 0
            for user, games in self.data.items():
                if game_key in games:
                    self.data[user] = [g for g in games if g != game_key]
                    removed += 1
            if not removed:
                return 0
            try:
                self.save()
            except StoreError:
                self.data = previous
                raise
            return removed

    def save(self) -> None:
        self._save(self.data)
