"""Business logic for per-user favourites."""
from typing import List

from ..errors import NotFoundError


class FavoritesService:
    """Manages each user's favourites list, delegating persistence to a
    favourites store and checking games against the game store.
    """

    def __init__(self, favorites_store, game_store) -> None:
        self._repo = favorites_store
        self._games = game_store

    def add(self, user_id: str, game_id: str) -> bool:
        """Add *game_id* to the user's favourites.

        Returns:
            ``True`` if added; ``False`` if already in the list.

        Raises:
            NotFoundError: The game does not exist.
        """
        if not self._games.exists(game_id):
            raise NotFoundError('Game not found')
        return self._repo.add(str(user_id), str(game_id))

    def remove(self, user_id: str, game_id: str) -> bool:
        """Remove *game_id* from the user's favourites.

        Returns:
            ``True`` if removed; ``False`` if not found.
        """
        return self._repo.remove(str(user_id), str(game_id))

    def list_for_user(self, user_id: str) -> List[str]:
        """Return the user's favourite game ids in the order they were added."""
        return self._repo.list_for_user(str(user_id))
