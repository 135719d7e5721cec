"""Business logic for the game catalogue."""
import logging
from typing import Dict, List, Optional

from ..errors import NotFoundError, ValidationError

logger = logging.getLogger('gamedb.services.games')

# Metadata an admin may set; the rating aggregate is never writable here.
EDITABLE_FIELDS = ('title', 'description', 'release_date', 'platform', 'genre', 'image',
                   'upcoming', 'released')
_FLAG_FIELDS = ('upcoming', 'released')


def _as_flag(value) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() == 'true')


def _contains(haystack, needle: str) -> bool:
    return bool(haystack) and needle.lower() in str(haystack).lower()


class GameService:
    """Lists, searches and administers games.

    Deleting a game also deletes its reviews and every user's favourite
    entry for it, so no review ever references a missing game.
    """

    def __init__(self, game_store, review_store, favorites_store, aggregator=None) -> None:
        self._games = game_store
        self._reviews = review_store
        self._favorites = favorites_store
        self._aggregator = aggregator

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_all(self) -> List[Dict]:
        return self._games.list_all()

    def get_with_reviews(self, game_id: str) -> Dict:
        """Return ``{'game': ..., 'reviews': [...]}`` with reviews newest first."""
        game = self._games.get(game_id)
        if game is None:
            raise NotFoundError('Game not found')
        return {'game': game, 'reviews': self._reviews.list_by_game(game_id)}

    def search(self, title: Optional[str]) -> List[Dict]:
        """Case-insensitive substring match on the title."""
        if not title or not str(title).strip():
            raise ValidationError('Title parameter required')
        needle = str(title).strip()
        return [g for g in self._games.list_all() if _contains(g.get('title'), needle)]

    def filter(self, platform: Optional[str] = None, genre: Optional[str] = None,
               status: Optional[str] = None, min_rating=None,
               start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[Dict]:
        """Apply every given criterion; omitted criteria match everything.

        Args:
            platform:   Substring of the platform (case-insensitive).
            genre:      Substring of the genre (case-insensitive).
            status:     ``'upcoming'`` or ``'released'``; anything else is ignored.
            min_rating: Lowest acceptable ``average_rating``.  Unrated games
                        never match.
            start_date: Inclusive lower ISO date; only applied together
                        with *end_date*.
            end_date:   Inclusive upper ISO date.

        Raises:
            ValidationError: *min_rating* is not a number.
        """
        games = self._games.list_all()

        if platform:
            games = [g for g in games if _contains(g.get('platform'), platform)]
        if genre:
            games = [g for g in games if _contains(g.get('genre'), genre)]

        if status == 'upcoming':
            games = [g for g in games if g.get('upcoming') is True]
        elif status == 'released':
            games = [g for g in games if g.get('released') is True]

        if min_rating not in (None, ''):
            try:
                threshold = float(min_rating)
            except (TypeError, ValueError):
                raise ValidationError('min_rating must be a number')
            games = [g for g in games
                     if g.get('average_rating') and g['average_rating'] >= threshold]

        if start_date and end_date:
            games = [g for g in games
                     if g.get('release_date') and start_date <= g['release_date'] <= end_date]

        return games

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def add(self, data: Dict) -> Dict:
        """Create a game.  ``game_id`` and ``title`` are required.

        Returns:
            The stored game dict, with a zero rating aggregate.
        """
        game_id = str(data.get('game_id') or '').strip()
        title = str(data.get('title') or '').strip()
        if not game_id or not title:
            raise ValidationError('game_id and title are required')

        game = {
            'game_id': game_id,
            'title': title,
            'description': data.get('description') or '',
            'release_date': data.get('release_date') or '',
            'platform': data.get('platform') or '',
            'genre': data.get('genre') or '',
            'image': data.get('image') or '',
            'upcoming': _as_flag(data.get('upcoming')),
            'released': _as_flag(data.get('released')),
            'average_rating': 0,
            'total_ratings': 0,
        }
        if not self._games.create(game):
            raise ValidationError(f'Game {game_id} already exists')
        logger.info("Added game %s (%s)", game_id, title)
        return game

    def update(self, game_id: str, data: Dict) -> Dict:
        """Apply the editable metadata fields present in *data*."""
        if not self._games.exists(game_id):
            raise NotFoundError('Game not found')

        changes = {}
        for field in EDITABLE_FIELDS:
            if field in data:
                value = data[field]
                changes[field] = _as_flag(value) if field in _FLAG_FIELDS else value
        if 'title' in changes and not str(changes['title'] or '').strip():
            raise ValidationError('title cannot be empty')

        if changes:
            self._games.apply_partial_update(game_id, changes)
        return self._games.get(game_id)

    def delete(self, game_id: str) -> Dict:
        """Delete a game with its reviews and favourites.

        Returns:
            ``{'game_id', 'reviews_deleted', 'favorites_deleted'}``.
        """
        if not self._games.exists(game_id):
            raise NotFoundError('Game not found')
        reviews_deleted = self._reviews.delete_by_game(game_id)
        favorites_deleted = self._favorites.delete_by_game(game_id)
        self._games.delete(game_id)
        if self._aggregator is not None:
            self._aggregator.forget(game_id)
        logger.info("Deleted game %s with %d reviews and %d favorites",
                    game_id, reviews_deleted, favorites_deleted)
        return {
            'game_id': str(game_id),
            'reviews_deleted': reviews_deleted,
            'favorites_deleted': favorites_deleted,
        }
