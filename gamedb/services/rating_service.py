"""Rating aggregation: keeps each game's average rating in step with its reviews."""
import logging
import math
import threading
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

logger = logging.getLogger('gamedb.services.rating')

MIN_RATING = 1
MAX_RATING = 5

_ONE_PLACE = Decimal('0.1')


def is_valid_rating(value) -> bool:
    """Return ``True`` if *value* is a usable rating.

    Reviews written by older clients may hold ``None``, strings, booleans or
    numbers outside the scale; none of those count towards the average.
    """
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return MIN_RATING <= value <= MAX_RATING


def summarize(reviews: Iterable[Dict]) -> Dict:
    """Compute ``{'average_rating', 'total_ratings'}`` for *reviews*.

    The average is rounded half-up to one decimal place and is ``0`` when no
    review carries a valid rating.
    """
    total = Decimal(0)
    count = 0
    for review in reviews:
        rating = review.get('rating')
        if is_valid_rating(rating):
            total += Decimal(str(rating))
            count += 1

    if count == 0:
        return {'average_rating': 0, 'total_ratings': 0}
    average = (total / count).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)
    return {'average_rating': float(average), 'total_ratings': count}


class RatingAggregator:
    """Recomputes the cached ``average_rating`` / ``total_ratings`` of a game.

    A recompute is a full read-aggregate-write: every review of the game is
    read from the review store, the valid ratings are averaged, and only the
    two aggregate fields are written to the game store.  Store errors are not
    caught here; the caller decides what a failed recompute means.

    Concurrent recomputes for one game race (last write wins) unless
    *serialize* is set, in which case a per-game lock makes the sequence
    exclusive within this process.
    """

    def __init__(self, review_store, game_store, serialize: bool = False) -> None:
        self._reviews = review_store
        self._games = game_store
        self._serialize = serialize
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, game_id: str) -> Optional[threading.Lock]:
        if not self._serialize:
            return None
        with self._locks_guard:
            return self._locks.setdefault(game_id, threading.Lock())

    def forget(self, game_id: str) -> None:
        """Drop the recompute lock kept for a deleted game."""
        with self._locks_guard:
            self._locks.pop(str(game_id), None)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def recompute(self, game_id: str) -> Dict:
        """Refresh the rating aggregate of *game_id*.

        The game is assumed to exist; existence is the caller's concern.

        Returns:
            ``{'average_rating': float, 'total_ratings': int}`` as written.

        Raises:
            StoreError: If reading the reviews or writing the game fails.
        """
        game_id = str(game_id)
        lock = self._lock_for(game_id)
        if lock is None:
            return self._recompute(game_id)
        with lock:
            return self._recompute(game_id)

    def _recompute(self, game_id: str) -> Dict:
        result = summarize(self._reviews.list_by_game(game_id))
        self._games.apply_partial_update(game_id, result)
        logger.info("Updated rating for game %s: %s/%s (%d ratings)",
                    game_id, result['average_rating'], MAX_RATING, result['total_ratings'])
        return result

    def recompute_all(self) -> int:
        """Recompute every game in the game store.

        Useful for repairing aggregates left stale by a failed or raced
        recompute.

        Returns:
            Number of games processed.
        """
        games = self._games.list_all()
        for game in games:
            self.recompute(game['game_id'])
        logger.info("Recomputed ratings for %d games", len(games))
        return len(games)
