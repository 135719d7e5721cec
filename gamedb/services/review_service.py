"""Business logic for user reviews and their effect on game ratings."""
import datetime
import logging
from typing import Dict, List, Optional

from ..errors import AuthorizationError, NotFoundError, StoreError, ValidationError
from .rating_service import MAX_RATING, MIN_RATING, RatingAggregator

logger = logging.getLogger('gamedb.services.reviews')


def _clean_text(text) -> Optional[str]:
    if text is None:
        return None
    text = str(text).strip()
    return text or None


def _clean_rating(rating) -> Optional[int]:
    """Coerce *rating* to an int in range, or raise :class:`ValidationError`."""
    if isinstance(rating, str):
        rating = rating.strip()
    if rating is None or rating == '':
        return None
    if isinstance(rating, bool):
        raise ValidationError('Rating must be an integer')
    if isinstance(rating, float):
        if not rating.is_integer():
            raise ValidationError('Rating must be an integer')
        rating = int(rating)
    elif isinstance(rating, str):
        try:
            rating = int(rating)
        except ValueError:
            raise ValidationError('Rating must be an integer')
    elif not isinstance(rating, int):
        raise ValidationError('Rating must be an integer')
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f'Rating must be between {MIN_RATING} and {MAX_RATING}')
    return rating


def _validate(text, rating):
    text = _clean_text(text)
    rating = _clean_rating(rating)
    if text is None and rating is None:
        raise ValidationError('Must provide either text, rating, or both')
    return text, rating


class ReviewService:
    """Validates and applies review operations, delegating persistence to a
    review store and keeping game ratings current through a
    :class:`~gamedb.services.rating_service.RatingAggregator`.

    Rules
    -----
    * A review carries ``text``, a ``rating`` (integer **1–5**), or both.
    * Only the author may edit a review; the author or a moderator may
      delete it.
    * The review change is committed before the game's rating is
      recomputed, and the recompute only runs when a rating was added,
      changed or removed.
    * A failed recompute never undoes the review change.  With the ``log``
      policy it is logged and swallowed; with ``raise`` the
      :class:`~gamedb.errors.StoreError` reaches the caller.
    """

    def __init__(self, review_store, game_store, aggregator: RatingAggregator,
                 recompute_failure_policy: str = 'log') -> None:
        self._reviews = review_store
        self._games = game_store
        self._aggregator = aggregator
        self._failure_policy = recompute_failure_policy

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _recompute(self, game_id: str) -> None:
        try:
            self._aggregator.recompute(game_id)
        except StoreError:
            if self._failure_policy == 'raise':
                raise
            logger.exception("Rating recompute failed for game %s; aggregate left stale", game_id)

    def _require(self, review_id: str) -> Dict:
        review = self._reviews.get(review_id)
        if review is None:
            raise NotFoundError('Review not found')
        return review

    def _remove(self, review: Dict) -> Dict:
        if not self._reviews.delete(review['review_id']):
            raise NotFoundError('Review not found')
        if review.get('rating') is not None:
            self._recompute(review['game_id'])
        return {
            'review_id': review['review_id'],
            'game_id': review['game_id'],
            'user_id': review['user_id'],
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, user_id: str, game_id: str, text: Optional[str] = None,
               rating=None) -> str:
        """Post a new review.

        Returns:
            The ``review_id`` assigned by the store.

        Raises:
            ValidationError: Neither text nor rating, or a bad rating.
            NotFoundError: *game_id* is not in the catalogue.
        """
        text, rating = _validate(text, rating)
        game_id = str(game_id)
        if not self._games.exists(game_id):
            raise NotFoundError('Game not found')

        review_id = self._reviews.create({
            'user_id': str(user_id),
            'game_id': game_id,
            'text': text,
            'rating': rating,
            'date_time_posted': datetime.datetime.now(datetime.timezone.utc).isoformat(),
        })
        logger.info("User %s reviewed game %s (review %s)", user_id, game_id, review_id)

        if rating is not None:
            self._recompute(game_id)
        return review_id

    def update(self, review_id: str, user_id: str, text: Optional[str] = None,
               rating=None) -> None:
        """Replace the text and rating of the caller's own review.

        Raises:
            NotFoundError: The review does not exist.
            AuthorizationError: *user_id* is not the author.
            ValidationError: As for :meth:`create`.
        """
        review = self._require(review_id)
        if review['user_id'] != str(user_id):
            raise AuthorizationError('User can only edit their own reviews')
        text, rating = _validate(text, rating)

        if not self._reviews.update(review_id, {'text': text, 'rating': rating}):
            raise NotFoundError('Review not found')

        if rating != review.get('rating'):
            self._recompute(review['game_id'])

    def delete(self, review_id: str, user_id: str, is_admin: bool = False) -> Dict:
        """Delete a review as its author, or as a moderator when *is_admin*.

        Returns:
            ``{'review_id', 'game_id', 'user_id'}`` of the deleted review.
        """
        review = self._require(review_id)
        if not is_admin and review['user_id'] != str(user_id):
            raise AuthorizationError('User can only delete their own reviews')
        return self._remove(review)

    def moderator_delete(self, review_id: str) -> Dict:
        """Delete any review, regardless of author (moderation entry point)."""
        review = self._require(review_id)
        deleted = self._remove(review)
        logger.info("Moderator removed review %s by %s on game %s",
                    review_id, deleted['user_id'], deleted['game_id'])
        return deleted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, review_id: str) -> Optional[Dict]:
        """Return the review dict for *review_id*, or ``None``."""
        return self._reviews.get(review_id)

    def list_all(self) -> List[Dict]:
        return self._reviews.list_all()

    def list_by_game(self, game_id: str) -> List[Dict]:
        return self._reviews.list_by_game(game_id)

    def list_by_user(self, user_id: str) -> List[Dict]:
        return self._reviews.list_by_user(user_id)

    def list_for_moderation(self) -> List[Dict]:
        """Return every review with a short summary of its game attached.

        ``game`` is ``None`` when the review points at a game that can no
        longer be loaded.
        """
        games: Dict[str, Optional[Dict]] = {}
        enriched = []
        for review in self._reviews.list_all():
            game_id = review['game_id']
            if game_id not in games:
                try:
                    games[game_id] = self._games.get(game_id)
                except StoreError as e:
                    logger.warning("Could not fetch game data for %s: %s", game_id, e)
                    games[game_id] = None
            game = games[game_id]
            enriched.append(dict(review, game={
                'game_id': game['game_id'],
                'title': game.get('title', ''),
                'image': game.get('image') or None,
            } if game else None))
        return enriched
