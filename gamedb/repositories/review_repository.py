"""Repository for user reviews ({review_id: review_dict})."""
import copy
import uuid
from typing import Dict, List, Optional

from .base import BaseRepository
from ..errors import StoreError


def _newest_first(reviews: List[Dict]) -> List[Dict]:
    return sorted(reviews, key=lambda r: r.get('sequence') or 0, reverse=True)


class ReviewRepository(BaseRepository):
    """Persists reviews to a JSON file.

    Schema::

        {
            "next_sequence": <int>,
            "reviews": {
                "<review_id>": {
                    "review_id":        <str>,
                    "user_id":          <str>,
                    "game_id":          <str>,
                    "text":             <str | null>,
                    "rating":           <int 1-5 | null>,
                    "date_time_posted": <ISO-8601 str>,
                    "sequence":         <int>
                }
            }
        }

    ``sequence`` is assigned on create and only ever grows.  Listings are
    ordered on it alone, newest first, so a clock that steps backwards does
    not reorder them.
    """

    def __init__(self, file_path: str = '.gamedb_reviews.json') -> None:
        super().__init__(file_path)
        raw = self._load({})
        if not isinstance(raw, dict):
            raw = {}
        self.data: Dict[str, Dict] = raw.get('reviews') or {}
        self._next_sequence: int = int(raw.get('next_sequence') or len(self.data) + 1)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, review: Dict) -> str:
        """Store a new review and return its generated ``review_id``."""
        with self._lock:
            review_id = uuid.uuid4().hex
            record = dict(review)
            record['review_id'] = review_id
            record['sequence'] = self._next_sequence
            self.data[review_id] = record
            self._next_sequence += 1
            try:
                self.save()
            except StoreError:
                del self.data[review_id]
                self._next_sequence -= 1
                raise
            return review_id

    def get(self, review_id: str) -> Optional[Dict]:
        """Return a copy of the review for *review_id*, or ``None``."""
        with self._lock:
            review = self.data.get(str(review_id))
            return dict(review) if review is not None else None

    def update(self, review_id: str, partial: Dict) -> bool:
        """Merge *partial* into an existing review.  Returns ``False`` if absent."""
        key = str(review_id)
        with self._lock:
            if key not in self.data:
                return False
            previous = copy.deepcopy(self.data[key])
            protected = {'review_id', 'sequence'}
            self.data[key].update({k: v for k, v in partial.items() if k not in protected})
            try:
                self.save()
            except StoreError:
                self.data[key] = previous
                raise
            return True

    def delete(self, review_id: str) -> bool:
        """Remove the review.  Returns ``True`` if it existed."""
        key = str(review_id)
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

    def delete_by_game(self, game_id: str) -> int:
        """Remove every review of *game_id*.  Returns the number removed."""
        with self._lock:
            doomed = {k: v for k, v in self.data.items() if v.get('game_id') == str(game_id)}
            if not doomed:
                return 0
            for key in doomed:
                del self.data[key]
            try:
                self.save()
            except StoreError:
                self.data.update(doomed)
                raise
            return len(doomed)

    # ------------------------------------------------------------------
    # Queries (newest first)
    # ------------------------------------------------------------------

    def list_all(self) -> List[Dict]:
        with self._lock:
            return _newest_first([dict(r) for r in self.data.values()])

    def list_by_game(self, game_id: str) -> List[Dict]:
        with self._lock:
            return _newest_first([
                dict(r) for r in self.data.values() if r.get('game_id') == str(game_id)
            ])

    def list_by_user(self, user_id: str) -> List[Dict]:
        with self._lock:
            return _newest_first([
                dict(r) for r in self.data.values() if r.get('user_id') == str(user_id)
            ])

    def save(self) -> None:
        """Persist the current in-memory data to disk."""
        self._save({'next_sequence': self._next_sequence, 'reviews': self.data})
