"""Services package: expose all concrete services from one import."""
from .rating_service import RatingAggregator
from .review_service import ReviewService
from .game_service import GameService
from .favorites_service import FavoritesService

__all__ = [
    'RatingAggregator',
    'ReviewService',
    'GameService',
    'FavoritesService',
]
