"""Repository package: expose all concrete repositories from one import."""
from .review_repository import ReviewRepository
from .game_repository import GameRepository
from .favorites_repository import FavoritesRepository
from .db_review_repository import DBReviewRepository
from .db_game_repository import DBGameRepository
from .db_favorites_repository import DBFavoritesRepository

__all__ = [
    'ReviewRepository',
    'GameRepository',
    'FavoritesRepository',
    'DBReviewRepository',
    'DBGameRepository',
    'DBFavoritesRepository',
]
