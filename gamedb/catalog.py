"""Wiring of stores and services from a loaded configuration."""
import logging
import os
from typing import Any, Dict, Optional

import database
from .config import DEFAULT_CONFIG
from .repositories import (
    DBFavoritesRepository, DBGameRepository, DBReviewRepository,
    FavoritesRepository, GameRepository, ReviewRepository,
)
from .services import FavoritesService, GameService, RatingAggregator, ReviewService


class GameCatalog:
    """Main application object.

    Builds the review, game and favourites stores for the configured
    ``storage`` backend and exposes the services as public attributes:
    ``rating_aggregator``, ``review_service``, ``game_service`` and
    ``favorites_service``.
    """

    REVIEWS_FILE = '.gamedb_reviews.json'
    GAMES_FILE = '.gamedb_games.json'
    FAVORITES_FILE = '.gamedb_favorites.json'

    def __init__(self, config: Optional[Dict[str, Any]] = None, session_factory=None):
        self.config = dict(DEFAULT_CONFIG)
        self.config.update(config or {})
        self._log = logging.getLogger('gamedb.catalog')

        if self.config['storage'] == 'database':
            if session_factory is None:
                engine = database.make_engine(self.config['database_url'])
                database.init_db(engine)
                session_factory = database.create_session_factory(engine)
            self.review_store = DBReviewRepository(session_factory)
            self.game_store = DBGameRepository(session_factory)
            self.favorites_store = DBFavoritesRepository(session_factory)
        else:
            data_dir = self.config['data_dir']
            os.makedirs(data_dir, exist_ok=True)
            self.review_store = ReviewRepository(os.path.join(data_dir, self.REVIEWS_FILE))
            self.game_store = GameRepository(os.path.join(data_dir, self.GAMES_FILE))
            self.favorites_store = FavoritesRepository(os.path.join(data_dir, self.FAVORITES_FILE))
        self._log.info("Using %s storage", self.config['storage'])

        self.rating_aggregator = RatingAggregator(
            self.review_store, self.game_store,
            serialize=bool(self.config['serialize_recomputes']),
        )
        self.review_service = ReviewService(
            self.review_store, self.game_store, self.rating_aggregator,
            recompute_failure_policy=self.config['recompute_failure_policy'],
        )
        self.game_service = GameService(self.game_store, self.review_store, self.favorites_store,
                                        self.rating_aggregator)
        self.favorites_service = FavoritesService(self.favorites_store, self.game_store)
