#!/usr/bin/env python3
"""
GameDB server - JSON HTTP API for the games catalogue and its reviews.

Identity is supplied by an upstream authentication proxy through the
``X-User-Id`` and ``X-User-Role`` headers; ``X-User-Role: admin`` marks a
moderator.
"""

import argparse
import logging
import os
import sys
from functools import wraps
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request

from gamedb.catalog import GameCatalog
from gamedb.config import load_config, setup_logging
from gamedb.errors import AuthorizationError, NotFoundError, StoreError, ValidationError

server_logger = logging.getLogger('gamedb.server')


def _attach_file_handler(level: str) -> None:
    try:
        os.makedirs('logs', exist_ok=True)
        fh = logging.FileHandler('logs/gamedb_server.log')
        fh.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s'))
        fh.setLevel(getattr(logging, level.upper(), logging.INFO))
        server_logger.addHandler(fh)
    except OSError:
        server_logger.warning('Could not create log file handler')


# ---------------------------------------------------------------------------
# Identity decorators
# ---------------------------------------------------------------------------

def require_login(f):
    """Decorator to require an authenticated user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = (request.headers.get('X-User-Id') or '').strip()
        if not user_id:
            return jsonify({'error': 'Not logged in'}), 401
        g.user_id = user_id
        g.is_admin = (request.headers.get('X-User-Role') or '').strip().lower() == 'admin'
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """Decorator to require moderator privileges"""
    @wraps(f)
    @require_login
    def decorated_function(*args, **kwargs):
        if not g.is_admin:
            return jsonify({'error': 'Admin privileges required'}), 403
        return f(*args, **kwargs)
    return decorated_function


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(config: Optional[dict] = None, catalog: Optional[GameCatalog] = None) -> Flask:
    """Build the Flask application around *catalog* (or one built from *config*)."""
    app = Flask(__name__)
    if catalog is None:
        catalog = GameCatalog(config if config is not None else load_config())
    app.config['CATALOG'] = catalog

    games = catalog.game_service
    reviews = catalog.review_service
    favorites = catalog.favorites_service

    # -----------------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------------

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        return jsonify({'error': str(e)}), 400

    @app.errorhandler(AuthorizationError)
    def _authorization_error(e):
        return jsonify({'error': str(e)}), 403

    @app.errorhandler(NotFoundError)
    def _not_found_error(e):
        return jsonify({'error': str(e)}), 404

    @app.errorhandler(StoreError)
    def _store_error(e):
        server_logger.error('Storage failure on %s %s: %s', request.method, request.path, e)
        return jsonify({'error': 'Storage failure, please retry'}), 500

    # -----------------------------------------------------------------------
    # Games endpoints
    # -----------------------------------------------------------------------

    @app.route('/api/games', methods=['GET'])
    def api_list_games():
        """Return every game."""
        return jsonify(games.list_all())

    @app.route('/api/games/search', methods=['GET'])
    def api_search_games():
        """Search games by title (``?title=``)."""
        return jsonify(games.search(request.args.get('title')))

    @app.route('/api/games/filter', methods=['GET'])
    def api_filter_games():
        """Filter games by platform, genre, status, minimum rating and release window."""
        args = request.args
        return jsonify(games.filter(
            platform=args.get('platform'),
            genre=args.get('genre'),
            status=args.get('status'),
            min_rating=args.get('min_rating'),
            start_date=args.get('start_date'),
            end_date=args.get('end_date'),
        ))

    @app.route('/api/games/<game_id>', methods=['GET'])
    def api_get_game(game_id: str):
        """Return a game together with its reviews, newest first."""
        return jsonify(games.get_with_reviews(game_id))

    @app.route('/api/games', methods=['POST'])
    @require_admin
    def api_add_game():
        """Add a game.

        Body JSON: {"game_id": "...", "title": "...", "description": "...",
        "release_date": "YYYY-MM-DD", "platform": "...", "genre": "...",
        "image": "<reference>", "upcoming": bool, "released": bool}
        """
        game = games.add(_body())
        return jsonify({'message': 'Game added successfully', 'game': game}), 201

    @app.route('/api/games/<game_id>', methods=['PUT'])
    @require_admin
    def api_update_game(game_id: str):
        """Update game metadata; rating fields are ignored."""
        game = games.update(game_id, _body())
        return jsonify({'message': 'Game updated successfully', 'game': game})

    @app.route('/api/games/<game_id>', methods=['DELETE'])
    @require_admin
    def api_delete_game(game_id: str):
        """Delete a game with its reviews and favourites."""
        result = games.delete(game_id)
        return jsonify(dict(result, message='Game and related data deleted successfully'))

    @app.route('/api/games/<game_id>/recompute', methods=['POST'])
    @require_admin
    def api_recompute_rating(game_id: str):
        """Force a rating recompute for one game."""
        if not catalog.game_store.exists(game_id):
            raise NotFoundError('Game not found')
        return jsonify(catalog.rating_aggregator.recompute(game_id))

    # -----------------------------------------------------------------------
    # Reviews endpoints
    # -----------------------------------------------------------------------

    @app.route('/api/reviews', methods=['GET'])
    def api_list_reviews():
        """Return all reviews, newest first."""
        return jsonify(reviews.list_all())

    @app.route('/api/reviews/game/<game_id>', methods=['GET'])
    def api_reviews_by_game(game_id: str):
        return jsonify(reviews.list_by_game(game_id))

    @app.route('/api/reviews/user/<user_id>', methods=['GET'])
    def api_reviews_by_user(user_id: str):
        return jsonify(reviews.list_by_user(user_id))

    @app.route('/api/reviews', methods=['POST'])
    @require_login
    def api_add_review():
        """Post a review for the logged-in user.

        Body JSON: {"game_id": "...", "text": "optional", "rating": 1-5 optional}
        """
        data = _body()
        review_id = reviews.create(g.user_id, data.get('game_id') or '',
                                   data.get('text'), data.get('rating'))
        return jsonify({'message': 'Review added successfully', 'review_id': review_id}), 201

    @app.route('/api/reviews/<review_id>', methods=['PUT'])
    @require_login
    def api_update_review(review_id: str):
        """Replace the text and rating of the caller's own review."""
        data = _body()
        reviews.update(review_id, g.user_id, data.get('text'), data.get('rating'))
        return jsonify({'message': 'Review updated successfully'})

    @app.route('/api/reviews/<review_id>', methods=['DELETE'])
    @require_login
    def api_delete_review(review_id: str):
        """Delete the caller's review (moderators may delete any)."""
        reviews.delete(review_id, g.user_id, is_admin=g.is_admin)
        return jsonify({'message': 'Review deleted successfully'})

    @app.route('/api/reviews/admin/all', methods=['GET'])
    @require_admin
    def api_moderation_queue():
        """Return every review with its game summary for moderation."""
        return jsonify(reviews.list_for_moderation())

    @app.route('/api/reviews/admin/<review_id>', methods=['DELETE'])
    @require_admin
    def api_moderator_delete_review(review_id: str):
        deleted = reviews.moderator_delete(review_id)
        return jsonify({'message': 'Review deleted successfully by admin',
                        'deleted_review': deleted})

    # -----------------------------------------------------------------------
    # Favourites endpoints
    # -----------------------------------------------------------------------

    @app.route('/api/favorites', methods=['GET'])
    @require_login
    def api_list_favorites():
        return jsonify(favorites.list_for_user(g.user_id))

    @app.route('/api/favorites/<game_id>', methods=['POST'])
    @require_login
    def api_add_favorite(game_id: str):
        added = favorites.add(g.user_id, game_id)
        return jsonify({'success': True, 'added': added})

    @app.route('/api/favorites/<game_id>', methods=['DELETE'])
    @require_login
    def api_remove_favorite(game_id: str):
        if not favorites.remove(g.user_id, game_id):
            return jsonify({'error': 'Game is not in favorites'}), 404
        return jsonify({'success': True})

    return app


def main(argv=None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description='GameDB - games catalogue and reviews API')
    parser.add_argument('--config', '-c', default='config.json',
                        help='Path to config file (default: config.json)')
    parser.add_argument('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=5000, help='Port to bind (default: 5000)')
    parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')
    parser.add_argument('--recompute-all', action='store_true',
                        help='Recompute every game rating and exit')
    args = parser.parse_args(argv)

    load_dotenv()
    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config['log_level'])
    _attach_file_handler(config['log_level'])
    catalog = GameCatalog(config)

    if args.recompute_all:
        try:
            count = catalog.rating_aggregator.recompute_all()
        except StoreError as e:
            server_logger.error('Recompute failed: %s', e)
            return 1
        print(f"Recomputed ratings for {count} games")
        return 0

    app = create_app(catalog=catalog)
    server_logger.info('Starting GameDB server on %s:%s', args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)
    return 0


if __name__ == '__main__':
    sys.exit(main())
