"""
GameDB application package.

Layered architecture:

  gamedb/repositories/  pure I/O: review, game and favorites stores, each
                        available JSON-file backed and SQLAlchemy backed.
  gamedb/services/      business logic: validation, ownership rules and
                        the rating aggregate kept on every game.

``GameCatalog`` (in ``gamedb/catalog.py``) is the integration point: it
creates repository and service instances from the loaded configuration and
exposes them as public attributes (e.g. ``catalog.review_service``).  Route
handlers in ``gamedb_server.py`` call these services directly and only
translate requests and errors.
"""
