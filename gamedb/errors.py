"""Exception types shared by the repositories, services and HTTP layer."""


class GameDBError(Exception):
    """Base class for every error raised by the gamedb package."""


class ValidationError(GameDBError):
    """Input has the wrong shape (missing text and rating, bad rating...)."""


class NotFoundError(GameDBError):
    """A referenced game or review does not exist."""


class AuthorizationError(GameDBError):
    """The requesting user may not perform the operation."""


class StoreError(GameDBError):
    """The underlying persistence layer failed."""
