"""Repository base classes: JSON-file backed and SQLAlchemy backed."""
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreError


class BaseRepository:
    """Provides JSON-backed persistence for a single data file.

    Sub-classes call :meth:`_load` to read initial data from disk and
    :meth:`_save` to atomically persist data back.  All repositories keep an
    in-memory copy in ``self.data`` and guard it with ``self._lock``;
    mutating methods change that copy and persist it before returning, so a
    successful call means the change is on disk.

    The atomic write uses a write-then-rename strategy so the file is never
    left in a partially-written state.
    """

    def __init__(self, file_path: str) -> None:
        self._path = file_path
        self._lock = threading.RLock()
        self._log = logging.getLogger(f'gamedb.repository.{type(self).__name__}')

    def _load(self, default: Any) -> Any:
        """Load JSON from *self._path*, returning *default* on missing/corrupt file."""
        if os.path.exists(self._path):
            try:
                with open(self._path, 'r') as fh:
                    return json.load(fh)
            except (json.JSONDecodeError, IOError) as exc:
                self._log.warning("Could not load %s: %s", self._path, exc)
        return default

    def _save(self, data: Any) -> None:
        """Atomically write *data* as JSON to *self._path*.

        Raises:
            StoreError: If the temp file cannot be written or renamed.
        """
        dir_name = os.path.dirname(os.path.abspath(self._path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
        except OSError as exc:
            self._log.error("Could not create temp file for %s: %s", self._path, exc)
            raise StoreError(f"Could not write {self._path}: {exc}") from exc
        try:
            with os.fdopen(fd, 'w') as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            self._log.error("Could not write %s: %s", self._path, exc)
            raise StoreError(f"Could not write {self._path}: {exc}") from exc


class DBRepository:
    """Base for the SQLAlchemy-backed repositories.

    Each public call opens its own session from *session_factory*, commits on
    success and closes it, so a returning mutation is durably committed.  Any
    ``SQLAlchemyError`` is rolled back, logged and re-raised as
    :class:`~gamedb.errors.StoreError`.
    """

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory
        self._log = logging.getLogger(f'gamedb.repository.{type(self).__name__}')

    @contextmanager
    def _session(self, action: str):
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            self._log.error("Database error while %s: %s", action, exc)
            raise StoreError(f"Database error while {action}") from exc
        finally:
            db.close()
