#!/usr/bin/env python3
"""
Unit tests for the JSON-file and SQLAlchemy repositories.

Run with:
    python -m pytest tests/test_repositories.py
"""
import json
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import OperationalError

import database
from gamedb.errors import StoreError
from gamedb.repositories import (
    DBFavoritesRepository, DBGameRepository, DBReviewRepository,
    FavoritesRepository, GameRepository, ReviewRepository,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _review(game_id='g1', user_id='u1', rating=4, text=None,
            posted='2024-03-01T10:00:00+00:00'):
    return {'user_id': user_id, 'game_id': game_id, 'text': text,
            'rating': rating, 'date_time_posted': posted}


def _make_session_factory():
    engine = database.make_engine('sqlite://')
    database.init_db(engine)
    return database.create_session_factory(engine)


class TmpDirMixin(unittest.TestCase):
    """Creates a fresh temp directory for each test."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.tmp, name)


# ===========================================================================
# JSON repositories
# ===========================================================================

class TestReviewRepository(TmpDirMixin):

    def _make(self):
        return ReviewRepository(self._path('reviews.json'))

    def test_starts_empty(self):
        self.assertEqual(self._make().list_all(), [])

    def test_create_and_get(self):
        repo = self._make()
        review_id = repo.create(_review(rating=5))
        review = repo.get(review_id)
        self.assertEqual(review['review_id'], review_id)
        self.assertEqual(review['rating'], 5)
        self.assertEqual(review['sequence'], 1)

    def test_get_returns_copy(self):
        repo = self._make()
        review_id = repo.create(_review())
        repo.get(review_id)['rating'] = 1
        self.assertEqual(repo.get(review_id)['rating'], 4)

    def test_update_merges(self):
        repo = self._make()
        review_id = repo.create(_review(text='a'))
        self.assertTrue(repo.update(review_id, {'rating': None}))
        review = repo.get(review_id)
        self.assertIsNone(review['rating'])
        self.assertEqual(review['text'], 'a')

    def test_update_missing(self):
        self.assertFalse(self._make().update('nope', {'rating': 1}))

    def test_delete(self):
        repo = self._make()
        review_id = repo.create(_review())
        self.assertTrue(repo.delete(review_id))
        self.assertIsNone(repo.get(review_id))
        self.assertFalse(repo.delete(review_id))

    def test_newest_first_with_sequence_tiebreak(self):
        repo = self._make()
        old = repo.create(_review(posted='2024-01-01T00:00:00+00:00'))
        tie_a = repo.create(_review(posted='2024-02-01T00:00:00+00:00'))
        tie_b = repo.create(_review(posted='2024-02-01T00:00:00+00:00'))
        ids = [r['review_id'] for r in repo.list_by_game('g1')]
        self.assertEqual(ids, [tie_b, tie_a, old])

    def test_order_ignores_clock_going_backwards(self):
        repo = self._make()
        first = repo.create(_review(posted='2024-01-02T00:00:00+00:00'))
        second = repo.create(_review(posted='2024-01-01T23:59:59+00:00'))
        ids = [r['review_id'] for r in repo.list_by_game('g1')]
        self.assertEqual(ids, [second, first])

    def test_list_by_user_and_game(self):
        repo = self._make()
        repo.create(_review(user_id='u1', game_id='g1'))
        repo.create(_review(user_id='u2', game_id='g1'))
        repo.create(_review(user_id='u1', game_id='g2'))
        self.assertEqual(len(repo.list_by_user('u1')), 2)
        self.assertEqual(len(repo.list_by_game('g1')), 2)

    def test_delete_by_game(self):
        repo = self._make()
        repo.create(_review(game_id='g1'))
        repo.create(_review(game_id='g1'))
        repo.create(_review(game_id='g2'))
        self.assertEqual(repo.delete_by_game('g1'), 2)
        self.assertEqual(len(repo.list_all()), 1)

    def test_persisted_across_instances(self):
        path = self._path('reviews.json')
        r1 = ReviewRepository(path)
        review_id = r1.create(_review())
        r2 = ReviewRepository(path)
        self.assertIsNotNone(r2.get(review_id))
        self.assertEqual(r2.get(r2.create(_review()))['sequence'], 2)

    def test_corrupt_file_returns_empty(self):
        path = self._path('reviews.json')
        with open(path, 'w') as f:
            f.write('NOT JSON')
        self.assertEqual(ReviewRepository(path).list_all(), [])

    def test_failed_save_rolls_back_memory(self):
        repo = self._make()
        with patch.object(repo, '_save', side_effect=StoreError('disk full')):
            with self.assertRaises(StoreError):
                repo.create(_review())
        self.assertEqual(repo.list_all(), [])

    def test_unwritable_directory_raises_store_error(self):
        repo = ReviewRepository(os.path.join(self.tmp, 'missing-dir', 'reviews.json'))
        with self.assertRaises(StoreError):
            repo.create(_review())


class TestGameRepository(TmpDirMixin):

    def _make(self):
        return GameRepository(self._path('games.json'))

    def test_create_exists_get(self):
        repo = self._make()
        self.assertTrue(repo.create({'game_id': 'g1', 'title': 'Hades'}))
        self.assertTrue(repo.exists('g1'))
        self.assertEqual(repo.get('g1')['title'], 'Hades')
        self.assertFalse(repo.exists('g2'))
        self.assertIsNone(repo.get('g2'))

    def test_create_duplicate(self):
        repo = self._make()
        repo.create({'game_id': 'g1', 'title': 'Hades'})
        self.assertFalse(repo.create({'game_id': 'g1', 'title': 'Other'}))
        self.assertEqual(repo.get('g1')['title'], 'Hades')

    def test_partial_update_touches_only_given_fields(self):
        repo = self._make()
        repo.create({'game_id': 'g1', 'title': 'Hades', 'genre': 'roguelike'})
        self.assertTrue(repo.apply_partial_update('g1', {'average_rating': 4.5, 'total_ratings': 2}))
        game = repo.get('g1')
        self.assertEqual(game['genre'], 'roguelike')
        self.assertEqual(game['average_rating'], 4.5)

    def test_partial_update_missing(self):
        self.assertFalse(self._make().apply_partial_update('g1', {'total_ratings': 1}))

    def test_delete(self):
        repo = self._make()
        repo.create({'game_id': 'g1', 'title': 'Hades'})
        self.assertTrue(repo.delete('g1'))
        self.assertFalse(repo.delete('g1'))

    def test_list_all_ordered_by_title(self):
        repo = self._make()
        repo.create({'game_id': 'g1', 'title': 'Hades'})
        repo.create({'game_id': 'g2', 'title': 'Celeste'})
        self.assertEqual([g['title'] for g in repo.list_all()], ['Celeste', 'Hades'])

    def test_persisted(self):
        path = self._path('games.json')
        GameRepository(path).create({'game_id': 'g1', 'title': 'Hades'})
        with open(path) as f:
            self.assertIn('g1', json.load(f))


class TestFavoritesRepository(TmpDirMixin):

    def _make(self):
        return FavoritesRepository(self._path('favs.json'))

    def test_add_and_list(self):
        repo = self._make()
        self.assertTrue(repo.add('u1', 'g1'))
        self.assertFalse(repo.add('u1', 'g1'))
        self.assertEqual(repo.list_for_user('u1'), ['g1'])
        self.assertEqual(repo.list_for_user('u2'), [])

    def test_remove(self):
        repo = self._make()
        repo.add('u1', 'g1')
        self.assertTrue(repo.remove('u1', 'g1'))
        self.assertFalse(repo.remove('u1', 'g1'))

    def test_delete_by_game(self):
        repo = self._make()
        repo.add('u1', 'g1')
        repo.add('u2', 'g1')
        repo.add('u2', 'g2')
        self.assertEqual(repo.delete_by_game('g1'), 2)
        self.assertEqual(repo.list_for_user('u2'), ['g2'])
        self.assertEqual(repo.delete_by_game('g1'), 0)


# ===========================================================================
# SQLAlchemy repositories
# ===========================================================================

class DBTestCase(unittest.TestCase):

    def setUp(self):
        self.session_factory = _make_session_factory()
        self.games = DBGameRepository(self.session_factory)
        self.reviews = DBReviewRepository(self.session_factory)
        self.favorites = DBFavoritesRepository(self.session_factory)
        self.games.create({'game_id': 'g1', 'title': 'Hades'})


class TestDBGameRepository(DBTestCase):

    def test_defaults(self):
        game = self.games.get('g1')
        self.assertEqual(game['average_rating'], 0.0)
        self.assertEqual(game['total_ratings'], 0)
        self.assertFalse(game['upcoming'])

    def test_exists(self):
        self.assertTrue(self.games.exists('g1'))
        self.assertFalse(self.games.exists('g2'))

    def test_duplicate(self):
        self.assertFalse(self.games.create({'game_id': 'g1', 'title': 'Again'}))

    def test_partial_update(self):
        self.games.apply_partial_update('g1', {'average_rating': 3.5, 'total_ratings': 2})
        game = self.games.get('g1')
        self.assertEqual(game['average_rating'], 3.5)
        self.assertEqual(game['title'], 'Hades')
        self.assertFalse(self.games.apply_partial_update('missing', {'total_ratings': 1}))

    def test_list_and_delete(self):
        self.games.create({'game_id': 'g2', 'title': 'Celeste'})
        self.assertEqual([g['title'] for g in self.games.list_all()], ['Celeste', 'Hades'])
        self.assertTrue(self.games.delete('g2'))
        self.assertFalse(self.games.delete('g2'))


class TestDBReviewRepository(DBTestCase):

    def test_create_and_get(self):
        review_id = self.reviews.create(_review(rating=5, text='great'))
        review = self.reviews.get(review_id)
        self.assertEqual(review['rating'], 5)
        self.assertEqual(review['text'], 'great')
        self.assertEqual(review['sequence'], int(review_id))

    def test_get_unknown_ids(self):
        self.assertIsNone(self.reviews.get('999'))
        self.assertIsNone(self.reviews.get('not-a-number'))

    def test_update_and_delete(self):
        review_id = self.reviews.create(_review())
        self.assertTrue(self.reviews.update(review_id, {'rating': None, 'text': 'words'}))
        self.assertIsNone(self.reviews.get(review_id)['rating'])
        self.assertTrue(self.reviews.delete(review_id))
        self.assertFalse(self.reviews.delete(review_id))
        self.assertFalse(self.reviews.update(review_id, {'rating': 1}))

    def test_newest_first(self):
        old = self.reviews.create(_review(posted='2024-01-01T00:00:00+00:00'))
        tie_a = self.reviews.create(_review(posted='2024-02-01T00:00:00+00:00'))
        tie_b = self.reviews.create(_review(posted='2024-02-01T00:00:00+00:00'))
        ids = [r['review_id'] for r in self.reviews.list_by_game('g1')]
        self.assertEqual(ids, [tie_b, tie_a, old])

    def test_order_ignores_clock_going_backwards(self):
        first = self.reviews.create(_review(posted='2024-01-02T00:00:00+00:00'))
        second = self.reviews.create(_review(posted='2024-01-01T23:59:59+00:00'))
        ids = [r['review_id'] for r in self.reviews.list_all()]
        self.assertEqual(ids, [second, first])

    def test_list_by_user_and_delete_by_game(self):
        self.games.create({'game_id': 'g2', 'title': 'Celeste'})
        self.reviews.create(_review(user_id='u1'))
        self.reviews.create(_review(user_id='u2'))
        self.reviews.create(_review(user_id='u1', game_id='g2'))
        self.assertEqual(len(self.reviews.list_by_user('u1')), 2)
        self.assertEqual(self.reviews.delete_by_game('g1'), 2)
        self.assertEqual(len(self.reviews.list_all()), 1)

    def test_database_error_becomes_store_error(self):
        session = MagicMock()
        session.get.side_effect = OperationalError('SELECT', {}, Exception('gone'))
        repo = DBReviewRepository(lambda: session)
        with self.assertRaises(StoreError):
            repo.get('1')
        session.rollback.assert_called_once()
        session.close.assert_called_once()


class TestDBFavoritesRepository(DBTestCase):

    def test_add_list_remove(self):
        self.assertTrue(self.favorites.add('u1', 'g1'))
        self.assertFalse(self.favorites.add('u1', 'g1'))
        self.assertEqual(self.favorites.list_for_user('u1'), ['g1'])
        self.assertTrue(self.favorites.remove('u1', 'g1'))
        self.assertFalse(self.favorites.remove('u1', 'g1'))

    def test_delete_by_game(self):
        self.favorites.add('u1', 'g1')
        self.favorites.add('u2', 'g1')
        self.assertEqual(self.favorites.delete_by_game('g1'), 2)
        self.assertEqual(self.favorites.list_for_user('u1'), [])


if __name__ == '__main__':
    unittest.main()
