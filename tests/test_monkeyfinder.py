#!/usr/bin/env python3
"""
Unit tests for MonkeyFinder core wiring, configuration and the CLI.

Run with:
    python -m pytest tests/
  or
    python -m unittest discover tests/
"""
import io
import json
import logging
import os
import shutil
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import MagicMock, patch

# Make sure monkeyfinder can be imported regardless of where tests are run from.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import monkeyfinder
from finder.services import DEFAULT_MONKEYS_URL

# ---------------------------------------------------------------------------
# Constants used across tests
# ---------------------------------------------------------------------------
FEED = [
    {'name': 'Baboon', 'location': 'Africa & Asia', 'details': 'Old World monkey.',
     'image': 'https://example.com/baboon.jpg', 'population': 10000,
     'latitude': -8.783195, 'longitude': 34.508523},
    {'name': 'Capuchin', 'location': 'Central & South America', 'details': 'New World monkey.',
     'image': 'https://example.com/capuchin.jpg', 'population': 23000,
     'latitude': 12.769013, 'longitude': -85.602364},
]

_ENV_KEYS = ('MONKEYFINDER_URL', 'MONKEYFINDER_TIMEOUT', 'MONKEYFINDER_LOG_LEVEL')


def _ok_session(body=FEED):
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = body
    resp.raise_for_status.return_value = None
    session = MagicMock()
    session.get.return_value = resp
    return session


class TmpDirMixin(unittest.TestCase):
    """Creates a fresh temp directory and a clean MONKEYFINDER_* environment."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        env = patch.dict(os.environ)
        env.start()
        self.addCleanup(env.stop)
        for key in _ENV_KEYS:
            os.environ.pop(key, None)

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.tmp, name)

    def _write_config(self, data) -> str:
        path = self._path('config.json')
        with open(path, 'w') as f:
            json.dump(data, f)
        return path

    def make_finder(self, body=FEED) -> monkeyfinder.MonkeyFinder:
        """Create a MonkeyFinder whose HTTP session is mocked."""
        finder = monkeyfinder.MonkeyFinder(self._path('missing.json'))
        finder.monkey_service.session = _ok_session(body)
        return finder


# ===========================================================================
# Helper function tests
# ===========================================================================

class TestFormatStars(unittest.TestCase):

    def test_zero_is_unrated(self):
        self.assertEqual(monkeyfinder.format_stars(0), 'unrated')

    def test_partial(self):
        self.assertEqual(monkeyfinder.format_stars(3), '★★★☆☆')

    def test_full(self):
        self.assertEqual(monkeyfinder.format_stars(5), '★★★★★')

    def test_above_max_is_capped(self):
        self.assertEqual(monkeyfinder.format_stars(8), '★★★★★')


class TestParseCoordinates(unittest.TestCase):

    def test_valid(self):
        self.assertEqual(monkeyfinder.parse_coordinates('47.6,-122.3'), (47.6, -122.3))

    def test_whitespace(self):
        self.assertEqual(monkeyfinder.parse_coordinates(' 1.5 , 2 '), (1.5, 2.0))

    def test_missing_part(self):
        self.assertIsNone(monkeyfinder.parse_coordinates('47.6'))

    def test_non_numeric(self):
        self.assertIsNone(monkeyfinder.parse_coordinates('north,east'))

    def test_out_of_range(self):
        self.assertIsNone(monkeyfinder.parse_coordinates('91,0'))
        self.assertIsNone(monkeyfinder.parse_coordinates('0,181'))

    def test_empty(self):
        self.assertIsNone(monkeyfinder.parse_coordinates(''))
        self.assertIsNone(monkeyfinder.parse_coordinates(None))  # type: ignore[arg-type]


# ===========================================================================
# Configuration
# ===========================================================================

class TestLoadConfig(TmpDirMixin):

    def test_missing_file_uses_defaults(self):
        config = monkeyfinder.load_config(self._path('nope.json'))
        self.assertEqual(config['monkeys_url'], DEFAULT_MONKEYS_URL)
        self.assertIsNone(config['api_timeout_seconds'])
        self.assertEqual(config['log_level'], 'WARNING')

    def test_file_values_override_defaults(self):
        path = self._write_config({'monkeys_url': 'https://example.com/m.json',
                                   'api_timeout_seconds': 5})
        config = monkeyfinder.load_config(path)
        self.assertEqual(config['monkeys_url'], 'https://example.com/m.json')
        self.assertEqual(config['api_timeout_seconds'], 5.0)
        self.assertEqual(config['gui_port'], 5000)

    def test_env_overrides_file(self):
        path = self._write_config({'monkeys_url': 'https://example.com/m.json'})
        os.environ['MONKEYFINDER_URL'] = 'http://localhost:8000/monkeys.json'
        os.environ['MONKEYFINDER_TIMEOUT'] = '2.5'
        os.environ['MONKEYFINDER_LOG_LEVEL'] = 'DEBUG'
        config = monkeyfinder.load_config(path)
        self.assertEqual(config['monkeys_url'], 'http://localhost:8000/monkeys.json')
        self.assertEqual(config['api_timeout_seconds'], 2.5)
        self.assertEqual(config['log_level'], 'DEBUG')

    def test_corrupt_file_exits(self):
        path = self._path('config.json')
        with open(path, 'w') as f:
            f.write('NOT JSON')
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            monkeyfinder.load_config(path)

    def test_bad_url_exits(self):
        path = self._write_config({'monkeys_url': 'ftp://example.com/m.json'})
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            monkeyfinder.load_config(path)

    def test_bad_timeout_exits(self):
        for bad in (0, -3, 'soon'):
            path = self._write_config({'api_timeout_seconds': bad})
            with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
                monkeyfinder.load_config(path)


class TestSetupLogging(unittest.TestCase):

    def test_sets_level(self):
        logger = monkeyfinder.setup_logging('DEBUG')
        self.assertEqual(logger.name, 'monkeyfinder')
        self.assertEqual(logger.level, 10)
        monkeyfinder.setup_logging('WARNING')

    def test_unknown_level_falls_back_to_warning(self):
        logger = monkeyfinder.setup_logging('CHATTY')
        self.assertEqual(logger.level, 30)

    def test_single_handler(self):
        monkeyfinder.setup_logging()
        logger = monkeyfinder.setup_logging()
        self.assertEqual(len(logger.handlers), 1)


class TestSetupLoggingFile(TmpDirMixin):

    def _file_handlers(self, logger):
        return [h for h in logger.handlers if isinstance(h, logging.FileHandler)]

    def _drop_file_handlers(self):
        logger = logging.getLogger('monkeyfinder')
        for h in self._file_handlers(logger):
            logger.removeHandler(h)
            h.close()

    def setUp(self):
        super().setUp()
        self.addCleanup(self._drop_file_handlers)

    def test_creates_directory_and_writes(self):
        path = self._path(os.path.join('logs', 'gui.log'))
        logger = monkeyfinder.setup_logging('INFO', log_file=path)
        logging.getLogger('monkeyfinder.gui').info('hello file')
        for h in self._file_handlers(logger):
            h.flush()
        with open(path) as f:
            self.assertIn('INFO monkeyfinder.gui: hello file', f.read())

    def test_file_handler_added_once(self):
        path = self._path('gui.log')
        monkeyfinder.setup_logging('INFO', log_file=path)
        logger = monkeyfinder.setup_logging('INFO', log_file=path)
        self.assertEqual(len(self._file_handlers(logger)), 1)

    def test_console_handler_kept_alongside_file(self):
        logger = monkeyfinder.setup_logging('INFO', log_file=self._path('gui.log'))
        console = [h for h in logger.handlers if type(h) is logging.StreamHandler]
        self.assertEqual(len(console), 1)

    def test_unopenable_file_warns(self):
        blocker = self._path('not_a_dir')
        with open(blocker, 'w') as f:
            f.write('x')
        with self.assertLogs('monkeyfinder', level='WARNING') as cm:
            logger = monkeyfinder.setup_logging(
                'INFO', log_file=os.path.join(blocker, 'gui.log'))
        self.assertEqual(self._file_handlers(logger), [])
        self.assertIn('Could not open log file', cm.output[0])


# ===========================================================================
# MonkeyFinder
# ===========================================================================

class TestMonkeyFinder(TmpDirMixin):

    def test_services_created_from_config(self):
        path = self._write_config({'monkeys_url': 'https://example.com/m.json',
                                   'api_timeout_seconds': 3})
        finder = monkeyfinder.MonkeyFinder(path)
        self.assertEqual(finder.monkey_service.url, 'https://example.com/m.json')
        self.assertEqual(finder.monkey_service.timeout, 3.0)

    def test_load_monkeys(self):
        finder = self.make_finder()
        with redirect_stdout(io.StringIO()) as out:
            self.assertTrue(finder.load_monkeys())
        self.assertIn('Found 2 monkeys', out.getvalue())

    def test_load_monkeys_failure(self):
        finder = self.make_finder(body={'not': 'a list'})
        with redirect_stdout(io.StringIO()):
            self.assertFalse(finder.load_monkeys())

    def test_list_shows_ratings(self):
        finder = self.make_finder()
        finder.rating_service.set_rating('Baboon', 4)
        with redirect_stdout(io.StringIO()) as out:
            finder.list_monkeys()
        text = out.getvalue()
        self.assertIn('Baboon', text)
        self.assertIn('★★★★☆', text)
        self.assertIn('unrated', text)

    def test_show_stats(self):
        finder = self.make_finder()
        finder.rating_service.set_rating('Capuchin', 2)
        with redirect_stdout(io.StringIO()) as out:
            finder.show_stats()
        text = out.getvalue()
        self.assertIn('33,000', text)
        self.assertIn('Average rating', text)

    def test_find_monkey(self):
        finder = self.make_finder()
        with redirect_stdout(io.StringIO()) as out:
            monkey = finder.find_monkey('Capuchin')
        self.assertEqual(monkey.name, 'Capuchin')
        self.assertIn('Central & South America', out.getvalue())

    def test_find_missing_monkey(self):
        finder = self.make_finder()
        with redirect_stdout(io.StringIO()) as out:
            self.assertIsNone(finder.find_monkey('Gorilla'))
        self.assertIn("No monkey named 'Gorilla'", out.getvalue())

    def test_find_closest(self):
        finder = self.make_finder()
        with redirect_stdout(io.StringIO()) as out:
            monkey = finder.find_closest(-6.0, 35.0)
        self.assertEqual(monkey.name, 'Baboon')
        self.assertIn('km away', out.getvalue())

    def test_rate_interactive(self):
        finder = self.make_finder()
        finder.monkey_service.get_monkeys()
        with patch('builtins.input', side_effect=['Baboon', '7']), \
                redirect_stdout(io.StringIO()):
            finder.rate_monkey_interactive()
        self.assertEqual(finder.rating_service.get_rating('Baboon'), 5)

    def test_rate_interactive_rejects_text(self):
        finder = self.make_finder()
        finder.monkey_service.get_monkeys()
        with patch('builtins.input', side_effect=['Baboon', 'lots']), \
                redirect_stdout(io.StringIO()) as out:
            finder.rate_monkey_interactive()
        self.assertEqual(finder.rating_service.get_rating('Baboon'), 0)
        self.assertIn('whole number', out.getvalue())

    def test_interactive_mode_flow(self):
        finder = self.make_finder()
        answers = ['1', '3', 'Capuchin', '3', '4', '12,-85', '9', 'q']
        with patch('builtins.input', side_effect=answers), \
                redirect_stdout(io.StringIO()) as out:
            finder.interactive_mode()
        self.assertEqual(finder.rating_service.get_rating('Capuchin'), 3)
        self.assertIn('Invalid choice', out.getvalue())
        self.assertEqual(finder.monkey_service.session.get.call_count, 1)


# ===========================================================================
# main()
# ===========================================================================

class TestMain(TmpDirMixin):

    def _run(self, *argv, body=FEED):
        argv = ['monkeyfinder.py', '--config', self._path('missing.json'), *argv]
        with patch('finder.services.monkey_service.requests.Session',
                   return_value=_ok_session(body)), \
                patch.object(sys, 'argv', argv), \
                redirect_stdout(io.StringIO()) as out:
            monkeyfinder.main()
        return out.getvalue()

    def test_list(self):
        text = self._run('--list')
        self.assertIn('Baboon', text)
        self.assertIn('Capuchin', text)

    def test_find(self):
        self.assertIn('Old World monkey.', self._run('--find', 'Baboon'))

    def test_find_missing_exits(self):
        with self.assertRaises(SystemExit) as ctx:
            self._run('--find', 'Gorilla')
        self.assertEqual(ctx.exception.code, 1)

    def test_closest(self):
        self.assertIn('Capuchin', self._run('--closest', '12.1,-86.2'))

    def test_bad_closest_exits(self):
        with self.assertRaises(SystemExit):
            self._run('--closest', 'here')

    def test_no_monkeys_exits(self):
        with self.assertRaises(SystemExit):
            self._run('--stats', body=[])


if __name__ == '__main__':
    unittest.main()
