import unittest
from unittest.mock import MagicMock, patch

import requests

from app import create_app
from steam_client import APPDETAILS_URL, SteamFetchError, fetch_app_details, search_store

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_ENGINE_OPTIONS': {},
    'SCHEDULER_ENABLED': False,
    'STEAM_COUNTRY': 'ca',
    'STEAM_LANGUAGE': 'en',
    'STEAM_TIMEOUT': 5,
}


def json_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


@patch('steam_client.requests.get')
class TestSteamClient(unittest.TestCase):
    def setUp(self):
        self.app = create_app(TEST_CONFIG)
        self.ctx = self.app.app_context()
        self.ctx.push()

    def tearDown(self):
        self.ctx.pop()

    def test_fetch_paid_game(self, mock_get):
        mock_get.return_value = json_response({
            '730': {
                'success': True,
                'data': {
                    'name': 'Counter-Strike 2',
                    'price_overview': {'currency': 'CAD', 'initial': 1999, 'final': 1599,
                                       'discount_percent': 20},
                },
            },
        })

        details = fetch_app_details(730)

        self.assertEqual(details, {
            'appid': 730, 'name': 'Counter-Strike 2',
            'price_cents': 1599, 'currency': 'CAD', 'discount_percent': 20,
        })
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], APPDETAILS_URL)
        self.assertEqual(kwargs['params'], {'appids': 730, 'cc': 'ca', 'l': 'en'})
        self.assertEqual(kwargs['timeout'], 5)

    def test_fetch_free_game_has_null_price(self, mock_get):
        mock_get.return_value = json_response({
            '570': {'success': True, 'data': {'name': 'Dota 2', 'is_free': True}},
        })

        details = fetch_app_details(570)

        self.assertEqual(details['name'], 'Dota 2')
        self.assertIsNone(details['price_cents'])
        self.assertIsNone(details['currency'])
        self.assertIsNone(details['discount_percent'])

    def test_fetch_unknown_or_inactive_app(self, mock_get):
        for payload in ({'1': {'success': False}}, {}):
            mock_get.return_value = json_response(payload)
            self.assertIsNone(fetch_app_details(1))

    def test_fetch_network_errors_raise(self, mock_get):
        for error in (requests.ConnectionError('refused'), requests.Timeout('slow')):
            mock_get.side_effect = error
            with self.assertRaises(SteamFetchError):
                fetch_app_details(730)

    def test_fetch_http_error_raises(self, mock_get):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError('429 Too Many Requests')
        mock_get.return_value = response

        with self.assertRaises(SteamFetchError):
            fetch_app_details(730)

    def test_fetch_bad_payload_raises(self, mock_get):
        response = MagicMock()
        response.json.side_effect = ValueError('Expecting value')
        mock_get.return_value = response
        with self.assertRaises(SteamFetchError):
            fetch_app_details(730)

        # Steam answers "null" for malformed requests
        mock_get.return_value = json_response(None)
        with self.assertRaises(SteamFetchError):
            fetch_app_details(730)

    def test_search_blank_term(self, mock_get):
        self.assertEqual(search_store(''), [])
        self.assertEqual(search_store('   '), [])
        self.assertEqual(search_store(None), [])
        mock_get.assert_not_called()

    def test_search_maps_items(self, mock_get):
        mock_get.return_value = json_response({
            'items': [{'id': 620, 'name': 'Portal 2', 'tiny_image': 'http://img/620.jpg',
                       'price': {'final': 1099}}],
        })

        self.assertEqual(search_store('  portal '), [
            {'appid': 620, 'name': 'Portal 2', 'tiny_image': 'http://img/620.jpg'},
        ])
        self.assertEqual(mock_get.call_args.kwargs['params'], {'term': 'portal', 'cc': 'ca', 'l': 'en'})

    def test_search_without_items(self, mock_get):
        mock_get.return_value = json_response({'total': 0})
        self.assertEqual(search_store('zzzz'), [])


if __name__ == '__main__':
    unittest.main()
