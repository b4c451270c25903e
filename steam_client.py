# Steam Store Client
import logging

import requests
from flask import current_app

logger = logging.getLogger(__name__)

APPDETAILS_URL = "https://store.steampowered.com/api/appdetails"
STORESEARCH_URL = "https://store.steampowered.com/api/storesearch/"

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.5",
}


class SteamFetchError(Exception):
    """Steam could not be reached or answered with something unreadable"""


def _storefront():
    config = current_app.config
    return {
        'cc': config.get('STEAM_COUNTRY', 'ca'),
        'l': config.get('STEAM_LANGUAGE', 'en'),
    }


def _get_json(url, params):
    timeout = current_app.config.get('STEAM_TIMEOUT', 15)
    try:
        response = requests.get(url, params=params, headers=HEADERS, timeout=timeout)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as e:
        raise SteamFetchError(f"Steam request to {url} failed: {e}") from e
    except ValueError as e:
        raise SteamFetchError(f"Steam returned invalid JSON from {url}") from e


def fetch_app_details(appid):
    """
    Look up one app on the Steam store.
    Returns dict with name, price_cents, currency and discount_percent,
    or None if Steam does not know the app (or it is not sold in this storefront).
    """
    params = {'appids': appid, **_storefront()}
    data = _get_json(APPDETAILS_URL, params)

    if not isinstance(data, dict):
        raise SteamFetchError(f"Unexpected appdetails payload for {appid}")

    entry = data.get(str(appid))
    if not entry or not entry.get('success'):
        logger.info("Steam has no active listing for app %s", appid)
        return None

    info = entry.get('data') or {}
    # Free games have no price_overview at all
    po = info.get('price_overview') or None

    return {
        'appid': appid,
        'name': info.get('name'),
        'price_cents': po.get('final') if po else None,
        'currency': po.get('currency') if po else None,
        'discount_percent': po.get('discount_percent') if po else None,
    }


def search_store(term):
    """Free-text search against the Steam store. Blank terms never hit the network."""
    term = (term or '').strip()
    if not term:
        return []

    params = {'term': term, **_storefront()}
    data = _get_json(STORESEARCH_URL, params)
    if not isinstance(data, dict):
        raise SteamFetchError(f"Unexpected storesearch payload for {term!r}")
    items = data.get('items') or []

    return [
        {
            'appid': item.get('id'),
            'name': item.get('name'),
            'tiny_image': item.get('tiny_image'),
        }
        for item in items
    ]
