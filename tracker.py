# Price Sync and Discount Alerts
import logging
from datetime import timedelta

import store
from emailer import send_discount_alert
from models import db, now_utc
from steam_client import fetch_app_details

logger = logging.getLogger(__name__)

ALERT_COOLDOWN = timedelta(hours=24)


class AlertEvaluationError(Exception):
    """Alert evaluation stopped part way; ``sent`` alerts were already delivered and stamped"""

    def __init__(self, sent):
        super().__init__(f"alert evaluation stopped after {sent} sent")
        self.sent = sent


def lookup_game(appid):
    """Fetch current Steam price for an app and record its name, without touching history"""
    details = fetch_app_details(appid)
    if details is None:
        return None

    store.upsert_game_name(appid, details['name'])
    db.session.commit()
    return details


def sync_game(appid):
    """
    Fetch the current price of one game and append a snapshot if it changed.

    Returns the normalized price dict with a ``snapshot_inserted`` flag,
    or None when Steam no longer lists the app.
    """
    details = fetch_app_details(appid)
    if details is None:
        return None

    store.upsert_game_name(appid, details['name'])

    current = (details['price_cents'], details['currency'], details['discount_percent'])
    latest = store.latest_snapshot(appid)

    snapshot_inserted = False
    if latest is None or latest.price_state() != current:
        store.add_snapshot(appid, *current)
        snapshot_inserted = True
        if latest is not None:
            logger.info("  Price changed for %s: %s -> %s", appid, latest.price_state(), current)

    db.session.commit()

    return {
        'appid': appid,
        'name': details['name'],
        'price_cents': details['price_cents'],
        'currency': details['currency'],
        'discount_percent': details['discount_percent'],
        'snapshot_inserted': snapshot_inserted,
    }


def evaluate_alerts(result, now=None):
    """
    Email every subscriber whose threshold the current discount meets and
    whose last alert is outside the cooldown. Returns how many were sent.
    """
    discount = result.get('discount_percent')
    if not discount or discount <= 0:
        return 0

    now = now or now_utc()
    appid = result['appid']
    sent = 0

    for alert in store.due_alerts(appid, discount, now - ALERT_COOLDOWN):
        try:
            delivered = send_discount_alert(
                to=alert.email,
                game_name=result['name'],
                appid=appid,
                discount_percent=discount,
                price_cents=result.get('price_cents'),
                currency=result.get('currency'),
            )
        except Exception:
            logger.exception("  Alert %s for %s could not be sent", alert.id, alert.email)
            continue

        if not delivered:
            logger.warning("  Alert %s for %s was not delivered", alert.id, alert.email)
            continue

        try:
            alert.latest_trigger = now
            db.session.commit()
        except Exception as e:
            raise AlertEvaluationError(sent) from e
        sent += 1
        logger.info("  Alert triggered for %s (min %s%%)", alert.email, alert.min_discount_percent)

    return sent


def run_tracking_cycle():
    """Sync every tracked game and fire due alerts. One game failing never stops the rest."""
    logger.info("Running price tracking cycle...")

    appids = store.tracked_appids()
    inserted = 0
    alerted = 0
    failed = 0

    for appid in appids:
        try:
            logger.info("  Checking app %s...", appid)
            result = sync_game(appid)
            if result is None:
                logger.info("  App %s is no longer listed on Steam, skipping", appid)
                continue

            if result['snapshot_inserted']:
                inserted += 1

            if result['discount_percent'] and result['discount_percent'] > 0:
                alerted += evaluate_alerts(result)

        except AlertEvaluationError as e:
            db.session.rollback()
            alerted += e.sent
            failed += 1
            logger.exception("  Error sending alerts for app %s", appid)

        except Exception:
            db.session.rollback()
            failed += 1
            logger.exception("  Error tracking app %s", appid)

    summary = {
        'tracked_games': len(appids),
        'inserted': inserted,
        'alerted': alerted,
        'failed': failed,
    }
    logger.info("Price tracking cycle complete: %s", summary)
    return summary
