# Steam Price Tracker - Flask API
import atexit
import logging
from functools import wraps

from flask import Blueprint, Flask, current_app, jsonify, request
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

import store
from config import Config
from emailer import send_discount_alert
from errors import ApiError, ResourceNotFound
from models import db
from scheduler import init_scheduler, scheduler_status, shutdown_scheduler
from schemas import (
    AddGameRequest,
    AlertIdRequest,
    AppIdRequest,
    DiscountAlertRequest,
    EmailQuery,
    HistoryQuery,
    SampleEmailRequest,
    parse,
)
from steam_client import search_store
from tracker import lookup_game, run_tracking_cycle, sync_game

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__)


def guarded(failure_message):
    """
    Turn unexpected failures (Steam, SMTP, database) into a 500 carrying only
    ``failure_message``. The detail goes to the log, never to the caller.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except (ApiError, HTTPException):
                raise
            except Exception:
                db.session.rollback()
                logger.exception("%s %s failed", request.method, request.path)
                return jsonify({'ok': False, 'error': failure_message}), 500
        return wrapper
    return decorator


# ============ Health ============

@api.route('/health')
def health():
    return jsonify({'ok': True, 'message': 'backend is running'})


@api.route('/scheduler/status')
def get_scheduler_status():
    """Whether the tracking timer is running and when it fires next"""
    return jsonify({'ok': True, **scheduler_status(current_app)})


# ============ Games ============

@api.route('/games')
@guarded('DB error')
def list_games():
    """Tracked games by name"""
    games = store.list_games()
    return jsonify({'ok': True, 'games': [{'appid': g.appid, 'name': g.name} for g in games]})


@api.route('/games', methods=['POST'])
@guarded('Failed to add game')
def add_game():
    """Add a game picked from search results and fetch its price right away"""
    req = parse(AddGameRequest, request.get_json(silent=True))

    game = store.upsert_game(req.appid, req.name, req.tiny_image)
    db.session.commit()
    added = game.to_dict()

    # The response is the stored row, not the synced price
    if sync_game(req.appid) is None:
        logger.info("App %s was added but Steam has no listing for it", req.appid)

    return jsonify({'ok': True, 'game': added})


@api.route('/games/latest')
@guarded('Failed to fetch latest prices')
def latest_prices():
    """Every tracked game with its most recent snapshot"""
    return jsonify({'ok': True, 'games': store.games_with_latest_price()})


@api.route('/games/track', methods=['POST'])
@guarded('Failed to track game')
def track_game():
    """Sync one game now and return the normalized result"""
    req = parse(AppIdRequest, request.get_json(silent=True))

    result = sync_game(req.appid)
    if result is None:
        raise ResourceNotFound('App not found on Steam')

    return jsonify({'ok': True, 'game': result})


@api.route('/games/<appid>', methods=['DELETE'])
@guarded('Failed to remove game')
def remove_game(appid):
    """Delete a game together with its price history and alerts"""
    req = parse(AppIdRequest, {'appid': appid})

    if not store.delete_game(req.appid):
        db.session.rollback()
        raise ResourceNotFound('Game not found')

    db.session.commit()
    return jsonify({'ok': True, 'removed': req.appid})


@api.route('/game')
@guarded('Something went wrong')
def get_game():
    """Current Steam price for one app (records the name, not the price)"""
    req = parse(AppIdRequest, request.args.to_dict())

    details = lookup_game(req.appid)
    if details is None:
        raise ResourceNotFound('App not found on Steam')

    return jsonify({'ok': True, **details})


@api.route('/game/<appid>/history')
@guarded('DB error')
def get_history(appid):
    """Price snapshots, newest first"""
    req = parse(AppIdRequest, {'appid': appid})
    query = parse(HistoryQuery, request.args.to_dict())

    history = store.price_history(req.appid, query.limit)
    return jsonify({
        'ok': True,
        'appid': req.appid,
        'history': [h.to_dict() for h in history],
    })


@api.route('/steam/search')
@guarded('steam search failed')
def steam_search():
    games = search_store(request.args.get('term', ''))
    return jsonify({'ok': True, 'games': games})


# ============ Tracking ============

@api.route('/track/run', methods=['POST'])
@guarded('Tracking run failed')
def run_tracking():
    """Run one full tracking cycle now (same routine the timer uses)"""
    summary = run_tracking_cycle()
    return jsonify({'ok': True, **summary})


# ============ Alerts ============

@api.route('/alert/discount', methods=['POST'])
@guarded('Failed to create alert')
def create_discount_alert():
    """Subscribe an email to a discount threshold, or reactivate the same subscription"""
    req = parse(DiscountAlertRequest, request.get_json(silent=True))

    if not store.game_exists(req.appid):
        raise ResourceNotFound('Game not found')

    alert = store.upsert_alert(req.appid, req.email, req.min_discount_percent)
    db.session.commit()

    return jsonify({'ok': True, 'alert': alert.to_dict()})


@api.route('/alerts')
@guarded('Failed to fetch alerts')
def list_alerts():
    query = parse(EmailQuery, request.args.to_dict())
    alerts = store.alerts_for_email(query.email)
    return jsonify({'ok': True, 'alerts': [a.to_dict() for a in alerts]})


@api.route('/alert/<alert_id>', methods=['DELETE'])
@guarded('Failed to delete alert')
def delete_alert(alert_id):
    """Stop notifying for an alert; the row is kept, just deactivated"""
    req = parse(AlertIdRequest, {'id': alert_id})

    alert = store.deactivate_alert(req.id)
    if alert is None:
        raise ResourceNotFound('Alert not found')

    db.session.commit()
    return jsonify({'ok': True, 'alert': alert.to_dict()})


@api.route('/test-email', methods=['POST'])
@guarded('Failed to send test email')
def send_test_email():
    """Send a sample discount alert to check the mail setup"""
    req = parse(SampleEmailRequest, request.get_json(silent=True))

    delivered = send_discount_alert(
        to=req.email,
        game_name='Test Game',
        appid=123,
        discount_percent=50,
        price_cents=1999,
        currency='CAD',
    )
    if not delivered:
        return jsonify({'ok': False, 'error': 'Failed to send test email'}), 500

    return jsonify({'ok': True, 'message': 'Test email sent'})


# ============ App Setup ============

def handle_api_error(e):
    return jsonify(e.to_dict()), e.status_code


def handle_http_error(e):
    return jsonify({'ok': False, 'error': e.name}), e.code


def init_db(app):
    """Create tables, enforcing foreign keys on SQLite"""
    with app.app_context():
        if db.engine.dialect.name == 'sqlite':
            @event.listens_for(db.engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        db.create_all()


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(level=app.config['LOG_LEVEL'], format=LOG_FORMAT)

    db.init_app(app)
    init_db(app)

    app.register_blueprint(api)
    app.register_error_handler(ApiError, handle_api_error)
    app.register_error_handler(HTTPException, handle_http_error)

    if app.config['SCHEDULER_ENABLED'] and not app.testing:
        init_scheduler(app)
        atexit.register(shutdown_scheduler, app)

    return app


# ============ Run App ============

if __name__ == '__main__':
    app = create_app()
    port = app.config['PORT']

    print("\n" + "="*50)
    print("  Steam Price Tracker - API")
    print(f"  Running at: http://127.0.0.1:{port}")
    print("="*50 + "\n")

    # The reloader would start a second scheduler
    app.run(host='0.0.0.0', port=port, use_reloader=False)
