# Persistence helpers for games, price history and discount alerts.
# Nothing in here commits; callers own the transaction.
from sqlalchemy import func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import aliased

from models import db, Game, PriceHistory, DiscountAlert


def _insert(model):
    """INSERT construct for the bound dialect, so ON CONFLICT is available"""
    dialect = db.engine.dialect.name
    if dialect == 'postgresql':
        return postgresql.insert(model)
    if dialect == 'sqlite':
        return sqlite.insert(model)
    raise RuntimeError(f"Upserts are not supported on the {dialect} dialect; use SQLite or PostgreSQL")


# ============ Games ============

def upsert_game_name(appid, name):
    """Insert the game or refresh its name; the thumbnail is left alone"""
    stmt = _insert(Game).values(appid=appid, name=name)
    stmt = stmt.on_conflict_do_update(
        index_elements=['appid'],
        set_={'name': stmt.excluded.name},
    )
    db.session.execute(stmt)


def upsert_game(appid, name, tiny_image=None):
    """Insert or update a game; an existing thumbnail survives a NULL one"""
    stmt = _insert(Game).values(appid=appid, name=name, tiny_image=tiny_image)
    stmt = stmt.on_conflict_do_update(
        index_elements=['appid'],
        set_={
            'name': stmt.excluded.name,
            'tiny_image': func.coalesce(stmt.excluded.tiny_image, Game.tiny_image),
        },
    )
    db.session.execute(stmt)
    return db.session.get(Game, appid, populate_existing=True)


def list_games():
    return Game.query.order_by(Game.name.asc()).all()


def tracked_appids():
    return [appid for (appid,) in db.session.query(Game.appid).order_by(Game.appid.asc())]


def game_exists(appid):
    return db.session.get(Game, appid) is not None


def delete_game(appid):
    """Remove a game and everything hanging off it. Returns False if it was never there."""
    PriceHistory.query.filter_by(appid=appid).delete()
    DiscountAlert.query.filter_by(appid=appid).delete()
    removed = Game.query.filter_by(appid=appid).delete()
    return removed > 0


def games_with_latest_price():
    """Every game joined with its most recent snapshot (if any)"""
    newer = aliased(PriceHistory)
    latest_id = (
        select(newer.id)
        .where(newer.appid == Game.appid)
        .order_by(newer.recorded_at.desc(), newer.id.desc())
        .limit(1)
        .correlate(Game)
        .scalar_subquery()
    )
    rows = db.session.execute(
        select(Game, PriceHistory)
        .outerjoin(PriceHistory, PriceHistory.id == latest_id)
        .order_by(Game.appid.asc())
    ).all()

    games = []
    for game, snapshot in rows:
        row = game.to_dict()
        if snapshot is not None:
            row.update(snapshot.to_dict())
        else:
            row.update({'price_cents': None, 'currency': None,
                        'discount_percent': None, 'recorded_at': None})
        games.append(row)
    return games


# ============ Price history ============

def latest_snapshot(appid):
    return (PriceHistory.query
            .filter_by(appid=appid)
            .order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc())
            .first())


def add_snapshot(appid, price_cents, currency, discount_percent):
    snapshot = PriceHistory(
        appid=appid,
        price_cents=price_cents,
        currency=currency,
        discount_percent=discount_percent,
    )
    db.session.add(snapshot)
    return snapshot


def price_history(appid, limit):
    return (PriceHistory.query
            .filter_by(appid=appid)
            .order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc())
            .limit(limit)
            .all())


# ============ Discount alerts ============

def upsert_alert(appid, email, min_discount_percent):
    """Create the subscription, or reactivate the identical one"""
    stmt = _insert(DiscountAlert).values(
        appid=appid,
        email=email,
        min_discount_percent=min_discount_percent,
        active=True,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=['appid', 'email', 'min_discount_percent'],
        set_={'active': True},
    )
    db.session.execute(stmt)
    return (DiscountAlert.query
            .filter_by(appid=appid, email=email, min_discount_percent=min_discount_percent)
            .populate_existing()
            .one())


def alerts_for_email(email):
    return (DiscountAlert.query
            .filter_by(email=email)
            .order_by(DiscountAlert.created_at.desc(), DiscountAlert.id.desc())
            .all())


def deactivate_alert(alert_id):
    alert = db.session.get(DiscountAlert, alert_id)
    if alert is None:
        return None
    alert.active = False
    return alert


def due_alerts(appid, discount_percent, cutoff):
    """Active alerts met by the discount and not triggered since the cutoff"""
    return (DiscountAlert.query
            .filter(DiscountAlert.appid == appid,
                    DiscountAlert.active.is_(True),
                    DiscountAlert.min_discount_percent <= discount_percent,
                    or_(DiscountAlert.latest_trigger.is_(None),
                        DiscountAlert.latest_trigger < cutoff))
            .order_by(DiscountAlert.id.asc())
            .all())
