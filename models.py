# Database Models
from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone

db = SQLAlchemy()


def now_utc():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class Game(db.Model):
    """Steam app on the watch list, keyed by its store appid"""
    __tablename__ = 'games'

    appid = db.Column(db.Integer, primary_key=True, autoincrement=False)
    name = db.Column(db.String(300), nullable=False)
    tiny_image = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    def to_dict(self):
        return {
            'appid': self.appid,
            'name': self.name,
            'tiny_image': self.tiny_image,
        }


class PriceHistory(db.Model):
    """Price snapshots, appended only when the price state changes"""
    __tablename__ = 'price_history'
    __table_args__ = (
        db.Index('ix_price_history_appid_recorded_at', 'appid', 'recorded_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    appid = db.Column(db.Integer, db.ForeignKey('games.appid', ondelete='CASCADE'), nullable=False)
    # NULL price means free (or no price_overview from Steam)
    price_cents = db.Column(db.Integer, nullable=True)
    currency = db.Column(db.String(8), nullable=True)
    discount_percent = db.Column(db.Integer, nullable=True)
    recorded_at = db.Column(db.DateTime(timezone=True), default=now_utc, nullable=False)

    def price_state(self):
        return (self.price_cents, self.currency, self.discount_percent)

    def to_dict(self):
        return {
            'price_cents': self.price_cents,
            'currency': self.currency,
            'discount_percent': self.discount_percent,
            'recorded_at': _iso(self.recorded_at),
        }


class DiscountAlert(db.Model):
    """Email subscription that fires when a game's discount reaches a threshold"""
    __tablename__ = 'discount_alert'
    __table_args__ = (
        db.UniqueConstraint('appid', 'email', 'min_discount_percent',
                            name='uq_discount_alert_target'),
        db.CheckConstraint('min_discount_percent BETWEEN 1 AND 100',
                           name='ck_discount_alert_threshold'),
    )

    id = db.Column(db.Integer, primary_key=True)
    appid = db.Column(db.Integer, db.ForeignKey('games.appid', ondelete='CASCADE'), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    min_discount_percent = db.Column(db.Integer, nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)
    latest_trigger = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    def to_dict(self):
        return {
            'id': self.id,
            'appid': self.appid,
            'email': self.email,
            'min_discount_percent': self.min_discount_percent,
            'active': self.active,
            'latest_trigger': _iso(self.latest_trigger),
            'created_at': _iso(self.created_at),
        }
