# Application Configuration
import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def database_url():
    # Hosted Postgres hands out postgres://, SQLAlchemy needs postgresql://
    url = os.environ.get('DATABASE_URL', 'sqlite:///price_tracker.db')
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


class Config:
    """Settings read from the environment (and .env) at import time"""

    SQLALCHEMY_DATABASE_URI = database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 300,
        'pool_pre_ping': True,
    }

    # Steam storefront
    STEAM_COUNTRY = os.environ.get('STEAM_COUNTRY', 'ca')
    STEAM_LANGUAGE = os.environ.get('STEAM_LANGUAGE', 'en')
    STEAM_TIMEOUT = float(os.environ.get('STEAM_TIMEOUT', 15))

    # Outbound mail
    SMTP_HOST = os.environ.get('SMTP_HOST')
    SMTP_PORT = int(os.environ.get('SMTP_PORT', 587))
    SMTP_USER = os.environ.get('SMTP_USER')
    SMTP_PASS = os.environ.get('SMTP_PASS')
    SMTP_USE_TLS = _env_flag('SMTP_USE_TLS', True)
    EMAIL_FROM = os.environ.get('EMAIL_FROM', 'no-reply@example.com')

    # Tracking cycle
    TRACK_INTERVAL_MINUTES = int(os.environ.get('TRACK_INTERVAL_MINUTES', 30))
    SCHEDULER_ENABLED = _env_flag('SCHEDULER_ENABLED', True)

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    PORT = int(os.environ.get('PORT', 3030))
