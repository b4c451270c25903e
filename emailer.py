# Email Notification Service
import logging
import smtplib
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)

STORE_APP_URL = "https://store.steampowered.com/app/{appid}"


def get_config():
    config = current_app.config
    return {
        'server': config.get('SMTP_HOST'),
        'port': int(config.get('SMTP_PORT') or 587),
        'user': config.get('SMTP_USER'),
        'password': config.get('SMTP_PASS'),
        'use_tls': config.get('SMTP_USE_TLS', True),
        'sender': config.get('EMAIL_FROM') or 'no-reply@example.com',
    }


def format_price(price_cents, currency):
    if price_cents is None:
        return "Free"
    return f"{price_cents / 100:.2f} {currency or ''}".strip()


def render_discount_alert(game_name, appid, discount_percent, price_cents, currency):
    """Subject and plain-text body for one discount alert"""
    store_url = STORE_APP_URL.format(appid=appid)
    subject = f"{game_name} is {discount_percent}% off on Steam"
    body = (
        "Deal alert!\n"
        "\n"
        f"{game_name} ({appid}) is now {discount_percent}% off.\n"
        f"Current price: {format_price(price_cents, currency)}\n"
        "\n"
        f"Steam link: {store_url}\n"
    )
    return subject, body


def send_discount_alert(to, game_name, appid, discount_percent, price_cents, currency):
    """
    Send a discount alert email.
    Returns True when the message was handed to the relay (or logged because
    mail is not configured), False when delivery failed.
    """
    config = get_config()
    subject, body = render_discount_alert(game_name, appid, discount_percent, price_cents, currency)

    if not config['server']:
        logger.info("Email not configured, alert for %s not sent.\nSubject: %s\n%s", to, subject, body)
        return True

    msg = MIMEText(body, 'plain', 'utf-8')
    msg['Subject'] = subject
    msg['From'] = config['sender']
    msg['To'] = to

    try:
        with smtplib.SMTP(config['server'], config['port'], timeout=20) as server:
            if config['use_tls']:
                server.starttls()
            if config['user'] and config['password']:
                server.login(config['user'], config['password'])
            server.send_message(msg)
    except (smtplib.SMTPException, OSError):
        logger.exception("Error sending discount alert to %s", to)
        return False

    logger.info("Discount alert email sent to %s for app %s", to, appid)
    return True
