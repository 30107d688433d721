"""
Application Configuration
Loads environment variables and provides configuration classes for different environments
"""

import os
from datetime import timedelta
from decimal import Decimal
from dotenv import load_dotenv

# Load environment variables from .env file
basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))


class Config:
    """Base configuration class"""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'fleamarket.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # Business Configuration
    BUSINESS_NAME = os.environ.get('BUSINESS_NAME', 'Flea Market')
    CURRENCY = os.environ.get('CURRENCY', 'MXN')
    CURRENCY_SYMBOL = os.environ.get('CURRENCY_SYMBOL', '$')

    # Discounts and commissions
    VIP_THRESHOLD = Decimal(os.environ.get('VIP_THRESHOLD', '2000'))
    VIP_DISCOUNT_RATE = Decimal(os.environ.get('VIP_DISCOUNT_RATE', '0.15'))
    CARD_COMMISSION_RATE = Decimal(os.environ.get('CARD_COMMISSION_RATE', '0.04'))

    # Apartados (layaway)
    APARTADO_DAYS_LIMIT = int(os.environ.get('APARTADO_DAYS_LIMIT', 15))
    APARTADO_MIN_DEPOSIT_PERCENT = int(os.environ.get('APARTADO_MIN_DEPOSIT_PERCENT', 10))
    APARTADO_SWEEP_ENABLED = os.environ.get('APARTADO_SWEEP_ENABLED', 'False').lower() == 'true'
    APARTADO_SWEEP_INTERVAL_MINUTES = int(os.environ.get('APARTADO_SWEEP_INTERVAL_MINUTES', 60))

    # Cash closes (cortes de caja), hours in local time
    CASH_LIMIT = Decimal(os.environ.get('CASH_LIMIT', '2000'))
    CASH_CLOSE_SCHEDULE = {'morning': 12, 'afternoon': 16, 'evening': 20}
    CASH_CLOSE_GRACE_MINUTES = int(os.environ.get('CASH_CLOSE_GRACE_MINUTES', 30))

    # Returns
    RETURN_TOKEN_MINUTES = int(os.environ.get('RETURN_TOKEN_MINUTES', 5))

    # Thermal printer
    TICKET_WIDTH = int(os.environ.get('TICKET_WIDTH', 48))

    # Session Configuration
    PERMANENT_SESSION_LIFETIME = timedelta(
        seconds=int(os.environ.get('PERMANENT_SESSION_LIFETIME', 3600 * 12))
    )
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'False').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # CSRF Configuration
    WTF_CSRF_TIME_LIMIT = None  # valid for the session lifetime
    WTF_CSRF_SSL_STRICT = False
    WTF_CSRF_HEADERS = ['X-CSRFToken', 'X-CSRF-Token']

    # Rate limiting (Flask-Limiter)
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    LOGIN_RATE_LIMIT = os.environ.get('LOGIN_RATE_LIMIT', '20 per minute')

    # Error tracking
    SENTRY_DSN = os.environ.get('SENTRY_DSN', '')

    # Logging
    LOG_FOLDER = os.path.join(basedir, 'logs')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_ECHO = False  # Set to True to see SQL queries


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'True').lower() == 'true'
    PREFERRED_URL_SCHEME = 'https' if SESSION_COOKIE_SECURE else 'http'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    APARTADO_SWEEP_ENABLED = False
    SENTRY_DSN = ''


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
