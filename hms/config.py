import os
from datetime import timedelta
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

DEV_SECRET_KEY = 'dev-secret-key-change-in-production-0123456789'


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY') or DEV_SECRET_KEY
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_HOURS = int(os.getenv('JWT_ACCESS_TOKEN_HOURS', '1'))
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=JWT_ACCESS_TOKEN_HOURS)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///hms.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
    }

    # Billing
    APPOINTMENT_FEE = Decimal(os.getenv('APPOINTMENT_FEE', '100'))
    INVOICE_TAX_RATE = Decimal(os.getenv('INVOICE_TAX_RATE', '0.10'))
    INVOICE_NUMBER_PREFIX = os.getenv('INVOICE_NUMBER_PREFIX', 'INV-')
    PRESCRIPTION_NUMBER_PREFIX = os.getenv('PRESCRIPTION_NUMBER_PREFIX', 'RX-')

    # PDF documents
    HOSPITAL_NAME = os.getenv('HOSPITAL_NAME', 'City General Hospital')
    CURRENCY_SYMBOL = os.getenv('CURRENCY_SYMBOL', '$')

    # CORS
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SESSION_COOKIE_SECURE = False  # Set to True when using HTTPS
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': 20,
        'max_overflow': 40,
    }

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')

    @staticmethod
    def validate():
        secret = os.getenv('SECRET_KEY')
        if not secret or secret == DEV_SECRET_KEY:
            raise ValueError("SECRET_KEY environment variable must be set in production and must not be the default value")


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'testing-secret-key-with-enough-length-for-hs256'
    JWT_SECRET_KEY = SECRET_KEY
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    BCRYPT_LOG_ROUNDS = 4


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration by name, falling back to FLASK_ENV"""
    env = config_name or os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
