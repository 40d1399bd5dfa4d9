import os
from dotenv import load_dotenv
from urllib.parse import quote_plus

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get(
        'SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Build the SQLALCHEMY_DATABASE_URI:
    # - Prefer DATABASE_URL if provided (full URI)
    # - Otherwise compose from DB_USER, DB_PASSWORD, DB_HOST, DB_PORT and DB_NAME
    # User and password are URL-encoded to survive special characters
    _database_url = os.environ.get('DATABASE_URL')
    if _database_url:
        SQLALCHEMY_DATABASE_URI = _database_url
    else:
        DB_USER = os.environ.get('DB_USER', 'root')
        DB_PASSWORD = os.environ.get('DB_PASSWORD', '')
        DB_HOST = os.environ.get('DB_HOST', 'localhost')
        DB_PORT = os.environ.get('DB_PORT', '')
        DB_NAME = os.environ.get('DB_NAME', 'ensembles')

        host = f"{DB_HOST}:{DB_PORT}" if DB_PORT else DB_HOST
        user_q = quote_plus(DB_USER)
        pw_q = quote_plus(DB_PASSWORD)
        SQLALCHEMY_DATABASE_URI = f"mysql+pymysql://{user_q}:{pw_q}@{host}/{DB_NAME}"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Short-lived requests: small pool, fail fast on acquisition, replace dead
    # idle connections instead of handing them out
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_size': int(os.environ.get('DB_POOL_SIZE', 5)),
        'max_overflow': int(os.environ.get('DB_POOL_OVERFLOW', 2)),
        'pool_timeout': int(os.environ.get('DB_POOL_TIMEOUT', 10)),
        'pool_recycle': 300,
        'connect_args': {'connect_timeout': 10},
    }

    JWT_SECRET_KEY = os.environ.get(
        'JWT_SECRET_KEY') or 'jwt-secret-string-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = 3600  # 1 hour
    JWT_TOKEN_LOCATION = ['headers']
    JWT_HEADER_NAME = 'Authorization'
    JWT_HEADER_TYPE = 'Bearer'

    ACTIVITY_CATALOG_PATH = os.environ.get(
        'ACTIVITY_CATALOG_PATH', 'activities.json')
    INSTRUCTORS_PATH = os.environ.get('INSTRUCTORS_PATH', 'instructors.json')

    RESERVATION_HOLD_MINUTES = int(
        os.environ.get('RESERVATION_HOLD_MINUTES', 15))
    ACTIVITY_STATUS_MAX_AGE = int(
        os.environ.get('ACTIVITY_STATUS_MAX_AGE', 600))
    SHORT_CODE_MAX_ATTEMPTS = 5
    AMOUNT_TOLERANCE = '0.01'

    APP_TIMEZONE = os.environ.get('APP_TIMEZONE', 'America/Louisville')
    REMINDER_WINDOW_DAYS = int(os.environ.get('REMINDER_WINDOW_DAYS', 2))
    REMINDER_API_KEY = os.environ.get('REMINDER_API_KEY')

    BREVO_API_KEY = os.environ.get('BREVO_API_KEY')
    BREVO_API_URL = os.environ.get(
        'BREVO_API_URL', 'https://api.brevo.com/v3/smtp/email')
    BREVO_SENDER_EMAIL = os.environ.get('BREVO_SENDER_EMAIL')
    BREVO_SENDER_NAME = os.environ.get('BREVO_SENDER_NAME', 'Ensembles')
    EMAIL_TIMEOUT_SECONDS = int(os.environ.get('EMAIL_TIMEOUT_SECONDS', 10))


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    DEBUG = True
    # File-backed sqlite so the request and the test share one database
    SQLALCHEMY_DATABASE_URI = 'sqlite:///test_registrar.db'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    BREVO_API_KEY = None
    REMINDER_API_KEY = 'test-reminder-key'


class ProductionConfig(Config):
    DEBUG = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
