from dotenv import load_dotenv
import os

load_dotenv()


def _env_int(name, default):
    return int(os.getenv(name, str(default)))


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')

    if not SQLALCHEMY_DATABASE_URI:
        raise ValueError("DATABASE_URL environment variable not set")

    # Hosted Postgres still hands out the legacy scheme
    if SQLALCHEMY_DATABASE_URI.startswith('postgres://'):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
        'pool_size': 5,
        'max_overflow': 10,
        'pool_timeout': 30,
    }

    LOGGING_CONFIG = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': 'INFO',
                'formatter': 'default',
            },
        },
        'root': {
            'handlers': ['console'],
            'level': 'INFO',
        }
    }

    DB_RETRY_ATTEMPTS = 3

    # Hosted auth (Supabase)
    SUPABASE_URL = os.getenv('SUPABASE_URL')
    SUPABASE_KEY = os.getenv('SUPABASE_KEY')
    SITE_URL = os.getenv('SITE_URL', 'http://localhost:3000')

    # AI provider
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    ENCRYPTION_KEY = os.getenv('ENCRYPTION_KEY')
    AI_DEFAULT_MODEL = os.getenv('AI_DEFAULT_MODEL', 'gpt-4o-mini')
    AI_MAX_TOKENS = _env_int('AI_MAX_TOKENS', 2000)
    AI_TEMPERATURE = float(os.getenv('AI_TEMPERATURE', '0.7'))
    AI_MAX_GENERATIONS_PER_HOUR = _env_int('AI_MAX_GENERATIONS_PER_HOUR', 10)
    AI_DAILY_LIMIT = _env_int('AI_DAILY_LIMIT', 50)

    # Global per-IP gate in app.middleware (fixed window)
    REQUEST_RATE_LIMIT = _env_int('REQUEST_RATE_LIMIT', 100)
    REQUEST_RATE_LIMIT_WINDOW = _env_int('REQUEST_RATE_LIMIT_WINDOW', 15 * 60)
    REQUEST_RATE_LIMIT_STORAGE_URI = os.getenv('REQUEST_RATE_LIMIT_STORAGE_URI', 'memory://')
    SLOW_REQUEST_MS = _env_int('SLOW_REQUEST_MS', 1000)

    # Per-route limits (Flask-Limiter)
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True

    CORS_ALLOWED_ORIGINS = os.getenv('CORS_ALLOWED_ORIGINS', '*')

    WTF_CSRF_ENABLED = False  # JSON API authenticated with bearer tokens


class DevelopmentConfig(Config):
    FLASK_ENV = 'development'
    DEBUG = True
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'False').lower() == 'true'


class ProductionConfig(Config):
    FLASK_ENV = 'production'
    DEBUG = False
    PREFERRED_URL_SCHEME = 'https'
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestingConfig(Config):
    FLASK_ENV = 'testing'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    ENCRYPTION_KEY = 'kTRp1-n7Qo8vgY7bLb3fX1r9wM5mYcJ0A2sD4fG6hJ8='
    SUPABASE_URL = 'http://supabase.test'
    SUPABASE_KEY = 'test-anon-key'


# Dictionary to easily access configurations
config_dict = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}
