from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os
import time
from logging.config import dictConfig
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration


db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per hour"]
)



def try_connect_db(app, retries=3):
    for attempt in range(retries):
        try:
            with app.app_context():
                with db.engine.connect():
                    return True
        except Exception as e:
            app.logger.error(f"Database connection attempt {attempt + 1} failed: {e}")
            time.sleep(1)
    return False


def create_app(config_name=None):
    from config import config_dict

    env = config_name or os.getenv('FLASK_ENV', 'development')
    config_class = config_dict[env]

    dictConfig(config_class.LOGGING_CONFIG)

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Sentry in production only
    if env == 'production' and app.config.get('SENTRY_DSN'):
        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.2,
        )

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    storage_uri = app.config.get('RATELIMIT_STORAGE_URI', 'memory://')
    if storage_uri.startswith('memory://'):
        if env == 'production':
            app.logger.error("Per-route rate limits use memory storage in production; limits are not shared across instances")
        else:
            app.logger.info("Per-route rate limits using memory storage")
    limiter.init_app(app)

    if not try_connect_db(app, retries=app.config.get('DB_RETRY_ATTEMPTS', 3)):
        raise RuntimeError("Could not establish database connection")

    from app.auth.provider import init_auth
    init_auth(app)

    from app.middleware import init_security
    init_security(app)

    from app.api.errors import register_error_handlers
    register_error_handlers(app)

    from app.auth.routes import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    from app.profiles.routes import profiles_bp
    app.register_blueprint(profiles_bp, url_prefix='/api/profiles')

    from app.settings.api_keys import api_keys_bp
    app.register_blueprint(api_keys_bp, url_prefix='/api/profiles')

    from app.recipes.routes import recipes_bp
    app.register_blueprint(recipes_bp, url_prefix='/api/recipes')

    from app.ai.routes import ai_bp
    app.register_blueprint(ai_bp, url_prefix='/api/ai')

    from app.commands import init_commands
    init_commands(app)

    @app.route('/health')
    @limiter.exempt
    def health():
        return {'status': 'ok'}

    app.logger.info(f"Application created with {env} configuration")
    return app
