from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


@jwt.unauthorized_loader
def _missing_token(reason):
    return {'error': 'Unauthorized'}, 401


@jwt.invalid_token_loader
def _invalid_token(reason):
    return {'error': 'Unauthorized'}, 401


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return {'error': 'Token expired'}, 401


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['UPLOAD_DIR'] = os.getenv('UPLOAD_DIR', os.path.join(os.getcwd(), 'uploads'))
    app.config['MAX_UPLOAD_BYTES'] = int(os.getenv('MAX_UPLOAD_BYTES', str(10 * 1024 * 1024)))
    app.config['DEFAULT_LOCALE'] = os.getenv('DEFAULT_LOCALE', 'pl')
    app.config['PREFERRED_COUNTRY'] = os.getenv('PREFERRED_COUNTRY', 'PL')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    from .logging_setup import configure_logging
    configure_logging(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.iam import auth_bp, users_bp
    from .routes.catalog import public_bp
    from .routes.items import items_bp
    from .routes.taxonomy import taxonomy_bp
    from .routes.inventory import wh_bp
    from .routes.currency import currency_bp
    from .routes.sales import orders_bp, admin_orders_bp, payments_bp
    from .routes.uploads import uploads_bp
    from .routes.content import content_bp, public_content_bp
    from .routes.discounts import discounts_bp
    from .routes.dashboard import dashboard_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(users_bp, url_prefix='/admin/users')
    app.register_blueprint(public_bp, url_prefix='/public')
    app.register_blueprint(items_bp, url_prefix='/admin/items')
    app.register_blueprint(taxonomy_bp, url_prefix='/admin')  # categories, subcategories, brands
    app.register_blueprint(wh_bp, url_prefix='/admin')  # warehouses, warehouse countries
    app.register_blueprint(currency_bp, url_prefix='/currency-exchange')
    app.register_blueprint(orders_bp, url_prefix='/orders')
    app.register_blueprint(admin_orders_bp, url_prefix='/admin/orders')
    app.register_blueprint(payments_bp, url_prefix='/admin/payments')
    app.register_blueprint(uploads_bp, url_prefix='/admin/uploads')
    app.register_blueprint(content_bp, url_prefix='/admin')  # pages, banners
    app.register_blueprint(public_content_bp, url_prefix='/public')
    app.register_blueprint(discounts_bp, url_prefix='/admin/discount-levels')
    app.register_blueprint(dashboard_bp, url_prefix='/admin/dashboard')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    from .services.errors import StorefrontError

    # Unified error handler producing {"error": message}
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        # the scoped session outlives the request; drop anything flushed before the failure
        SessionLocal.rollback()
        if isinstance(e, HTTPException):
            return {'error': e.description or e.name}, e.code
        if isinstance(e, StorefrontError):
            return {'error': e.message}, e.status_code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {'error': 'Internal Server Error'}, 500

    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        # Lightweight HTML referencing Redoc CDN (no local install) for quick browsing
        return (
            "<!DOCTYPE html><html><head><title>Storefront API Docs</title>"
            "<link rel=\"stylesheet\" href=\"https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.css\" />"
            "</head><body><redoc spec-url='/openapi.json'></redoc>"
            "<script src='https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js'></script>"
            "</body></html>"
        )

    return app


def get_db():
    return SessionLocal()
