import os
import logging
from logging.handlers import RotatingFileHandler
from decimal import Decimal
import click
from flask import Flask, session, g
from config import Config
from models import User, SystemSetting, ServiceTier
from extensions import db, login_manager, init_extensions
from ledger.config import MarketplaceConfig
from logger import app_logger, ledger_logger, FILE_FORMAT, MAX_BYTES, BACKUP_COUNT


DEFAULT_SERVICE_TIERS = (
    ("Starter", "Small landing page or automation task", Decimal("10"), 5),
    ("Professional", "Multi-page site or integration project", Decimal("50"), 30),
    ("Enterprise", "Custom application development", Decimal("200"), 120),
)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.debug and not app.testing:
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            SESSION_COOKIE_HTTPONLY=True,
            REMEMBER_COOKIE_SECURE=True,
            REMEMBER_COOKIE_HTTPONLY=True,
        )

    setup_logging(app)
    check_marketplace_config(app)

    # --------------------------------------------------------------------------------------------------------------------------
    # Initialize extensions
    # ----------------------------------------------------------------------------------------------------------------------------
    init_extensions(app)

    register_blueprints(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    # ----------------------
    # Global before_request
    # ----------------------
    @app.before_request
    def load_logged_in_user():
        g.user = None
        user_id = session.get("user_id")
        if user_id:
            g.user = db.session.get(User, user_id)

    @app.route("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    @app.cli.command("init-db")
    def init_db_command():
        """Create tables and seed the coin value and service tiers."""
        init_db()
        app_logger.info("Database initialised")
        click.echo("Database initialised.")

    return app


def setup_logging(app):
    logs_dir = app.config.get("LOG_DIR", "logs")
    os.makedirs(logs_dir, exist_ok=True)

    file_handler = RotatingFileHandler(
        os.path.join(logs_dir, "app.log"), maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    file_handler.setLevel(logging.INFO)

    app.logger.handlers.clear()
    app.logger.addHandler(file_handler)
    app.logger.setLevel(logging.INFO)
    app.logger.propagate = False

    if app.debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(console_handler)

    # ledger.* module loggers propagate here
    ledger_logger.setLevel(logging.DEBUG if app.debug else logging.INFO)


def check_marketplace_config(app):
    valid, message = MarketplaceConfig.validate_configuration()
    if not valid:
        app.logger.error(f"Invalid marketplace configuration: {message}")
        raise RuntimeError(message)
    app.logger.info(message)


def register_blueprints(app):
    from blueprints.auth import bp as auth_bp
    from blueprints.coins import bp as coins_bp
    from blueprints.investor import bp as investor_bp
    from blueprints.projects import bp as projects_bp
    from blueprints.admin import admin_bp
    from blueprints.activity import activity_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(coins_bp)
    app.register_blueprint(investor_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(activity_bp)


def init_db():
    """Idempotent: existing settings and tiers are left alone."""
    db.create_all()

    if not SystemSetting.query.filter_by(setting_key=MarketplaceConfig.COIN_VALUE_SETTING_KEY).first():
        db.session.add(SystemSetting(
            setting_key=MarketplaceConfig.COIN_VALUE_SETTING_KEY,
            setting_value=str(MarketplaceConfig.BASE_COIN_VALUE),
            version=1,
        ))

    for order, (name, description, coin_cost, hours) in enumerate(DEFAULT_SERVICE_TIERS, start=1):
        if not ServiceTier.query.filter_by(name=name).first():
            db.session.add(ServiceTier(
                name=name, description=description, coin_cost=coin_cost,
                service_hours=hours, display_order=order, active=True,
            ))

    db.session.commit()


# ----------------------
# Create app instance
# ----------------------
app = create_app()

# ----------------------
# Local development
# ----------------------
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug_mode = app.config.get("DEBUG", True)
    app.run(debug=debug_mode, host="0.0.0.0", port=port)
