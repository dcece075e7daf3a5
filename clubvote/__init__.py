# clubvote/__init__.py

import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.middleware.proxy_fix import ProxyFix

# Extensions are created unbound and attached to an app in create_app()
db = SQLAlchemy()  # Database ORM
migrate = Migrate()  # DB migrations
limiter = Limiter(key_func=get_remote_address)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level='INFO'):
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def create_app(config=None, clock=None, sms_channel=None, audit_logger=None):
    """Build the Flask app.

    `config` overrides values from clubvote.config.Config. `clock`,
    `sms_channel` and `audit_logger` replace the default collaborators,
    which is how the tests drive time and capture outgoing codes.
    """
    app = Flask(__name__)
    app.config.from_object('clubvote.config.Config')
    if config:
        app.config.update(config)

    configure_logging(app.config['LOG_LEVEL'])

    # Fix proxy headers so rate limits and audit entries see the client address
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Ensure model modules are imported so SQLAlchemy metadata is populated
    from clubvote.database import models  # noqa: F401
    from clubvote.services import init_services
    from clubvote.routes import register_routes
    from clubvote.cli import register_commands

    with app.app_context():
        db.create_all()

    init_services(app, clock=clock, sms_channel=sms_channel, audit_logger=audit_logger)
    register_routes(app)
    register_commands(app)
    return app
