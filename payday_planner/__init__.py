import os
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_class=None):
    app = Flask(__name__)

    # Ensure Instance Folder Exists
    os.makedirs(app.instance_path, exist_ok=True)

    app.config.from_object(config_class or Config)

    # SQLite DB Inside /instance/app.db Unless DATABASE_URL Is Set
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///" + os.path.join(app.instance_path, "app.db")

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)

    from .routes import main
    app.register_blueprint(main)

    # Import Models So Flask-Migrate Can "See" Them
    from . import models # noqa: F401

    return app
