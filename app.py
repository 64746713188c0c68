# Main Flask app
import logging

from flask import Flask

from auth import bcrypt, jwt
from config import config
from models import db
from routes import (items_bp, player_bp, players_bp, profiles_bp, register_error_handlers,
                    tags_bp)


def create_app(config_name='default', overrides=None):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger().setLevel(app.config['LOG_LEVEL'])
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    jwt.init_app(app)

    # Register blueprints
    app.register_blueprint(players_bp, url_prefix='/api/players')
    app.register_blueprint(player_bp, url_prefix='/api/player')
    app.register_blueprint(profiles_bp, url_prefix='/api/profiles')
    app.register_blueprint(items_bp, url_prefix='/api/items')
    app.register_blueprint(tags_bp, url_prefix='/api/tags')
    register_error_handlers(app)

    with app.app_context():
        db.create_all()
    app.logger.info("Database ready at %s", app.config['SQLALCHEMY_DATABASE_URI'])

    return app


if __name__ == '__main__':
    create_app().run()
