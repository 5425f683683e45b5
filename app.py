from flask import Flask, jsonify
import logging
from logging.handlers import RotatingFileHandler
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

# --- IMPORT MODELS ---
# We import the 'db' variable and the Classes from our models.py file
from models import db, Reward
from config import Config
from errors import LedgerError
from auth import auth_bp, login_manager
from routes import api_bp

# Seed data for the reward catalog
CATALOG = [
    {'name': 'Reusable Shopping Bag', 'cost': 50, 'description': 'Sturdy cotton tote',
     'collection_info': 'Pick up at any partner store'},
    {'name': 'Public Transport Day Pass', 'cost': 100, 'description': 'One day of free city transport',
     'collection_info': 'Code sent by notification'},
    {'name': 'Tree Planted In Your Name', 'cost': 250, 'description': 'We plant a tree and send you its location',
     'collection_info': 'Certificate sent by email'},
]


def configure_logging(app):
    # LOG_FILE remembers the last 10 x 10KB of events
    if app.config.get('LOG_FILE'):
        file_handler = RotatingFileHandler(app.config['LOG_FILE'], maxBytes=10240, backupCount=10)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info('WasteWise Rewards Startup')


def configure_sqlite(app):
    # pysqlite starts transactions lazily, which breaks SAVEPOINT inside a transaction.
    # Hand BEGIN over to SQLAlchemy so nested scopes work as on other databases.
    with app.app_context():
        engine = db.engine
    if engine.dialect.name != 'sqlite':
        return

    @event.listens_for(engine, 'connect')
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def do_begin(conn):
        conn.exec_driver_sql('BEGIN')


def register_error_handlers(app):
    # Ledger, workflow and auth failures carry their own kind and status code
    @app.errorhandler(LedgerError)
    def ledger_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def page_not_found(e):
        return jsonify({'status': 'error', 'kind': 'not_found', 'message': 'Not found'}), 404

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({'status': 'error', 'kind': 'http', 'message': e.description}), e.code

    @app.errorhandler(500)
    def internal_server_error(e):
        app.logger.error(f'Server Error: {e}')
        return jsonify({'status': 'error', 'kind': 'permanent', 'message': 'Something went wrong on our end.'}), 500


def create_app(config=Config):
    app = Flask(__name__)
    app.config.from_object(config)
    configure_logging(app)

    # --- INITIALIZE EXTENSIONS ---
    db.init_app(app)
    configure_sqlite(app)
    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    register_error_handlers(app)
    return app


def seed_catalog():
    if Reward.query.first() is None:
        for item in CATALOG:
            db.session.add(Reward(**item))
        db.session.commit()
        print('Reward catalog created successfully!')


# --- SERVER STARTUP & DATABASE SEEDING ---
if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
        seed_catalog()

    app.run(debug=True)
