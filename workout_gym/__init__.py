"""
Workout Gym - Application Factory
"""
import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def create_app(config_name=None):
    """Create and configure the Flask application"""
    from workout_gym.config import config

    app = Flask(__name__)

    # Configuration
    config_name = config_name or os.getenv('FLASK_CONFIG', 'default')
    app.config.from_object(config[config_name])

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    # Register all tables with SQLAlchemy
    from workout_gym import models  # noqa: F401

    # Practice session state lives outside the request, keyed by user
    from workout_gym.services.session_store import create_session_store
    app.extensions['practice_session_store'] = create_session_store(app)

    # Auto-initialize database on first run
    if app.config.get('AUTO_INIT_DB'):
        with app.app_context():
            _auto_initialize_database()

    # Register blueprints
    from workout_gym.workouts import workouts_bp

    app.register_blueprint(workouts_bp, url_prefix='/workouts')

    return app


def _auto_initialize_database():
    """Create tables and default policies if this is a fresh installation"""
    from sqlalchemy import inspect
    from workout_gym.models.workout_policy import WorkoutPolicy

    inspector = inspect(db.engine)
    if 'workouts' in inspector.get_table_names():
        return

    from flask import current_app
    current_app.logger.info("[Init] New installation detected, creating tables")
    db.create_all()
    for policy in WorkoutPolicy.defaults():
        db.session.add(policy)
    db.session.commit()
    current_app.logger.info("[Init] Database initialized")


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login"""
    from workout_gym.models.user import User
    return db.session.get(User, int(user_id))
