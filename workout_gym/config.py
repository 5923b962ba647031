"""
Configuration settings for Workout Gym
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///workout_gym.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Create tables and default policies when the database is empty
    AUTO_INIT_DB = os.getenv('AUTO_INIT_DB', 'true').lower() == 'true'

    # Practice session storage: 'flask' (signed cookie) or 'redis'
    SESSION_STORE = os.getenv('SESSION_STORE', 'flask')
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    PRACTICE_SESSION_TTL = int(os.getenv('PRACTICE_SESSION_TTL', 86400))  # 24 hours

    # Number of workouts shown in the public gym listing
    GYM_SIZE = int(os.getenv('GYM_SIZE', 12))


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    FLASK_ENV = 'development'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    FLASK_ENV = 'production'
    SESSION_STORE = os.getenv('SESSION_STORE', 'redis')

    # Database connection pooling for better performance
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 10,              # Number of connections to keep open
        'pool_recycle': 3600,          # Recycle connections after 1 hour
        'pool_pre_ping': True,         # Test connections before using
        'max_overflow': 20,            # Extra connections beyond pool_size
        'pool_timeout': 30             # Timeout for getting connection from pool
    }


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    AUTO_INIT_DB = False
    SESSION_STORE = 'flask'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
