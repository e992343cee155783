import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///petgroom.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'dev-jwt-secret-key'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.environ.get('JWT_ACCESS_HOURS', 1)))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.environ.get('JWT_REFRESH_DAYS', 30)))

    # How far ahead recurring subscriptions are turned into concrete appointments
    SCHEDULING_HORIZON_DAYS = int(os.environ.get('SCHEDULING_HORIZON_DAYS', 30))
    # Fallback pickup date offset when a subscription has no next pickup date
    DEFAULT_PICKUP_LEAD_DAYS = int(os.environ.get('DEFAULT_PICKUP_LEAD_DAYS', 7))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    AUTO_INIT_DB = os.environ.get('AUTO_INIT_DB', 'true').lower() == 'true'
    SEED_SAMPLE_DATA = os.environ.get('SEED_SAMPLE_DATA', 'false').lower() == 'true'


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    SEED_SAMPLE_DATA = os.environ.get('SEED_SAMPLE_DATA', 'true').lower() == 'true'


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    AUTO_INIT_DB = False
    SEED_SAMPLE_DATA = False
    LOG_LEVEL = 'WARNING'


config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}
