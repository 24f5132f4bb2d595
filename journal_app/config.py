"""
Flask Configuration Module

Environment-based configuration for the Trade Journal Flask app.
Supports .env files for easy development and production deployment.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Config:
    """Base configuration class with common settings"""

    # Flask Core Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production-2025'
    FLASK_DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'
    FLASK_PORT = int(os.environ.get('FLASK_PORT', 5000))

    # Database Configuration
    # Default to journal.db next to the package
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or \
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'journal.db')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Trade feed settings
    STREAM_PAGE_SIZE = int(os.environ.get('STREAM_PAGE_SIZE', 10))
    STREAM_MAX_LIMIT = int(os.environ.get('STREAM_MAX_LIMIT', 50))

    # Risk statistics
    DEFAULT_RISK_POINTS = float(os.environ.get('DEFAULT_RISK_POINTS', 20))

    # Trade id generation (single decimal digit)
    SNOWFLAKE_NODE_ID = os.environ.get('SNOWFLAKE_NODE_ID', '0')
    MIGRATE_TRADE_IDS_SECRET = os.environ.get('MIGRATE_TRADE_IDS_SECRET')

    # Telegram bot
    TELEGRAM_BOT_TOKEN = os.environ.get('TELEGRAM_BOT_TOKEN')
    TELEGRAM_WEBHOOK_SECRET = os.environ.get('TELEGRAM_WEBHOOK_SECRET')
    TELEGRAM_API_BASE = os.environ.get('TELEGRAM_API_BASE', 'https://api.telegram.org')

    # Vision-language model (OpenAI-compatible endpoint)
    VLM_API_KEY = os.environ.get('DASHSCOPE_API_KEY') or os.environ.get('VLM_API_KEY')
    VLM_BASE_URL = os.environ.get('VLM_BASE_URL', 'https://dashscope.aliyuncs.com/compatible-mode/v1')
    VLM_MODEL = os.environ.get('VLM_MODEL', 'qwen3-vl-plus')

    # Screenshot blob store (S3-compatible)
    BLOB_ENDPOINT_URL = os.environ.get('BLOB_ENDPOINT_URL')
    BLOB_BUCKET = os.environ.get('BLOB_BUCKET')
    BLOB_ACCESS_KEY_ID = os.environ.get('BLOB_ACCESS_KEY_ID')
    BLOB_SECRET_ACCESS_KEY = os.environ.get('BLOB_SECRET_ACCESS_KEY')
    BLOB_PUBLIC_BASE_URL = os.environ.get('BLOB_PUBLIC_BASE_URL')

    # Outbound HTTP
    HTTP_TIMEOUT = int(os.environ.get('HTTP_TIMEOUT', 30))

    # UI/UX Settings
    CHART_THEME = os.environ.get('CHART_THEME', 'plotly_dark')

    # Security Settings
    WTF_CSRF_ENABLED = os.environ.get('WTF_CSRF_ENABLED', 'True').lower() == 'true'
    WTF_CSRF_TIME_LIMIT = int(os.environ.get('WTF_CSRF_TIME_LIMIT', 3600))

    # Session Settings
    PERMANENT_SESSION_LIFETIME = int(os.environ.get('SESSION_LIFETIME', 86400))  # 24 hours
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'False').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = os.environ.get('LOG_FILE', 'logs/trade_journal.log')

    @staticmethod
    def init_app(app):
        """Initialize app-specific configuration"""
        pass

class DevelopmentConfig(Config):
    """Development environment configuration"""
    DEBUG = True
    FLASK_DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get('SQLALCHEMY_ECHO', 'False').lower() == 'true'
    WTF_CSRF_ENABLED = False  # Disable CSRF for easier development

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        # Development-specific initialization
        import logging
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

class ProductionConfig(Config):
    """Production environment configuration"""
    DEBUG = False
    FLASK_DEBUG = False

    # Enhanced security for production
    SESSION_COOKIE_SECURE = True
    WTF_CSRF_ENABLED = True

    # Database connection pooling for production
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
        'pool_size': 10,
        'max_overflow': 20
    }

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        # Production logging setup
        import logging
        from logging.handlers import RotatingFileHandler

        log_dir = os.path.dirname(cls.LOG_FILE)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = RotatingFileHandler(
            cls.LOG_FILE,
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        logging.getLogger('journal_app').addHandler(file_handler)
        logging.getLogger('journal_app').setLevel(getattr(logging, cls.LOG_LEVEL, logging.INFO))

        app.logger.setLevel(logging.INFO)
        app.logger.info('Trade Journal Flask App startup')

class TestingConfig(Config):
    """Testing environment configuration"""
    TESTING = True
    WTF_CSRF_ENABLED = False

    # Use in-memory database for testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Deterministic external settings
    TELEGRAM_BOT_TOKEN = 'test-token'
    TELEGRAM_WEBHOOK_SECRET = 'test-secret'
    VLM_API_KEY = 'test-key'
    MIGRATE_TRADE_IDS_SECRET = 'migrate-secret'
    BLOB_BUCKET = 'screenshots'
    BLOB_PUBLIC_BASE_URL = 'https://blob.example.com'
    HTTP_TIMEOUT = 5

# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}

def get_config(config_name=None):
    """Return the config class for a name, falling back to FLASK_ENV"""
    name = config_name or os.environ.get('FLASK_ENV', 'development')
    return config.get(name, config['default'])
